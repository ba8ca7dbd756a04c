from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ledgerdesk import app as app_module
from ledgerdesk.codes import MaxCodeAllocator
from ledgerdesk.db import SessionLocal, init_db
from ledgerdesk.db_models import AccountORM, CashAccountORM, CashTransactionORM, PayrollEntryORM
from ledgerdesk.payroll import PayrollSource
from ledgerdesk.posting import post_drafts
from ledgerdesk.seed import seed_demo_data

client = TestClient(app_module.app)

BASE = "/api/accounting/payroll"


@pytest.fixture(autouse=True)
def setup_db():
    init_db()
    seed_demo_data()
    with SessionLocal() as db:
        db.query(CashTransactionORM).delete()
        db.query(PayrollEntryORM).delete()
        db.commit()
    yield


def _account_id(code: str) -> str:
    with SessionLocal() as db:
        return db.query(AccountORM).filter(AccountORM.account_code == code).one().id


def _cash_account_id(code: str) -> str:
    with SessionLocal() as db:
        return db.query(CashAccountORM).filter(CashAccountORM.cash_account_code == code).one().id


def _batch(**overrides):
    body = {
        "payroll_date": "2025-01-11",
        "period_type": "Weekly",
        "period_ref": "2025-W02",
        "cash_account_id": _cash_account_id("CASH-01"),
        "outlet_id": "outlet-1",
        "employees": [
            {"employee_name": "Andi", "gross_pay": "700000", "payment_method": "CASH"},
            {"employee_name": "Sari", "gross_pay": "650000.50", "payment_method": "TRANSFER"},
        ],
    }
    body.update(overrides)
    return client.post(f"{BASE}/batch", json=body)


def test_batch_creates_one_entry_per_employee():
    resp = _batch()
    assert resp.status_code == 201
    entries = resp.json()
    assert [e["employee_name"] for e in entries] == ["Andi", "Sari"]
    assert entries[1]["gross_pay"] == "650000.50"
    assert {e["posted_at"] for e in entries} == {None}


def test_batch_validation():
    assert _batch(period_type="Yearly").status_code == 400
    assert _batch(employees=[]).status_code == 400
    assert _batch(employees=[{"employee_name": "Andi", "gross_pay": "-1", "payment_method": "CASH"}]).status_code == 400
    assert _batch(cash_account_id="nope").status_code == 400
    with SessionLocal() as db:
        assert db.query(PayrollEntryORM).count() == 0


def test_post_subset_then_entries_are_frozen():
    andi, sari = _batch().json()
    expense_account = _account_id("6200")

    resp = client.post(f"{BASE}/post", json={"ids": [andi["id"]], "account_id": expense_account})
    assert resp.status_code == 200
    assert resp.json()["posted_count"] == 1

    with SessionLocal() as db:
        (txn,) = db.query(CashTransactionORM).all()
        assert txn.description == "Gaji Andi 2025-W02"
        assert txn.line_type == "EXPENSE"
        assert txn.transaction_date == date(2025, 1, 11)
        assert txn.amount == Decimal("700000.00")
        assert txn.account_id == expense_account

    assert client.put(f"{BASE}/{andi['id']}", json={"gross_pay": "1"}).status_code == 404
    assert client.delete(f"{BASE}/{andi['id']}").status_code == 404
    assert client.get(f"{BASE}/{andi['id']}").json()["posted_at"] is not None

    updated = client.put(f"{BASE}/{sari['id']}", json={"gross_pay": "660000"})
    assert updated.status_code == 200
    assert updated.json()["gross_pay"] == "660000.00"

    again = client.post(f"{BASE}/post", json={"ids": [andi["id"]], "account_id": expense_account})
    assert again.json()["posted_count"] == 0

    unposted = client.get(BASE, params={"posted": "false"}).json()
    assert [e["id"] for e in unposted] == [sari["id"]]


def test_description_without_period_ref():
    (entry,) = _batch(period_ref="", employees=[{"employee_name": "Rina", "gross_pay": "100000", "payment_method": "CASH"}]).json()
    client.post(f"{BASE}/post", json={"ids": [entry["id"]], "account_id": _account_id("6200")})
    with SessionLocal() as db:
        assert db.query(CashTransactionORM).one().description == "Gaji Rina"


class _ExplodingSource(PayrollSource):
    def __init__(self, ids, account_id):
        super().__init__(ids, account_id)
        self.calls = 0

    def to_transaction(self, row, code):
        self.calls += 1
        if self.calls == 2:
            raise RuntimeError("boom")
        return super().to_transaction(row, code)


def test_failed_post_rolls_back_everything():
    ids = [e["id"] for e in _batch().json()]
    with SessionLocal() as db:
        with pytest.raises(RuntimeError):
            post_drafts(db, _ExplodingSource(ids, _account_id("6200")))

    with SessionLocal() as db:
        assert db.query(CashTransactionORM).count() == 0
        assert db.query(PayrollEntryORM).filter(PayrollEntryORM.posted_at.isnot(None)).count() == 0


def test_post_uses_the_given_allocator():
    ids = [e["id"] for e in _batch().json()]
    with SessionLocal() as db:
        result = post_drafts(db, PayrollSource(ids, _account_id("6200")), allocator=MaxCodeAllocator("PCS", lambda: "PCS000100"))
        assert result.posted_count == 2
        assert result.codes == ["PCS000101", "PCS000102"]
