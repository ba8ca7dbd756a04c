from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ledgerdesk import app as app_module
from ledgerdesk.db import SessionLocal, init_db
from ledgerdesk.db_models import AccountORM, CashAccountORM, CashTransactionORM, ItemORM
from ledgerdesk.seed import seed_demo_data

client = TestClient(app_module.app)

URL = "/api/accounting/purchases"


@pytest.fixture(autouse=True)
def setup_db():
    init_db()
    seed_demo_data()
    with SessionLocal() as db:
        db.query(CashTransactionORM).delete()
        db.query(ItemORM).update({ItemORM.last_price: None})
        db.commit()
    yield


def _account_id(code: str) -> str:
    with SessionLocal() as db:
        return db.query(AccountORM).filter(AccountORM.account_code == code).one().id


def _cash_account_id(code: str) -> str:
    with SessionLocal() as db:
        return db.query(CashAccountORM).filter(CashAccountORM.cash_account_code == code).one().id


def _item(code: str) -> ItemORM:
    with SessionLocal() as db:
        return db.query(ItemORM).filter(ItemORM.item_code == code).one()


def _purchase(items, **overrides):
    body = {
        "transaction_date": "2025-01-20",
        "account_id": _account_id("1300"),
        "cash_account_id": _cash_account_id("CASH-01"),
        "outlet_id": "outlet-1",
        "items": items,
    }
    body.update(overrides)
    return client.post(URL, json=body)


def test_purchase_writes_one_inventory_line_per_item():
    beras = _item("ITM-006")
    resp = _purchase(
        [
            {"item_id": beras.id, "description": "beras sania", "quantity": "10", "unit_price": "15000"},
            {"description": "plastik", "quantity": "3", "unit_price": "2500.50"},
        ]
    )
    assert resp.status_code == 201, resp.text
    lines = resp.json()["transactions"]
    assert [t["transaction_code"] for t in lines] == ["PCS000001", "PCS000002"]
    assert [t["amount"] for t in lines] == ["150000.00", "7501.50"]
    assert {t["line_type"] for t in lines} == {"INVENTORY"}
    assert lines[0]["item_id"] == beras.id
    assert lines[1]["item_id"] is None

    with SessionLocal() as db:
        txns = db.query(CashTransactionORM).all()
        assert {t.cash_account_id for t in txns} == {_cash_account_id("CASH-01")}
        assert {t.outlet_id for t in txns} == {"outlet-1"}
        assert {str(t.transaction_date) for t in txns} == {"2025-01-20"}


def test_purchase_updates_item_last_price():
    beras = _item("ITM-006")
    _purchase([{"item_id": beras.id, "description": "beras", "quantity": "5", "unit_price": "14000"}])
    _purchase([{"item_id": beras.id, "description": "beras", "quantity": "5", "unit_price": "14500"}])
    assert _item("ITM-006").last_price == Decimal("14500")
    assert _item("ITM-007").last_price is None

    listed = client.get("/api/accounting/master/items").json()
    by_code = {i["item_code"]: i for i in listed}
    assert Decimal(by_code["ITM-006"]["last_price"]) == Decimal("14500")


def test_purchase_codes_continue_after_existing_lines():
    _purchase([{"description": "gula", "quantity": "1", "unit_price": "18000"}])
    resp = _purchase([{"description": "garam", "quantity": "2", "unit_price": "4000"}])
    assert [t["transaction_code"] for t in resp.json()["transactions"]] == ["PCS000002"]


def test_bad_item_rejects_whole_purchase():
    cases = [
        ([], {}, "items"),
        ([{"description": "gula", "quantity": "0", "unit_price": "1"}], {}, "qty"),
        ([{"description": "", "quantity": "1", "unit_price": "1"}], {}, "description"),
        ([{"description": "gula", "quantity": "1", "unit_price": "x"}], {}, "unit_price"),
        ([{"item_id": "nope", "description": "gula", "quantity": "1", "unit_price": "1"}], {}, "item_id"),
        ([{"description": "gula", "quantity": "1", "unit_price": "1"}], {"cash_account_id": None}, "cash_account_id"),
        ([{"description": "gula", "quantity": "1", "unit_price": "1"}], {"transaction_date": "20/01/2025"}, "transaction_date"),
    ]
    for items, overrides, field in cases:
        ok = {"description": "beras", "quantity": "1", "unit_price": "1000"}
        resp = _purchase([ok] + items if items else [], **overrides)
        assert resp.status_code == 400, (items, overrides)
        assert resp.json()["field"] == field
    with SessionLocal() as db:
        assert db.query(CashTransactionORM).count() == 0
