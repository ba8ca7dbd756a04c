from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ledgerdesk import app as app_module
from ledgerdesk.db import SessionLocal, init_db
from ledgerdesk.db_models import (
    AccountORM,
    CashAccountORM,
    CashTransactionORM,
    PosOrderORM,
    PosPaymentORM,
    SalesSummaryORM,
)
from ledgerdesk.sales import order_type_to_channel
from ledgerdesk.seed import seed_demo_data

client = TestClient(app_module.app)

BASE = "/api/accounting/sales"
OUTLET = "outlet-1"


@pytest.fixture(autouse=True)
def setup_db():
    init_db()
    seed_demo_data()
    with SessionLocal() as db:
        db.query(CashTransactionORM).delete()
        db.query(SalesSummaryORM).delete()
        db.query(PosPaymentORM).delete()
        db.query(PosOrderORM).delete()
        db.commit()
    yield


def _account_id(code: str) -> str:
    with SessionLocal() as db:
        return db.query(AccountORM).filter(AccountORM.account_code == code).one().id


def _cash_account_id(code: str) -> str:
    with SessionLocal() as db:
        return db.query(CashAccountORM).filter(CashAccountORM.cash_account_code == code).one().id


def _pos_order(order_type: str, method: str, amount: str, completed_at: datetime, outlet=OUTLET, status="COMPLETED"):
    with SessionLocal() as db:
        order = PosOrderORM(outlet_id=outlet, order_type=order_type, status=status, completed_at=completed_at)
        db.add(order)
        db.flush()
        db.add(PosPaymentORM(order_id=order.id, payment_method=method, amount=Decimal(amount)))
        db.commit()


def _sync(accounts=None):
    if accounts is None:
        accounts = {"CASH": _cash_account_id("CASH-01"), "QRIS": _cash_account_id("QRIS-01")}
    return client.post(
        f"{BASE}/sync-pos",
        json={"start_date": "2025-01-10", "end_date": "2025-01-10", "outlet_id": OUTLET, "payment_method_accounts": accounts},
    )


def _seed_day():
    _pos_order("DINE_IN", "CASH", "50000", datetime(2025, 1, 10, 12, 0))
    _pos_order("DINE_IN", "CASH", "25000", datetime(2025, 1, 10, 19, 30))
    _pos_order("TAKEAWAY", "QRIS", "40000", datetime(2025, 1, 10, 13, 0))
    # Ignored: cancelled, other outlet, other day.
    _pos_order("DINE_IN", "CASH", "99000", datetime(2025, 1, 10, 14, 0), status="CANCELLED")
    _pos_order("DINE_IN", "CASH", "99000", datetime(2025, 1, 10, 14, 0), outlet="outlet-2")
    _pos_order("DINE_IN", "CASH", "99000", datetime(2025, 1, 11, 9, 0))


def test_order_type_channels():
    assert order_type_to_channel("DINE_IN") == "Dine In"
    assert order_type_to_channel("TAKEAWAY") == "Take Away"
    assert order_type_to_channel("CATERING") == "Catering"
    assert order_type_to_channel("DELIVERY") == "Delivery"
    assert order_type_to_channel("KIOSK") == "KIOSK"


def test_sync_aggregates_pos_payments():
    _seed_day()
    resp = _sync()
    assert resp.status_code == 200
    body = resp.json()
    assert body["synced"] == 2
    assert body["skipped_posted"] == 0

    by_key = {(s["channel"], s["payment_method"]): s for s in body["summaries"]}
    dine_in = by_key[("Dine In", "CASH")]
    assert dine_in["gross_sales"] == "75000.00"
    assert dine_in["discount_amount"] == "0.00"
    assert dine_in["net_sales"] == "75000.00"
    assert dine_in["source"] == "pos"
    assert dine_in["cash_account_id"] == _cash_account_id("CASH-01")
    assert by_key[("Take Away", "QRIS")]["net_sales"] == "40000.00"


def test_repeated_sync_converges_on_one_row_per_key():
    _seed_day()
    _sync()
    _pos_order("DINE_IN", "CASH", "5000", datetime(2025, 1, 10, 20, 0))
    body = _sync().json()

    with SessionLocal() as db:
        rows = db.query(SalesSummaryORM).filter(SalesSummaryORM.channel == "Dine In").all()
        assert len(rows) == 1
        assert rows[0].gross_sales == Decimal("80000.00")
        assert db.query(SalesSummaryORM).count() == 2
    assert body["synced"] == 2


def test_sync_requires_mapping_for_every_payment_method():
    _seed_day()
    resp = _sync({"CASH": _cash_account_id("CASH-01")})
    assert resp.status_code == 400
    assert "QRIS" in resp.json()["detail"]
    with SessionLocal() as db:
        assert db.query(SalesSummaryORM).count() == 0


def test_post_sales_then_resync_leaves_posted_rows_alone():
    _seed_day()
    _sync()
    sales_account = _account_id("4100")

    resp = client.post(f"{BASE}/post", json={"sales_date": "2025-01-10", "account_id": sales_account})
    assert resp.status_code == 200
    assert resp.json()["posted_count"] == 2

    with SessionLocal() as db:
        txns = db.query(CashTransactionORM).order_by(CashTransactionORM.transaction_code).all()
        assert {t.line_type for t in txns} == {"SALES"}
        assert {t.account_id for t in txns} == {sales_account}
        descriptions = {t.description for t in txns}
        assert "Penjualan Dine In CASH 2025-01-10" in descriptions
        dine_in = next(t for t in txns if t.description.startswith("Penjualan Dine In"))
        assert dine_in.amount == Decimal("75000.00")
        assert dine_in.quantity == Decimal("1")
        assert dine_in.outlet_id == OUTLET

    _pos_order("DINE_IN", "CASH", "5000", datetime(2025, 1, 10, 21, 0))
    body = _sync().json()
    assert body["synced"] == 0
    assert body["skipped_posted"] == 2
    with SessionLocal() as db:
        row = db.query(SalesSummaryORM).filter(SalesSummaryORM.channel == "Dine In").one()
        assert row.gross_sales == Decimal("75000.00")

    again = client.post(f"{BASE}/post", json={"sales_date": "2025-01-10", "account_id": sales_account})
    assert again.json()["posted_count"] == 0


def _manual(**overrides):
    body = {
        "sales_date": "2025-01-12",
        "channel": "Catering",
        "payment_method": "TRANSFER",
        "gross_sales": "1000000",
        "discount_amount": "50000",
        "cash_account_id": _cash_account_id("BCA-01"),
    }
    body.update(overrides)
    return client.post(BASE, json=body)


def test_manual_summary_crud_and_duplicates():
    resp = _manual()
    assert resp.status_code == 201
    created = resp.json()
    assert created["net_sales"] == "950000.00"
    assert created["source"] == "manual"
    assert created["outlet_id"] is None

    # Same key with no outlet is still a duplicate.
    assert _manual().status_code == 409
    assert _manual(net_sales="1").status_code == 400

    updated = client.put(f"{BASE}/{created['id']}", json={"discount_amount": "0"})
    assert updated.status_code == 200
    assert updated.json()["net_sales"] == "1000000.00"

    assert client.delete(f"{BASE}/{created['id']}").status_code == 204
    assert client.get(f"{BASE}/{created['id']}").status_code == 404


def test_pos_and_posted_summaries_cannot_be_edited():
    _seed_day()
    pos_row = _sync().json()["summaries"][0]
    assert client.put(f"{BASE}/{pos_row['id']}", json={"gross_sales": "1"}).status_code == 404
    assert client.delete(f"{BASE}/{pos_row['id']}").status_code == 404

    manual = _manual().json()
    client.post(f"{BASE}/post", json={"sales_date": "2025-01-12", "account_id": _account_id("4100")})
    assert client.delete(f"{BASE}/{manual['id']}").status_code == 404
    listed = client.get(BASE, params={"posted": "true"}).json()
    assert [s["id"] for s in listed] == [manual["id"]]
