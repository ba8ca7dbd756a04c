from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ledgerdesk import app as app_module
from ledgerdesk.accounting_models import Item
from ledgerdesk.chat_intake import format_qty_unit, format_rupiah
from ledgerdesk.db import SessionLocal, init_db
from ledgerdesk.db_models import AccountORM, CashTransactionORM, ItemORM, ReimbursementORM
from ledgerdesk.deps import get_item_matcher
from ledgerdesk.item_matcher import ItemMatcher
from ledgerdesk.seed import seed_demo_data

client = TestClient(app_module.app)

URL = "/api/accounting/intake/message"


@pytest.fixture(autouse=True)
def setup_db():
    init_db()
    seed_demo_data()
    with SessionLocal() as db:
        db.query(CashTransactionORM).delete()
        db.query(ReimbursementORM).delete()
        db.commit()
    app_module.app.state.item_matcher = None
    yield
    app_module.app.dependency_overrides.clear()
    app_module.app.state.item_matcher = None


def _use_catalog(items):
    matcher = ItemMatcher(items)
    app_module.app.dependency_overrides[get_item_matcher] = lambda: matcher


def _tanjung() -> Item:
    with SessionLocal() as db:
        row = db.query(ItemORM).filter(ItemORM.item_code == "ITM-001").one()
        return Item(id=row.id, code=row.item_code, name=row.item_name, keywords=row.keywords, unit=row.unit)


def _drafts():
    with SessionLocal() as db:
        return db.query(ReimbursementORM).all()


def _message(text: str, sender_name="Budi") -> dict:
    return {"sender_phone": "62812000111", "sender_name": sender_name, "message_text": text, "chat_id": "chat-1"}


def test_matched_item_becomes_inventory_draft():
    tanjung = _tanjung()
    _use_catalog([tanjung])

    resp = client.post(URL, json=_message("20 jan\ncabe merah tanjung 5kg 500k"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert (body["created"], body["matched"], body["ambiguous"], body["unmatched"]) == (1, 1, 0, 0)
    assert "✔️ Cocok:" in body["reply"]
    assert "• Cabe Merah Tanjung 5kg → cabe merah tanjung (500K)" in body["reply"]
    assert "Total: 1 item = 500K" in body["reply"]
    assert "Peminta: Budi" in body["reply"]

    (draft,) = _drafts()
    assert draft.status == "Draft"
    assert draft.line_type == "INVENTORY"
    assert draft.item_id == tanjung.id
    assert draft.qty == Decimal("5")
    assert draft.unit_price == Decimal("100000")
    assert draft.amount == Decimal("500000")
    assert draft.requester == "Budi"
    assert (draft.expense_date.month, draft.expense_date.day) == (1, 20)
    with SessionLocal() as db:
        inventory = db.query(AccountORM).filter(AccountORM.account_code == "1300").one()
    assert draft.account_id == inventory.id


def test_empty_catalog_creates_expense_draft():
    _use_catalog([])

    body = client.post(URL, json=_message("20 jan\ncabe merah tanjung 5kg 500k")).json()
    assert (body["created"], body["matched"], body["unmatched"]) == (1, 0, 1)
    assert "❌ Tidak cocok:" in body["reply"]

    (draft,) = _drafts()
    assert draft.line_type == "EXPENSE"
    assert draft.item_id is None


def test_ambiguous_description_lists_candidates():
    # Seeded catalog: both red chilli variants carry "cabe" and "merah".
    body = client.post(URL, json=_message("20 jan\ncabe merah 1kg 50k\nbensin 100k")).json()
    assert body["ambiguous"] == 1
    assert body["unmatched"] == 1
    assert "Mungkin: Cabe Merah Tanjung, Cabe Merah Keriting" in body["reply"]
    assert all(d.line_type == "EXPENSE" for d in _drafts())


def test_parse_error_reply_and_nothing_stored():
    resp = client.post(URL, json=_message("cabe merah 5kg 500k"))
    assert resp.status_code == 400
    body = resp.json()
    assert body["ok"] is False
    assert body["reply"].startswith("❌ Format pesan salah:")
    assert "Contoh format yang benar:" in body["reply"]
    assert body["error_line"] == 1
    assert _drafts() == []


def test_bad_item_line_stores_nothing():
    resp = client.post(URL, json=_message("20 jan\nberas 10kg 150k\nbeli sesuatu"))
    assert resp.status_code == 400
    assert resp.json()["error_line"] == 3
    assert _drafts() == []


def test_zero_quantity_lines_are_skipped():
    _use_catalog([])
    body = client.post(URL, json=_message("20 jan\ntelur 0btr 10k\nbensin 100k")).json()
    assert body["created"] == 1
    assert [d.description for d in _drafts()] == ["bensin"]


def test_draft_amounts_match_typed_total():
    _use_catalog([])
    resp = client.post(URL, json=_message("20 jan\ntelur 3btr 100k\nminyak 1.23456l 100k"))
    assert resp.status_code == 200, resp.text
    assert resp.json()["created"] == 2

    drafts = {d.description: d for d in _drafts()}
    assert drafts["minyak"].qty == Decimal("1.2346")
    for draft in drafts.values():
        assert draft.amount == Decimal("100000.00")
        assert (draft.qty * draft.unit_price).quantize(Decimal("0.01")) == draft.amount


def test_quantity_below_stored_precision_is_skipped():
    _use_catalog([])
    body = client.post(URL, json=_message("20 jan\nsaffron 0.00001g 50k\nbensin 100k")).json()
    assert body["ok"] is True
    assert [d.description for d in _drafts()] == ["bensin"]


def test_unpriceable_quantity_is_a_line_error():
    _use_catalog([])
    resp = client.post(URL, json=_message("20 jan\nbensin 100k\npaku 123456789pcs 1k"))
    assert resp.status_code == 400
    body = resp.json()
    assert body["error_line"] == 3
    assert "paku" in body["error"]
    assert _drafts() == []


def test_sender_name_is_required():
    resp = client.post(URL, json=_message("20 jan\nbensin 100k", sender_name="  "))
    assert resp.status_code == 400
    assert resp.json()["field"] == "sender_name"


def test_reply_formatting_helpers():
    assert format_rupiah(Decimal("1500000")) == "1.5Jt"
    assert format_rupiah(Decimal("500000")) == "500K"
    assert format_rupiah(Decimal("750")) == "750"
    assert format_qty_unit(Decimal("5"), "kg") == "5kg"
    assert format_qty_unit(Decimal("1.5"), "l") == "1.5l"
    assert format_qty_unit(Decimal("2"), "") == ""
