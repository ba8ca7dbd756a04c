from datetime import date
from decimal import Decimal

import pytest

from ledgerdesk.errors import MessageParseError
from ledgerdesk.message_parser import parse_date_line, parse_item_line, parse_message, parse_price, parse_qty_unit

TODAY = date(2025, 2, 1)


def test_parses_date_and_item_line():
    parsed = parse_message("20 jan\ncabe merah tanjung 5kg 500k", today=TODAY)

    assert parsed.expense_date == date(2025, 1, 20)
    assert len(parsed.items) == 1
    item = parsed.items[0]
    assert item.description == "cabe merah tanjung"
    assert item.quantity == Decimal("5")
    assert item.unit == "kg"
    assert item.total_price == Decimal("500000")
    assert item.raw_text == "cabe merah tanjung 5kg 500k"


def test_price_shorthands():
    assert parse_price("500k") == Decimal("500000")
    assert parse_price("25.5K") == Decimal("25500")
    assert parse_price("300rb") == Decimal("300000")
    assert parse_price("1.5jt") == Decimal("1500000")
    assert parse_price("2juta") == Decimal("2000000")
    assert parse_price("1,5jt") == Decimal("1500000")
    assert parse_price("enak") is None
    assert parse_price("5kg") is None


def test_qty_units_are_whitelisted():
    assert parse_qty_unit("5kg") == (Decimal("5"), "kg")
    assert parse_qty_unit("1.5L") == (Decimal("1.5"), "l")
    assert parse_qty_unit("500k") is None
    assert parse_qty_unit("kg") is None


def test_date_line_variants():
    assert parse_date_line("3 Agustus", today=date(2025, 8, 10)) == date(2025, 8, 3)
    assert parse_date_line("2025-01-15", today=TODAY) == date(2025, 1, 15)
    assert parse_date_line("31 feb", today=TODAY) is None
    assert parse_date_line("20 foo", today=TODAY) is None
    assert parse_date_line("cabe 5kg 500k", today=TODAY) is None


def test_december_note_sent_in_january_rolls_back_a_year():
    assert parse_date_line("28 des", today=date(2025, 1, 3)) == date(2024, 12, 28)
    # Two weeks ahead is still this year.
    assert parse_date_line("17 jan", today=date(2025, 1, 3)) == date(2025, 1, 17)


def test_bare_number_before_price_is_quantity():
    item = parse_item_line("telur 2 30k", line_no=2)
    assert item.description == "telur"
    assert item.quantity == Decimal("2")
    assert item.unit == ""
    assert item.total_price == Decimal("30000")


def test_bare_trailing_number_is_price_and_quantity_defaults_to_one():
    item = parse_item_line("parkir 5000", line_no=2)
    assert item.description == "parkir"
    assert item.quantity == Decimal("1")
    assert item.total_price == Decimal("5000")


def test_missing_date_line_is_rejected():
    with pytest.raises(MessageParseError) as exc:
        parse_message("cabe merah 5kg 500k", today=TODAY)
    assert "first line must be a date" in exc.value.message
    assert exc.value.line_no == 1


def test_bad_item_line_reports_physical_line_number():
    text = "\n20 jan\n\ncabe 1kg 10k\nbeli sesuatu"
    with pytest.raises(MessageParseError) as exc:
        parse_message(text, today=TODAY)
    assert exc.value.line_no == 5
    assert "beli sesuatu" in exc.value.message
    assert exc.value.message.startswith("line 5:")


def test_item_line_without_name_is_rejected():
    with pytest.raises(MessageParseError) as exc:
        parse_message("20 jan\n5kg 500k", today=TODAY)
    assert exc.value.line_no == 2
    assert "missing item name" in exc.value.message


def test_date_without_items_is_rejected():
    with pytest.raises(MessageParseError, match="no items"):
        parse_message("20 jan\n\n   \n", today=TODAY)
    with pytest.raises(MessageParseError, match="no date"):
        parse_message("   \n", today=TODAY)


def test_parse_is_deterministic():
    text = "20 jan\nberas sania 20kg 300k\nbensin 100k"
    assert parse_message(text, today=TODAY) == parse_message(text, today=TODAY)
