"""Parser for free-text expense reports sent over chat.

A message looks like::

    20 jan
    cabe merah tanjung 5kg 500k
    beras sania 20kg 300k
    bensin 100k

The first non-empty line is the expense date, every following non-empty line is
one purchased item: a free-text name, an optional quantity with unit, and the
total price using the usual shorthands (``500k``, ``300rb``, ``1.5jt``).
"""

from __future__ import annotations

import re
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from ledgerdesk.accounting_models import ParsedItem, ParsedMessage
from ledgerdesk.errors import MessageParseError

MONTHS = {
    "jan": 1, "januari": 1,
    "feb": 2, "februari": 2,
    "mar": 3, "maret": 3,
    "apr": 4, "april": 4,
    "mei": 5,
    "jun": 6, "juni": 6,
    "jul": 7, "juli": 7,
    "agu": 8, "ags": 8, "agustus": 8,
    "sep": 9, "september": 9,
    "okt": 10, "oktober": 10,
    "nov": 11, "november": 11,
    "des": 12, "desember": 12,
}

# Quantity units. These are never price suffixes.
QTY_UNITS = {
    "kg", "g", "l", "ml", "pcs", "bks", "pack", "box", "ikat", "iket", "lbr",
    "btl", "ltr", "buah", "bh", "lembar", "sdm", "sdt", "ekor", "btr",
}

# Longest suffix first so "juta" is not read as "a" and "rb" before "k".
PRICE_SUFFIXES: Tuple[Tuple[str, Decimal], ...] = (
    ("juta", Decimal("1000000")),
    ("jt", Decimal("1000000")),
    ("rb", Decimal("1000")),
    ("k", Decimal("1000")),
)

FUTURE_TOLERANCE_DAYS = 30

_NUMBER_RE = re.compile(r"^\d+(?:[.,]\d+)?$")
_QTY_RE = re.compile(r"^(\d+(?:[.,]\d+)?)([a-z]+)$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _to_decimal(raw: str) -> Optional[Decimal]:
    if not _NUMBER_RE.match(raw):
        return None
    return Decimal(raw.replace(",", "."))


def parse_price(token: str) -> Optional[Decimal]:
    """Expand a price shorthand token: "500k" -> 500000, "1.5jt" -> 1500000."""
    token = token.lower()
    for suffix, multiplier in PRICE_SUFFIXES:
        if token.endswith(suffix):
            number = _to_decimal(token[: -len(suffix)])
            if number is None:
                continue
            return number * multiplier
    return None


def parse_qty_unit(token: str) -> Optional[Tuple[Decimal, str]]:
    """Split "5kg" into (5, "kg"). Only known quantity units are accepted."""
    m = _QTY_RE.match(token.lower())
    if not m or m.group(2) not in QTY_UNITS:
        return None
    return Decimal(m.group(1).replace(",", ".")), m.group(2)


def parse_date_line(line: str, today: Optional[date] = None) -> Optional[date]:
    """Read "20 jan" (or an ISO date) as a calendar date, None when it is not one.

    Day/month dates get the current year, or the previous year when that would put
    them more than a month in the future (December notes sent in January).
    """
    today = today or date.today()
    parts = line.strip().lower().split()

    if len(parts) == 1 and _ISO_DATE_RE.match(parts[0]):
        try:
            return date.fromisoformat(parts[0])
        except ValueError:
            return None

    if len(parts) != 2 or not parts[0].isdigit():
        return None
    day = int(parts[0])
    month = MONTHS.get(parts[1])
    if month is None or not 1 <= day <= 31:
        return None

    try:
        parsed = date(today.year, month, day)
    except ValueError:
        return None
    if parsed > today + timedelta(days=FUTURE_TOLERANCE_DAYS):
        try:
            parsed = date(today.year - 1, month, day)
        except ValueError:
            return None
    return parsed


def parse_item_line(line: str, line_no: int = 0) -> ParsedItem:
    tokens = line.strip().lower().split()

    price_idx: Optional[int] = None
    price = Decimal("0")
    for idx, tok in enumerate(tokens):
        value = parse_price(tok)
        if value is not None:
            price_idx, price = idx, value
            break
    if price_idx is None and len(tokens) > 1:
        # A plain number at the end is taken as the price itself ("parkir 5000").
        value = _to_decimal(tokens[-1])
        if value is not None:
            price_idx, price = len(tokens) - 1, value
    if price_idx is None:
        raise MessageParseError(f"line {line_no}: no price found in {line.strip()!r}", line_no=line_no, line=line.strip())

    qty_idx: Optional[int] = None
    quantity, unit = Decimal("1"), ""
    for idx, tok in enumerate(tokens):
        if idx == price_idx:
            continue
        qty_unit = parse_qty_unit(tok)
        if qty_unit is not None:
            qty_idx = idx
            quantity, unit = qty_unit
            break
    if qty_idx is None and price_idx > 1:
        # "telur 2 30k": a bare number right before the price is a unitless quantity.
        value = _to_decimal(tokens[price_idx - 1])
        if value is not None:
            qty_idx, quantity = price_idx - 1, value

    description = " ".join(tok for idx, tok in enumerate(tokens) if idx not in (price_idx, qty_idx))
    if not description:
        raise MessageParseError(
            f"line {line_no}: missing item name in {line.strip()!r}", line_no=line_no, line=line.strip()
        )

    return ParsedItem(
        raw_text=line.strip(),
        description=description,
        quantity=quantity,
        unit=unit,
        total_price=price,
        line_no=line_no,
    )


def parse_message(text: str, today: Optional[date] = None) -> ParsedMessage:
    """Parse a whole chat message. Raises MessageParseError on the first bad line."""
    expense_date: Optional[date] = None
    items: List[ParsedItem] = []

    for line_no, raw in enumerate((text or "").split("\n"), start=1):
        line = raw.strip()
        if not line:
            continue

        if expense_date is None:
            expense_date = parse_date_line(line, today=today)
            if expense_date is None:
                raise MessageParseError(f"first line must be a date, got: {line!r}", line_no=line_no, line=line)
            continue

        items.append(parse_item_line(line, line_no=line_no))

    if expense_date is None:
        raise MessageParseError("no date found in message")
    if not items:
        raise MessageParseError("no items found in message")

    return ParsedMessage(expense_date=expense_date, items=items)


__all__ = ["parse_date_line", "parse_item_line", "parse_message", "parse_price", "parse_qty_unit"]
