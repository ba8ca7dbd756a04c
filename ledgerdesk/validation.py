from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ledgerdesk.accounting_models import LINE_TYPES
from ledgerdesk.errors import ValidationError

MONEY = Decimal("0.01")
QTY = Decimal("0.0001")
UNIT_PRICE = Decimal("0.000001")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY)


def require_text(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required", field=field)
    return text


def optional_text(value: Optional[str]) -> Optional[str]:
    text = (value or "").strip()
    return text or None


def parse_date_field(value: Any, field: str, required: bool = True) -> Optional[date]:
    if isinstance(value, date):
        return value
    raw = (value or "").strip() if isinstance(value, str) else value
    if not raw:
        if required:
            raise ValidationError(f"{field} is required", field=field)
        return None
    try:
        return date.fromisoformat(str(raw))
    except ValueError as exc:
        raise ValidationError(f"invalid {field} format, expected YYYY-MM-DD", field=field) from exc


def parse_decimal_field(value: Any, field: str, required: bool = True) -> Optional[Decimal]:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required", field=field)
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"invalid {field} format", field=field) from exc
    if not number.is_finite():
        raise ValidationError(f"invalid {field} format", field=field)
    return number


def parse_line_type(value: Optional[str], allowed=LINE_TYPES) -> str:
    line_type = require_text(value, "line_type").upper()
    if line_type not in allowed:
        raise ValidationError(f"line_type must be one of {', '.join(allowed)}", field="line_type")
    return line_type


def check_one_of(value: Optional[str], allowed, field: str) -> str:
    text = require_text(value, field)
    if text not in allowed:
        raise ValidationError(f"{field} must be one of {', '.join(allowed)}", field=field)
    return text


def line_amounts(qty: Decimal, unit_price: Decimal, amount: Optional[Decimal]) -> tuple:
    """Normalise qty/unit_price/amount and enforce amount == qty x unit_price."""
    if qty == 0:
        raise ValidationError("qty must not be zero", field="qty")
    if qty < 0:
        raise ValidationError("qty must be positive", field="qty")
    if unit_price < 0:
        raise ValidationError("unit_price must not be negative", field="unit_price")
    qty = qty.quantize(QTY)
    unit_price = unit_price.quantize(UNIT_PRICE)
    expected = round_money(qty * unit_price)
    if amount is None:
        return qty, unit_price, expected
    if round_money(amount) != expected:
        raise ValidationError(f"amount must equal qty x unit_price ({expected})", field="amount")
    return qty, unit_price, expected


def fmt2(value: Optional[Decimal]) -> str:
    if value is None:
        return "0.00"
    return str(round_money(Decimal(value)))
