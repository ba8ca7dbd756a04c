"""Chat intake: one free-text expense message in, Draft reimbursements and a reply out."""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ledgerdesk import accounting_store as store
from ledgerdesk.accounting_models import MatchResult, MatchStatus, ParsedItem
from ledgerdesk.errors import MessageParseError, ValidationError
from ledgerdesk.item_matcher import ItemMatcher, count_by_status
from ledgerdesk.message_parser import parse_message
from ledgerdesk.reimbursements import new_draft
from ledgerdesk.schemas import IntakeMessageRequest, IntakeResponse
from ledgerdesk.validation import QTY, UNIT_PRICE, require_text, round_money

logger = logging.getLogger("ledgerdesk.intake")

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

FORMAT_EXAMPLE = "20 jan\ncabe merah 5kg 500k\nbawang merah 2kg 300k"

Matched = Tuple[ParsedItem, MatchResult]
Amounts = Tuple[Decimal, Decimal, Decimal]


def format_rupiah(amount: Decimal) -> str:
    """Short rupiah: 1500000 -> "1.5Jt", 500000 -> "500K", 750 -> "750"."""
    if amount >= 1_000_000:
        return f"{(amount / 1_000_000).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}Jt"
    if amount >= 1_000:
        return f"{(amount / 1_000).quantize(Decimal('1'), rounding=ROUND_HALF_UP)}K"
    return str(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_qty_unit(qty: Decimal, unit: str) -> str:
    if not unit:
        return ""
    if qty == qty.to_integral_value():
        return f"{int(qty)}{unit}"
    return f"{qty.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}{unit}"


def format_date(day: date) -> str:
    return f"{day.day} {MONTH_ABBR[day.month - 1]} {day.year}"


def build_reply(results: List[Matched], requester: str, expense_date: date) -> str:
    matched = [(i, r) for i, r in results if r.status == MatchStatus.MATCHED]
    ambiguous = [(i, r) for i, r in results if r.status == MatchStatus.AMBIGUOUS]
    unmatched = [(i, r) for i, r in results if r.status == MatchStatus.UNMATCHED]

    lines: List[str] = ["✅ Reimburse diterima!", ""]
    if matched:
        lines.append("✔️ Cocok:")
        for item, result in matched:
            qty_unit = format_qty_unit(item.quantity, item.unit)
            lines.append(f"• {result.item.name} {qty_unit} → {item.description} ({format_rupiah(item.total_price)})")
        lines.append("")
    if ambiguous:
        lines.append("⚠️ Ambigu (perlu review):")
        for item, result in ambiguous:
            qty_unit = format_qty_unit(item.quantity, item.unit)
            names = ", ".join(c.name for c in result.candidates)
            lines.append(f"• {item.description} {qty_unit} ({format_rupiah(item.total_price)})")
            lines.append(f"  Mungkin: {names}")
        lines.append("")
    if unmatched:
        lines.append("❌ Tidak cocok:")
        for item, _ in unmatched:
            qty_unit = format_qty_unit(item.quantity, item.unit)
            lines.append(f"• {item.description} {qty_unit} ({format_rupiah(item.total_price)})")
        lines.append("")

    total = sum((item.total_price for item, _ in results), Decimal("0"))
    lines.append(f"Total: {len(results)} item = {format_rupiah(total)}")
    lines.append(f"Peminta: {requester}")
    lines.append(f"Tanggal: {format_date(expense_date)}")
    return "\n".join(lines)


def build_error_reply(reason: str) -> str:
    return f"❌ Format pesan salah:\n{reason}\n\nContoh format yang benar:\n{FORMAT_EXAMPLE}"


def _account_id(db: Session, code: str) -> str:
    account = store.get_account_by_code(db, code)
    if account is None:
        raise ValidationError(f"account {code} is not configured", field="account_code")
    return account.id


def draft_amounts(item: ParsedItem) -> Optional[Amounts]:
    """Stored (qty, unit_price, amount) for one item line, or None if it has no quantity.

    Quantities are cut to the stored precision before the unit price is derived,
    so qty x unit_price always rounds back to the typed total.
    """
    qty = item.quantity.quantize(QTY)
    if qty <= 0:
        return None
    amount = round_money(item.total_price)
    unit_price = (item.total_price / qty).quantize(UNIT_PRICE)
    if round_money(qty * unit_price) != amount:
        raise MessageParseError(
            f"line {item.line_no}: quantity {item.quantity} is too large to price {item.raw_text!r}",
            line_no=item.line_no,
            line=item.raw_text,
        )
    return qty, unit_price, amount


def _parse(text: str, today: Optional[date]) -> Tuple[date, List[Tuple[ParsedItem, Amounts]]]:
    parsed = parse_message(text, today=today)
    lines = []
    for item in parsed.items:
        amounts = draft_amounts(item)
        if amounts is None:
            logger.warning("intake: skipping zero-quantity line %r", item.raw_text)
            continue
        lines.append((item, amounts))
    return parsed.expense_date, lines


def ingest_message(
    db: Session,
    matcher: ItemMatcher,
    settings: Dict[str, Any],
    payload: IntakeMessageRequest,
    today: Optional[date] = None,
) -> IntakeResponse:
    requester = require_text(payload.sender_name, "sender_name")
    text = require_text(payload.message_text, "message_text")

    try:
        expense_date, lines = _parse(text, today)
    except MessageParseError as exc:
        logger.info("intake from %s (chat %s) rejected: %s", payload.sender_phone, payload.chat_id, exc.message)
        return IntakeResponse(
            ok=False,
            reply=build_error_reply(exc.message),
            error=exc.message,
            error_line=exc.line_no,
        )

    inventory_account_id = _account_id(db, settings["inventory_account_code"])
    expense_account_id = _account_id(db, settings["default_expense_account_code"])

    results: List[Matched] = []
    for item, (qty, unit_price, amount) in lines:
        result = matcher.match(item.description)
        if result.status == MatchStatus.MATCHED:
            line_type, account_id, item_id = "INVENTORY", inventory_account_id, result.item.id
        else:
            line_type, account_id, item_id = "EXPENSE", expense_account_id, None
        new_draft(
            db,
            expense_date=expense_date,
            description=item.description,
            qty=qty,
            unit_price=unit_price,
            amount=amount,
            line_type=line_type,
            account_id=account_id,
            requester=requester,
            item_id=item_id,
        )
        results.append((item, result))
    db.commit()

    counts = count_by_status(r for _, r in results)
    logger.info(
        "intake from %s: %d drafts (%d matched, %d ambiguous, %d unmatched)",
        requester,
        len(results),
        counts[MatchStatus.MATCHED],
        counts[MatchStatus.AMBIGUOUS],
        counts[MatchStatus.UNMATCHED],
    )
    return IntakeResponse(
        ok=True,
        reply=build_reply(results, requester, expense_date),
        created=len(results),
        matched=counts[MatchStatus.MATCHED],
        ambiguous=counts[MatchStatus.AMBIGUOUS],
        unmatched=counts[MatchStatus.UNMATCHED],
        expense_date=expense_date,
    )


__all__ = ["build_error_reply", "build_reply", "draft_amounts", "format_qty_unit", "format_rupiah", "ingest_message"]
