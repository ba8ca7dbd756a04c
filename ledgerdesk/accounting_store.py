"""Read-side queries shared by the accounting flows.

Catalog lookups, ledger listing, the row feeds for the report folds and the POS
aggregation feed. Flow modules own the writes to their own draft tables.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from ledgerdesk.accounting_models import CASH_IN_LINE_TYPES, CASH_OUT_LINE_TYPES, DRAFT, PNL_LINE_TYPES, READY
from ledgerdesk.db_models import (
    AccountORM,
    CashAccountORM,
    CashTransactionORM,
    ItemORM,
    PosOrderORM,
    PosPaymentORM,
    ReimbursementORM,
)
from ledgerdesk.errors import ValidationError

DEFAULT_LIMIT = 50
MAX_LIMIT = 500

COMPLETED = "COMPLETED"

PnlRow = Tuple[str, str, str, str, Decimal]
CashFlowRow = Tuple[str, str, str, Decimal, Decimal]


def period_key(day: date) -> str:
    return day.strftime("%Y-%m")


def clamp_page(limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
    if not limit or limit < 1:
        limit = DEFAULT_LIMIT
    limit = min(limit, MAX_LIMIT)
    offset = max(offset or 0, 0)
    return limit, offset


def paginate(query: Query, limit: Optional[int] = None, offset: Optional[int] = None) -> List:
    limit, offset = clamp_page(limit, offset)
    return query.limit(limit).offset(offset).all()


# --- catalog ---


def list_active_items(db: Session) -> List[ItemORM]:
    return db.query(ItemORM).filter(ItemORM.is_active.is_(True)).order_by(ItemORM.item_code).all()


def list_accounts(db: Session, include_inactive: bool = False) -> List[AccountORM]:
    query = db.query(AccountORM)
    if not include_inactive:
        query = query.filter(AccountORM.is_active.is_(True))
    return query.order_by(AccountORM.account_code).all()


def list_cash_accounts(db: Session, include_inactive: bool = False) -> List[CashAccountORM]:
    query = db.query(CashAccountORM)
    if not include_inactive:
        query = query.filter(CashAccountORM.is_active.is_(True))
    return query.order_by(CashAccountORM.cash_account_code).all()


def get_account_by_code(db: Session, account_code: str) -> Optional[AccountORM]:
    return db.query(AccountORM).filter(AccountORM.account_code == account_code).first()


def require_account(db: Session, account_id: Optional[str], field: str = "account_id") -> AccountORM:
    account = db.get(AccountORM, account_id) if account_id else None
    if account is None:
        raise ValidationError(f"{field} does not reference a known account", field=field)
    return account


def require_cash_account(db: Session, cash_account_id: Optional[str], field: str = "cash_account_id") -> CashAccountORM:
    cash_account = db.get(CashAccountORM, cash_account_id) if cash_account_id else None
    if cash_account is None:
        raise ValidationError(f"{field} does not reference a known cash account", field=field)
    return cash_account


def require_item(db: Session, item_id: Optional[str]) -> Optional[ItemORM]:
    """Resolve an optional item reference; None stays None."""
    if not item_id:
        return None
    item = db.get(ItemORM, item_id)
    if item is None:
        raise ValidationError("item_id does not reference a known item", field="item_id")
    return item


# --- ledger ---


def transactions_query(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    line_type: Optional[str] = None,
    account_id: Optional[str] = None,
    cash_account_id: Optional[str] = None,
    outlet_id: Optional[str] = None,
    search: Optional[str] = None,
) -> Query:
    query = db.query(CashTransactionORM)
    if start_date:
        query = query.filter(CashTransactionORM.transaction_date >= start_date)
    if end_date:
        query = query.filter(CashTransactionORM.transaction_date <= end_date)
    if line_type:
        query = query.filter(CashTransactionORM.line_type == line_type)
    if account_id:
        query = query.filter(CashTransactionORM.account_id == account_id)
    if cash_account_id:
        query = query.filter(CashTransactionORM.cash_account_id == cash_account_id)
    if outlet_id:
        query = query.filter(CashTransactionORM.outlet_id == outlet_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                CashTransactionORM.description.ilike(pattern),
                CashTransactionORM.transaction_code.ilike(pattern),
            )
        )
    return query.order_by(
        CashTransactionORM.transaction_date.desc(),
        CashTransactionORM.transaction_code.desc(),
    )


def list_transactions(db: Session, limit: Optional[int] = None, offset: Optional[int] = None, **filters) -> List[CashTransactionORM]:
    return paginate(transactions_query(db, **filters), limit, offset)


def get_transaction(db: Session, transaction_id: str) -> Optional[CashTransactionORM]:
    return db.get(CashTransactionORM, transaction_id)


# --- report feeds ---


def _report_filters(query: Query, start_date: Optional[date], end_date: Optional[date], outlet_id: Optional[str]) -> Query:
    if start_date:
        query = query.filter(CashTransactionORM.transaction_date >= start_date)
    if end_date:
        query = query.filter(CashTransactionORM.transaction_date <= end_date)
    if outlet_id:
        query = query.filter(CashTransactionORM.outlet_id == outlet_id)
    return query


def pnl_rows(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    outlet_id: Optional[str] = None,
) -> Iterator[PnlRow]:
    """(period, line_type, account_code, account_name, amount) per P&L ledger line, oldest first."""
    query = (
        db.query(
            CashTransactionORM.transaction_date,
            CashTransactionORM.line_type,
            AccountORM.account_code,
            AccountORM.account_name,
            CashTransactionORM.amount,
        )
        .join(AccountORM, AccountORM.id == CashTransactionORM.account_id)
        .filter(CashTransactionORM.line_type.in_(PNL_LINE_TYPES))
    )
    query = _report_filters(query, start_date, end_date, outlet_id)
    query = query.order_by(CashTransactionORM.transaction_date, AccountORM.account_code)
    for tx_date, line_type, code, name, amount in query.all():
        yield period_key(tx_date), line_type, code, name, amount


def cash_flow_rows(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    outlet_id: Optional[str] = None,
) -> Iterator[CashFlowRow]:
    """(period, cash_account_code, cash_account_name, cash_in, cash_out) per ledger line with a cash account."""
    query = (
        db.query(
            CashTransactionORM.transaction_date,
            CashTransactionORM.line_type,
            CashAccountORM.cash_account_code,
            CashAccountORM.cash_account_name,
            CashTransactionORM.amount,
        )
        .join(CashAccountORM, CashAccountORM.id == CashTransactionORM.cash_account_id)
        .filter(CashTransactionORM.line_type.in_(CASH_IN_LINE_TYPES + CASH_OUT_LINE_TYPES))
    )
    query = _report_filters(query, start_date, end_date, outlet_id)
    query = query.order_by(CashTransactionORM.transaction_date, CashAccountORM.cash_account_code)
    zero = Decimal("0.00")
    for tx_date, line_type, code, name, amount in query.all():
        if line_type in CASH_IN_LINE_TYPES:
            yield period_key(tx_date), code, name, amount, zero
        else:
            yield period_key(tx_date), code, name, zero, amount


def cash_balance_rows(db: Session) -> List[Tuple[CashAccountORM, str, Decimal]]:
    """(cash account, line_type, summed amount) over the whole ledger."""
    return (
        db.query(CashAccountORM, CashTransactionORM.line_type, func.coalesce(func.sum(CashTransactionORM.amount), 0))
        .outerjoin(CashTransactionORM, CashTransactionORM.cash_account_id == CashAccountORM.id)
        .filter(CashAccountORM.is_active.is_(True))
        .group_by(CashAccountORM.id, CashTransactionORM.line_type)
        .order_by(CashAccountORM.cash_account_code)
        .all()
    )


def pending_reimbursements(db: Session) -> Tuple[int, Decimal]:
    count, total = (
        db.query(func.count(ReimbursementORM.id), func.coalesce(func.sum(ReimbursementORM.amount), 0))
        .filter(ReimbursementORM.status.in_((DRAFT, READY)))
        .one()
    )
    return int(count or 0), Decimal(str(total or 0))


# --- POS feed ---


def pos_payment_totals(
    db: Session, start_date: date, end_date: date, outlet_id: str
) -> Dict[Tuple[date, str, str], Decimal]:
    """Completed POS payments summed per (completion date, order type, payment method)."""
    window_start = datetime.combine(start_date, time.min)
    window_end = datetime.combine(end_date + timedelta(days=1), time.min)
    rows = (
        db.query(PosOrderORM.completed_at, PosOrderORM.order_type, PosPaymentORM.payment_method, PosPaymentORM.amount)
        .join(PosPaymentORM, PosPaymentORM.order_id == PosOrderORM.id)
        .filter(
            PosOrderORM.outlet_id == outlet_id,
            PosOrderORM.status == COMPLETED,
            PosPaymentORM.status == COMPLETED,
            PosOrderORM.completed_at >= window_start,
            PosOrderORM.completed_at < window_end,
        )
        .order_by(PosOrderORM.completed_at)
        .all()
    )
    totals: Dict[Tuple[date, str, str], Decimal] = {}
    for completed_at, order_type, method, amount in rows:
        key = (completed_at.date(), order_type, method)
        totals[key] = totals.get(key, Decimal("0")) + amount
    return totals
