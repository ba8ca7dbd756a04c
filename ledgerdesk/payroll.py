from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from ledgerdesk import accounting_store as store
from ledgerdesk.accounting_models import PERIOD_TYPES
from ledgerdesk.db_models import CashTransactionORM, PayrollEntryORM
from ledgerdesk.errors import NotFoundError, ValidationError
from ledgerdesk.posting import DraftLedgerSource, PostingResult, post_drafts
from ledgerdesk.schemas import PayrollBatchCreate, PayrollEntryUpdate
from ledgerdesk.validation import (
    check_one_of,
    optional_text,
    parse_date_field,
    parse_decimal_field,
    require_text,
    round_money,
)

logger = logging.getLogger("ledgerdesk.payroll")

NOT_FOUND = "payroll entry not found or already posted"


def _gross_pay(raw, employee_name: str) -> Decimal:
    gross = parse_decimal_field(raw, "gross_pay")
    if gross <= 0:
        raise ValidationError(f"gross_pay for {employee_name} must be positive", field="gross_pay")
    return round_money(gross)


def list_payroll(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    period_type: Optional[str] = None,
    outlet_id: Optional[str] = None,
    posted: Optional[bool] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[PayrollEntryORM]:
    query = db.query(PayrollEntryORM)
    if start_date:
        query = query.filter(PayrollEntryORM.payroll_date >= start_date)
    if end_date:
        query = query.filter(PayrollEntryORM.payroll_date <= end_date)
    if period_type:
        query = query.filter(PayrollEntryORM.period_type == period_type)
    if outlet_id:
        query = query.filter(PayrollEntryORM.outlet_id == outlet_id)
    if posted is True:
        query = query.filter(PayrollEntryORM.posted_at.isnot(None))
    elif posted is False:
        query = query.filter(PayrollEntryORM.posted_at.is_(None))
    query = query.order_by(PayrollEntryORM.payroll_date.desc(), PayrollEntryORM.employee_name)
    return store.paginate(query, limit, offset)


def get_payroll_entry(db: Session, entry_id: str) -> PayrollEntryORM:
    row = db.get(PayrollEntryORM, entry_id)
    if row is None:
        raise NotFoundError("payroll entry not found")
    return row


def _get_unposted(db: Session, entry_id: str) -> PayrollEntryORM:
    row = db.get(PayrollEntryORM, entry_id)
    if row is None or row.posted_at is not None:
        raise NotFoundError(NOT_FOUND)
    return row


def create_payroll_batch(db: Session, data: PayrollBatchCreate) -> List[PayrollEntryORM]:
    """One unposted entry per employee, all sharing date, period and cash account."""
    payroll_date = parse_date_field(data.payroll_date, "payroll_date")
    period_type = check_one_of(data.period_type, PERIOD_TYPES, "period_type")
    period_ref = optional_text(data.period_ref)
    cash_account = store.require_cash_account(db, require_text(data.cash_account_id, "cash_account_id"))
    outlet_id = optional_text(data.outlet_id)
    if not data.employees:
        raise ValidationError("employees must contain at least one employee", field="employees")

    rows: List[PayrollEntryORM] = []
    for emp in data.employees:
        name = require_text(emp.employee_name, "employee_name")
        rows.append(
            PayrollEntryORM(
                payroll_date=payroll_date,
                period_type=period_type,
                period_ref=period_ref,
                employee_name=name,
                gross_pay=_gross_pay(emp.gross_pay, name),
                payment_method=require_text(emp.payment_method, "payment_method"),
                cash_account_id=cash_account.id,
                outlet_id=outlet_id,
            )
        )
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    logger.info("payroll %s %s: %d entries created", payroll_date, period_type, len(rows))
    return rows


def update_payroll_entry(db: Session, entry_id: str, data: PayrollEntryUpdate) -> PayrollEntryORM:
    row = _get_unposted(db, entry_id)
    if data.payroll_date is not None:
        row.payroll_date = parse_date_field(data.payroll_date, "payroll_date")
    if data.period_type is not None:
        row.period_type = check_one_of(data.period_type, PERIOD_TYPES, "period_type")
    if data.period_ref is not None:
        row.period_ref = optional_text(data.period_ref)
    if data.employee_name is not None:
        row.employee_name = require_text(data.employee_name, "employee_name")
    if data.gross_pay is not None:
        row.gross_pay = _gross_pay(data.gross_pay, row.employee_name)
    if data.payment_method is not None:
        row.payment_method = require_text(data.payment_method, "payment_method")
    if data.cash_account_id is not None:
        row.cash_account_id = store.require_cash_account(db, data.cash_account_id).id
    if data.outlet_id is not None:
        row.outlet_id = optional_text(data.outlet_id)
    db.commit()
    db.refresh(row)
    return row


def delete_payroll_entry(db: Session, entry_id: str) -> None:
    row = _get_unposted(db, entry_id)
    db.delete(row)
    db.commit()


class PayrollSource(DraftLedgerSource):
    name = "payroll"

    def __init__(self, ids: List[str], account_id: str):
        self.ids = ids
        self.account_id = account_id

    def select_postable(self, db: Session) -> List[PayrollEntryORM]:
        return (
            db.query(PayrollEntryORM)
            .filter(PayrollEntryORM.id.in_(self.ids), PayrollEntryORM.posted_at.is_(None))
            .order_by(PayrollEntryORM.payroll_date, PayrollEntryORM.employee_name)
            .all()
        )

    def to_transaction(self, row: PayrollEntryORM, code: str) -> CashTransactionORM:
        description = f"Gaji {row.employee_name}"
        if row.period_ref:
            description = f"{description} {row.period_ref}"
        return CashTransactionORM(
            transaction_code=code,
            transaction_date=row.payroll_date,
            description=description,
            quantity=Decimal("1"),
            unit_price=row.gross_pay,
            amount=row.gross_pay,
            line_type="EXPENSE",
            account_id=self.account_id,
            cash_account_id=row.cash_account_id,
            outlet_id=row.outlet_id,
        )


def post_payroll(db: Session, ids: List[str], account_id: Optional[str]) -> PostingResult:
    ids = [i for i in (ids or []) if i]
    if not ids:
        raise ValidationError("ids must contain at least one id", field="ids")
    account = store.require_account(db, require_text(account_id, "account_id"))
    return post_drafts(db, PayrollSource(ids, account.id))


__all__ = [
    "PayrollSource",
    "create_payroll_batch",
    "delete_payroll_entry",
    "get_payroll_entry",
    "list_payroll",
    "post_payroll",
    "update_payroll_entry",
]
