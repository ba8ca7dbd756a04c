"""Reimbursement requests: Draft -> Ready (batched) -> Posted."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ledgerdesk import accounting_store as store
from ledgerdesk.accounting_models import DRAFT, POSTED, READY
from ledgerdesk.codes import batch_code_allocator
from ledgerdesk.db_models import CashTransactionORM, ReimbursementORM
from ledgerdesk.errors import NotFoundError, ValidationError
from ledgerdesk.posting import DraftLedgerSource, PostingResult, post_drafts
from ledgerdesk.schemas import ReimbursementCreate, ReimbursementUpdate
from ledgerdesk.validation import (
    line_amounts,
    optional_text,
    parse_date_field,
    parse_decimal_field,
    parse_line_type,
    require_text,
)

logger = logging.getLogger("ledgerdesk.reimbursements")

NOT_FOUND = "reimbursement not found or not in Draft status"


def new_draft(
    db: Session,
    *,
    expense_date: date,
    description: str,
    qty: Decimal,
    unit_price: Decimal,
    amount: Optional[Decimal],
    line_type: str,
    account_id: str,
    requester: str,
    item_id: Optional[str] = None,
    receipt_link: Optional[str] = None,
) -> ReimbursementORM:
    """Validate and stage one Draft row. The caller commits."""
    store.require_account(db, account_id)
    store.require_item(db, item_id)
    qty, unit_price, amount = line_amounts(qty, unit_price, amount)
    row = ReimbursementORM(
        expense_date=expense_date,
        item_id=item_id,
        description=description,
        qty=qty,
        unit_price=unit_price,
        amount=amount,
        line_type=line_type,
        account_id=account_id,
        status=DRAFT,
        requester=requester,
        receipt_link=receipt_link,
    )
    db.add(row)
    return row


def list_reimbursements(
    db: Session,
    status: Optional[str] = None,
    requester: Optional[str] = None,
    batch_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[ReimbursementORM]:
    query = db.query(ReimbursementORM)
    if status:
        query = query.filter(ReimbursementORM.status == status)
    if requester:
        query = query.filter(ReimbursementORM.requester == requester)
    if batch_id:
        query = query.filter(ReimbursementORM.batch_id == batch_id)
    if start_date:
        query = query.filter(ReimbursementORM.expense_date >= start_date)
    if end_date:
        query = query.filter(ReimbursementORM.expense_date <= end_date)
    query = query.order_by(ReimbursementORM.expense_date.desc(), ReimbursementORM.created_at.desc())
    return store.paginate(query, limit, offset)


def get_reimbursement(db: Session, reimbursement_id: str) -> ReimbursementORM:
    row = db.get(ReimbursementORM, reimbursement_id)
    if row is None:
        raise NotFoundError("reimbursement not found")
    return row


def _get_draft(db: Session, reimbursement_id: str) -> ReimbursementORM:
    row = db.get(ReimbursementORM, reimbursement_id)
    if row is None or row.status != DRAFT:
        raise NotFoundError(NOT_FOUND)
    return row


def create_reimbursement(db: Session, data: ReimbursementCreate) -> ReimbursementORM:
    if data.status and data.status != DRAFT:
        raise ValidationError("status must be Draft", field="status")
    row = new_draft(
        db,
        expense_date=parse_date_field(data.expense_date, "expense_date"),
        description=require_text(data.description, "description"),
        qty=parse_decimal_field(data.qty, "qty"),
        unit_price=parse_decimal_field(data.unit_price, "unit_price"),
        amount=parse_decimal_field(data.amount, "amount", required=False),
        line_type=parse_line_type(data.line_type),
        account_id=require_text(data.account_id, "account_id"),
        requester=require_text(data.requester, "requester"),
        item_id=optional_text(data.item_id),
        receipt_link=optional_text(data.receipt_link),
    )
    db.commit()
    db.refresh(row)
    return row


def update_reimbursement(db: Session, reimbursement_id: str, data: ReimbursementUpdate) -> ReimbursementORM:
    """Patch a Draft row; amount is re-checked against qty x unit_price."""
    row = _get_draft(db, reimbursement_id)

    if data.expense_date is not None:
        row.expense_date = parse_date_field(data.expense_date, "expense_date")
    if data.description is not None:
        row.description = require_text(data.description, "description")
    if data.line_type is not None:
        row.line_type = parse_line_type(data.line_type)
    if data.account_id is not None:
        row.account_id = store.require_account(db, data.account_id).id
    if data.item_id is not None:
        item = store.require_item(db, optional_text(data.item_id))
        row.item_id = item.id if item else None
    if data.requester is not None:
        row.requester = require_text(data.requester, "requester")
    if data.receipt_link is not None:
        row.receipt_link = optional_text(data.receipt_link)

    if data.qty is not None or data.unit_price is not None or data.amount is not None:
        qty = parse_decimal_field(data.qty, "qty") if data.qty is not None else row.qty
        unit_price = parse_decimal_field(data.unit_price, "unit_price") if data.unit_price is not None else row.unit_price
        amount = parse_decimal_field(data.amount, "amount", required=False)
        row.qty, row.unit_price, row.amount = line_amounts(qty, unit_price, amount)

    db.commit()
    db.refresh(row)
    return row


def delete_reimbursement(db: Session, reimbursement_id: str) -> None:
    row = _get_draft(db, reimbursement_id)
    db.delete(row)
    db.commit()


def assign_batch(db: Session, ids: List[str]) -> Tuple[str, int]:
    """Move the Draft rows among ``ids`` to Ready under one fresh batch code."""
    ids = [i for i in (ids or []) if i]
    if not ids:
        raise ValidationError("ids must contain at least one id", field="ids")

    batch_id = batch_code_allocator(db).next_code()
    updated = (
        db.query(ReimbursementORM)
        .filter(ReimbursementORM.id.in_(ids), ReimbursementORM.status == DRAFT)
        .update({ReimbursementORM.status: READY, ReimbursementORM.batch_id: batch_id}, synchronize_session=False)
    )
    db.commit()
    logger.info("batch %s: %d of %d requests moved to Ready", batch_id, updated, len(ids))
    return batch_id, updated


class ReimbursementBatchSource(DraftLedgerSource):
    name = "reimbursements"

    def __init__(self, batch_id: str, payment_date: date, cash_account_id: str):
        self.batch_id = batch_id
        self.payment_date = payment_date
        self.cash_account_id = cash_account_id

    def select_postable(self, db: Session) -> List[ReimbursementORM]:
        return (
            db.query(ReimbursementORM)
            .filter(ReimbursementORM.batch_id == self.batch_id, ReimbursementORM.status == READY)
            .order_by(ReimbursementORM.expense_date, ReimbursementORM.created_at)
            .all()
        )

    def to_transaction(self, row: ReimbursementORM, code: str) -> CashTransactionORM:
        return CashTransactionORM(
            transaction_code=code,
            transaction_date=self.payment_date,
            item_id=row.item_id,
            description=row.description,
            quantity=row.qty,
            unit_price=row.unit_price,
            amount=row.amount,
            line_type=row.line_type,
            account_id=row.account_id,
            cash_account_id=self.cash_account_id,
            reimbursement_batch_id=self.batch_id,
        )

    def mark_posted(self, db: Session, rows: List[ReimbursementORM], posted_at) -> None:
        for row in rows:
            row.status = POSTED
            row.posted_at = posted_at


def post_batch(db: Session, batch_id: Optional[str], payment_date, cash_account_id: Optional[str]) -> PostingResult:
    batch_id = require_text(batch_id, "batch_id")
    payment_date = parse_date_field(payment_date, "payment_date")
    cash_account = store.require_cash_account(db, require_text(cash_account_id, "cash_account_id"))

    exists = db.query(ReimbursementORM.id).filter(ReimbursementORM.batch_id == batch_id).first()
    if exists is None:
        raise NotFoundError(f"batch {batch_id} not found")

    return post_drafts(db, ReimbursementBatchSource(batch_id, payment_date, cash_account.id))


__all__ = [
    "ReimbursementBatchSource",
    "assign_batch",
    "create_reimbursement",
    "delete_reimbursement",
    "get_reimbursement",
    "list_reimbursements",
    "new_draft",
    "post_batch",
    "update_reimbursement",
]
