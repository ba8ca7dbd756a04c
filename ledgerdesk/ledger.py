"""Manual ledger entries. Ledger lines are append-only: there is no update or delete."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ledgerdesk import accounting_store as store
from ledgerdesk.codes import transaction_code_allocator
from ledgerdesk.db_models import CashTransactionORM
from ledgerdesk.errors import NotFoundError
from ledgerdesk.schemas import TransactionCreate, TransactionRead
from ledgerdesk.validation import (
    fmt2,
    line_amounts,
    optional_text,
    parse_date_field,
    parse_decimal_field,
    parse_line_type,
    require_text,
)

logger = logging.getLogger("ledgerdesk.ledger")


def build_transaction_read(txn: CashTransactionORM) -> TransactionRead:
    return TransactionRead(
        id=txn.id,
        transaction_code=txn.transaction_code,
        transaction_date=txn.transaction_date,
        item_id=txn.item_id,
        description=txn.description,
        quantity=str(txn.quantity),
        unit_price=str(txn.unit_price),
        amount=fmt2(txn.amount),
        line_type=txn.line_type,
        account_id=txn.account_id,
        cash_account_id=txn.cash_account_id,
        outlet_id=txn.outlet_id,
        reimbursement_batch_id=txn.reimbursement_batch_id,
        created_at=txn.created_at,
    )


def get_transaction(db: Session, transaction_id: str) -> CashTransactionORM:
    txn = store.get_transaction(db, transaction_id)
    if txn is None:
        raise NotFoundError("transaction not found")
    return txn


def create_manual_transaction(db: Session, data: TransactionCreate) -> CashTransactionORM:
    transaction_date = parse_date_field(data.transaction_date, "transaction_date")
    description = require_text(data.description, "description")
    quantity = parse_decimal_field(data.quantity, "quantity")
    unit_price = parse_decimal_field(data.unit_price, "unit_price")
    line_type = parse_line_type(data.line_type)
    account = store.require_account(db, require_text(data.account_id, "account_id"))
    cash_account_id = optional_text(data.cash_account_id)
    if cash_account_id:
        store.require_cash_account(db, cash_account_id)
    item = store.require_item(db, optional_text(data.item_id))
    quantity, unit_price, amount = line_amounts(quantity, unit_price, None)

    txn = CashTransactionORM(
        transaction_code=transaction_code_allocator(db).next_code(),
        transaction_date=transaction_date,
        item_id=item.id if item else None,
        description=description,
        quantity=quantity,
        unit_price=unit_price,
        amount=amount,
        line_type=line_type,
        account_id=account.id,
        cash_account_id=cash_account_id,
        outlet_id=optional_text(data.outlet_id),
    )
    db.add(txn)
    db.commit()
    db.refresh(txn)
    logger.info("manual transaction %s %s %s", txn.transaction_code, line_type, amount)
    return txn


__all__ = ["build_transaction_read", "create_manual_transaction", "get_transaction"]
