"""Purchase entry: one bought-with-cash receipt, one INVENTORY ledger line per item.

The lines go straight into the ledger with consecutive transaction codes. Items
that reference the catalog get their ``last_price`` refreshed in the same commit.
"""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy.orm import Session

from ledgerdesk import accounting_store as store
from ledgerdesk.codes import transaction_code_allocator
from ledgerdesk.db_models import CashTransactionORM
from ledgerdesk.errors import ValidationError
from ledgerdesk.schemas import PurchaseCreate
from ledgerdesk.validation import (
    line_amounts,
    optional_text,
    parse_date_field,
    parse_decimal_field,
    require_text,
)

logger = logging.getLogger("ledgerdesk.purchases")


def create_purchase(db: Session, data: PurchaseCreate) -> List[CashTransactionORM]:
    transaction_date = parse_date_field(data.transaction_date, "transaction_date")
    account = store.require_account(db, require_text(data.account_id, "account_id"))
    cash_account = store.require_cash_account(db, require_text(data.cash_account_id, "cash_account_id"))
    outlet_id = optional_text(data.outlet_id)
    if not data.items:
        raise ValidationError("items cannot be empty", field="items")

    lines = []
    for entry in data.items:
        description = require_text(entry.description, "description")
        quantity = parse_decimal_field(entry.quantity, "quantity")
        unit_price = parse_decimal_field(entry.unit_price, "unit_price")
        item = store.require_item(db, optional_text(entry.item_id))
        lines.append((item, description) + line_amounts(quantity, unit_price, None))

    codes = transaction_code_allocator(db).reserve(len(lines))
    txns: List[CashTransactionORM] = []
    try:
        for code, (item, description, quantity, unit_price, amount) in zip(codes, lines):
            txn = CashTransactionORM(
                transaction_code=code,
                transaction_date=transaction_date,
                item_id=item.id if item else None,
                description=description,
                quantity=quantity,
                unit_price=unit_price,
                amount=amount,
                line_type="INVENTORY",
                account_id=account.id,
                cash_account_id=cash_account.id,
                outlet_id=outlet_id,
            )
            db.add(txn)
            txns.append(txn)
            if item is not None:
                item.last_price = unit_price
        db.commit()
    except Exception:
        db.rollback()
        logger.error("purchase on %s failed, rolled back %d lines", transaction_date, len(lines))
        raise

    for txn in txns:
        db.refresh(txn)
    logger.info("purchase on %s: %d lines %s..%s", transaction_date, len(txns), codes[0], codes[-1])
    return txns


__all__ = ["create_purchase"]
