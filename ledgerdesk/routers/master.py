"""Read-only views of the chart of accounts, cash accounts and item catalog."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ledgerdesk import accounting_store as store
from ledgerdesk.db import get_db
from ledgerdesk.db_models import ItemORM
from ledgerdesk.schemas import AccountRead, CashAccountRead, ItemRead

router = APIRouter(prefix="/api/accounting/master", tags=["master"])


@router.get("/accounts", response_model=List[AccountRead])
def list_accounts(include_inactive: bool = False, db: Session = Depends(get_db)) -> List[AccountRead]:
    return [
        AccountRead(
            id=a.id,
            account_code=a.account_code,
            account_name=a.account_name,
            account_type=a.account_type,
            line_type=a.line_type,
            is_active=bool(a.is_active),
        )
        for a in store.list_accounts(db, include_inactive=include_inactive)
    ]


@router.get("/cash-accounts", response_model=List[CashAccountRead])
def list_cash_accounts(include_inactive: bool = False, db: Session = Depends(get_db)) -> List[CashAccountRead]:
    return [
        CashAccountRead(
            id=c.id,
            cash_account_code=c.cash_account_code,
            cash_account_name=c.cash_account_name,
            bank_name=c.bank_name,
            ownership=c.ownership,
            is_active=bool(c.is_active),
        )
        for c in store.list_cash_accounts(db, include_inactive=include_inactive)
    ]


@router.get("/items", response_model=List[ItemRead])
def list_items(include_inactive: bool = False, db: Session = Depends(get_db)) -> List[ItemRead]:
    if include_inactive:
        rows = db.query(ItemORM).order_by(ItemORM.item_code).all()
    else:
        rows = store.list_active_items(db)
    return [
        ItemRead(
            id=i.id,
            item_code=i.item_code,
            item_name=i.item_name,
            item_category=i.item_category,
            unit=i.unit,
            keywords=i.keywords or "",
            last_price=str(i.last_price) if i.last_price is not None else None,
            is_active=bool(i.is_active),
        )
        for i in rows
    ]
