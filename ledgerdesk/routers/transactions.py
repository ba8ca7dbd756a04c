from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ledgerdesk import accounting_store as store
from ledgerdesk import ledger
from ledgerdesk.db import get_db
from ledgerdesk.schemas import TransactionCreate, TransactionRead
from ledgerdesk.validation import parse_date_field

router = APIRouter(prefix="/api/accounting/transactions", tags=["transactions"])


@router.get("", response_model=List[TransactionRead])
def list_transactions(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    line_type: Optional[str] = None,
    account_id: Optional[str] = None,
    cash_account_id: Optional[str] = None,
    outlet_id: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[TransactionRead]:
    rows = store.list_transactions(
        db,
        limit=limit,
        offset=offset,
        start_date=parse_date_field(start_date, "start_date", required=False),
        end_date=parse_date_field(end_date, "end_date", required=False),
        line_type=line_type,
        account_id=account_id,
        cash_account_id=cash_account_id,
        outlet_id=outlet_id,
        search=search,
    )
    return [ledger.build_transaction_read(t) for t in rows]


@router.post("", response_model=TransactionRead, status_code=status.HTTP_201_CREATED)
def create_transaction(payload: TransactionCreate, db: Session = Depends(get_db)) -> TransactionRead:
    return ledger.build_transaction_read(ledger.create_manual_transaction(db, payload))


@router.get("/{transaction_id}", response_model=TransactionRead)
def get_transaction(transaction_id: str, db: Session = Depends(get_db)) -> TransactionRead:
    return ledger.build_transaction_read(ledger.get_transaction(db, transaction_id))
