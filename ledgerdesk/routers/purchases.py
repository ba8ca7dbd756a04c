from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ledgerdesk import ledger
from ledgerdesk.db import get_db
from ledgerdesk.purchases import create_purchase
from ledgerdesk.schemas import PurchaseCreate, PurchaseResponse

router = APIRouter(prefix="/api/accounting/purchases", tags=["purchases"])


@router.post("", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED)
def create(payload: PurchaseCreate, db: Session = Depends(get_db)) -> PurchaseResponse:
    txns = create_purchase(db, payload)
    return PurchaseResponse(transactions=[ledger.build_transaction_read(t) for t in txns])
