from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ledgerdesk import reimbursements as service
from ledgerdesk.db import get_db
from ledgerdesk.db_models import ReimbursementORM
from ledgerdesk.schemas import (
    AssignBatchRequest,
    AssignBatchResponse,
    PostBatchRequest,
    PostingResponse,
    ReimbursementCreate,
    ReimbursementRead,
    ReimbursementUpdate,
)
from ledgerdesk.validation import fmt2, parse_date_field

router = APIRouter(prefix="/api/accounting/reimbursements", tags=["reimbursements"])


def _build_reimbursement_read(row: ReimbursementORM) -> ReimbursementRead:
    return ReimbursementRead(
        id=row.id,
        batch_id=row.batch_id,
        expense_date=row.expense_date,
        item_id=row.item_id,
        description=row.description,
        qty=str(row.qty),
        unit_price=str(row.unit_price),
        amount=fmt2(row.amount),
        line_type=row.line_type,
        account_id=row.account_id,
        status=row.status,
        requester=row.requester,
        receipt_link=row.receipt_link,
        posted_at=row.posted_at,
        created_at=row.created_at,
    )


@router.get("", response_model=List[ReimbursementRead])
def list_reimbursements(
    status_filter: Optional[str] = Query(None, alias="status"),
    requester: Optional[str] = None,
    batch_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[ReimbursementRead]:
    rows = service.list_reimbursements(
        db,
        status=status_filter,
        requester=requester,
        batch_id=batch_id,
        start_date=parse_date_field(start_date, "start_date", required=False),
        end_date=parse_date_field(end_date, "end_date", required=False),
        limit=limit,
        offset=offset,
    )
    return [_build_reimbursement_read(r) for r in rows]


@router.post("", response_model=ReimbursementRead, status_code=status.HTTP_201_CREATED)
def create_reimbursement(payload: ReimbursementCreate, db: Session = Depends(get_db)) -> ReimbursementRead:
    return _build_reimbursement_read(service.create_reimbursement(db, payload))


@router.post("/batch", response_model=AssignBatchResponse)
def assign_batch(payload: AssignBatchRequest, db: Session = Depends(get_db)) -> AssignBatchResponse:
    batch_id, updated = service.assign_batch(db, payload.ids)
    return AssignBatchResponse(batch_id=batch_id, updated=updated)


@router.post("/batch/post", response_model=PostingResponse)
def post_batch(payload: PostBatchRequest, db: Session = Depends(get_db)) -> PostingResponse:
    result = service.post_batch(db, payload.batch_id, payload.payment_date, payload.cash_account_id)
    return PostingResponse(posted_count=result.posted_count, transaction_codes=result.codes)


@router.get("/{reimbursement_id}", response_model=ReimbursementRead)
def get_reimbursement(reimbursement_id: str, db: Session = Depends(get_db)) -> ReimbursementRead:
    return _build_reimbursement_read(service.get_reimbursement(db, reimbursement_id))


@router.put("/{reimbursement_id}", response_model=ReimbursementRead)
def update_reimbursement(
    reimbursement_id: str, payload: ReimbursementUpdate, db: Session = Depends(get_db)
) -> ReimbursementRead:
    return _build_reimbursement_read(service.update_reimbursement(db, reimbursement_id, payload))


@router.delete("/{reimbursement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reimbursement(reimbursement_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_reimbursement(db, reimbursement_id)
