from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ledgerdesk import sales as service
from ledgerdesk.db import get_db
from ledgerdesk.db_models import SalesSummaryORM
from ledgerdesk.schemas import (
    PostingResponse,
    PostSalesRequest,
    SalesSummaryCreate,
    SalesSummaryRead,
    SalesSummaryUpdate,
    SyncPosRequest,
    SyncPosResponse,
)
from ledgerdesk.validation import fmt2, parse_date_field

router = APIRouter(prefix="/api/accounting/sales", tags=["sales"])


def _build_sales_read(row: SalesSummaryORM) -> SalesSummaryRead:
    return SalesSummaryRead(
        id=row.id,
        sales_date=row.sales_date,
        channel=row.channel,
        payment_method=row.payment_method,
        gross_sales=fmt2(row.gross_sales),
        discount_amount=fmt2(row.discount_amount),
        net_sales=fmt2(row.net_sales),
        cash_account_id=row.cash_account_id,
        outlet_id=row.outlet_id,
        source=row.source,
        posted_at=row.posted_at,
        created_at=row.created_at,
    )


@router.get("", response_model=List[SalesSummaryRead])
def list_sales(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    outlet_id: Optional[str] = None,
    source: Optional[str] = None,
    posted: Optional[bool] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[SalesSummaryRead]:
    rows = service.list_sales(
        db,
        start_date=parse_date_field(start_date, "start_date", required=False),
        end_date=parse_date_field(end_date, "end_date", required=False),
        outlet_id=outlet_id,
        source=source,
        posted=posted,
        limit=limit,
        offset=offset,
    )
    return [_build_sales_read(r) for r in rows]


@router.post("", response_model=SalesSummaryRead, status_code=status.HTTP_201_CREATED)
def create_sales_summary(payload: SalesSummaryCreate, db: Session = Depends(get_db)) -> SalesSummaryRead:
    return _build_sales_read(service.create_sales_summary(db, payload))


@router.post("/sync-pos", response_model=SyncPosResponse)
def sync_pos(payload: SyncPosRequest, db: Session = Depends(get_db)) -> SyncPosResponse:
    rows, skipped = service.sync_pos_sales(
        db, payload.start_date, payload.end_date, payload.outlet_id, payload.payment_method_accounts
    )
    return SyncPosResponse(synced=len(rows), skipped_posted=skipped, summaries=[_build_sales_read(r) for r in rows])


@router.post("/post", response_model=PostingResponse)
def post_sales(payload: PostSalesRequest, db: Session = Depends(get_db)) -> PostingResponse:
    result = service.post_sales(db, payload.sales_date, payload.account_id, payload.outlet_id)
    return PostingResponse(posted_count=result.posted_count, transaction_codes=result.codes)


@router.get("/{summary_id}", response_model=SalesSummaryRead)
def get_sales_summary(summary_id: str, db: Session = Depends(get_db)) -> SalesSummaryRead:
    return _build_sales_read(service.get_sales_summary(db, summary_id))


@router.put("/{summary_id}", response_model=SalesSummaryRead)
def update_sales_summary(summary_id: str, payload: SalesSummaryUpdate, db: Session = Depends(get_db)) -> SalesSummaryRead:
    return _build_sales_read(service.update_sales_summary(db, summary_id, payload))


@router.delete("/{summary_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sales_summary(summary_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_sales_summary(db, summary_id)
