from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ledgerdesk import payroll as service
from ledgerdesk.db import get_db
from ledgerdesk.db_models import PayrollEntryORM
from ledgerdesk.schemas import PayrollBatchCreate, PayrollEntryRead, PayrollEntryUpdate, PostingResponse, PostPayrollRequest
from ledgerdesk.validation import fmt2, parse_date_field

router = APIRouter(prefix="/api/accounting/payroll", tags=["payroll"])


def _build_payroll_read(row: PayrollEntryORM) -> PayrollEntryRead:
    return PayrollEntryRead(
        id=row.id,
        payroll_date=row.payroll_date,
        period_type=row.period_type,
        period_ref=row.period_ref,
        employee_name=row.employee_name,
        gross_pay=fmt2(row.gross_pay),
        payment_method=row.payment_method,
        cash_account_id=row.cash_account_id,
        outlet_id=row.outlet_id,
        posted_at=row.posted_at,
        created_at=row.created_at,
    )


@router.get("", response_model=List[PayrollEntryRead])
def list_payroll(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    period_type: Optional[str] = None,
    outlet_id: Optional[str] = None,
    posted: Optional[bool] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[PayrollEntryRead]:
    rows = service.list_payroll(
        db,
        start_date=parse_date_field(start_date, "start_date", required=False),
        end_date=parse_date_field(end_date, "end_date", required=False),
        period_type=period_type,
        outlet_id=outlet_id,
        posted=posted,
        limit=limit,
        offset=offset,
    )
    return [_build_payroll_read(r) for r in rows]


@router.post("/batch", response_model=List[PayrollEntryRead], status_code=status.HTTP_201_CREATED)
def create_payroll_batch(payload: PayrollBatchCreate, db: Session = Depends(get_db)) -> List[PayrollEntryRead]:
    return [_build_payroll_read(r) for r in service.create_payroll_batch(db, payload)]


@router.post("/post", response_model=PostingResponse)
def post_payroll(payload: PostPayrollRequest, db: Session = Depends(get_db)) -> PostingResponse:
    result = service.post_payroll(db, payload.ids, payload.account_id)
    return PostingResponse(posted_count=result.posted_count, transaction_codes=result.codes)


@router.get("/{entry_id}", response_model=PayrollEntryRead)
def get_payroll_entry(entry_id: str, db: Session = Depends(get_db)) -> PayrollEntryRead:
    return _build_payroll_read(service.get_payroll_entry(db, entry_id))


@router.put("/{entry_id}", response_model=PayrollEntryRead)
def update_payroll_entry(entry_id: str, payload: PayrollEntryUpdate, db: Session = Depends(get_db)) -> PayrollEntryRead:
    return _build_payroll_read(service.update_payroll_entry(db, entry_id, payload))


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payroll_entry(entry_id: str, db: Session = Depends(get_db)) -> None:
    service.delete_payroll_entry(db, entry_id)
