from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ledgerdesk import reporting
from ledgerdesk.db import get_db
from ledgerdesk.errors import ValidationError
from ledgerdesk.schemas import CashFlowReport, DashboardResponse, PnlReport
from ledgerdesk.validation import parse_date_field

router = APIRouter(prefix="/api/accounting", tags=["reports"])


def _date_range(start_date: Optional[str], end_date: Optional[str]):
    start = parse_date_field(start_date, "start_date", required=False)
    end = parse_date_field(end_date, "end_date", required=False)
    if start and end and end < start:
        raise ValidationError("end_date must not be before start_date", field="end_date")
    return start, end


@router.get("/reports/pnl", response_model=PnlReport)
def pnl(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    outlet_id: Optional[str] = None,
    db: Session = Depends(get_db),
) -> PnlReport:
    start, end = _date_range(start_date, end_date)
    return reporting.pnl_report(db, start, end, outlet_id)


@router.get("/reports/cashflow", response_model=CashFlowReport)
def cashflow(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    outlet_id: Optional[str] = None,
    db: Session = Depends(get_db),
) -> CashFlowReport:
    start, end = _date_range(start_date, end_date)
    return reporting.cash_flow_report(db, start, end, outlet_id)


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(db: Session = Depends(get_db)) -> DashboardResponse:
    return reporting.build_dashboard(db)
