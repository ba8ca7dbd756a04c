"""FastAPI service for the accounting back office.

Chat expense intake, purchase entry, reimbursement / sales / payroll posting into the cash
ledger, and the monthly P&L and cash-flow reports, all under
``/api/accounting``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ledgerdesk import __version__
from ledgerdesk.config import get_settings
from ledgerdesk.db import SessionLocal, init_db
from ledgerdesk.deps import load_item_matcher
from ledgerdesk.errors import ConflictError, LedgerError, MessageParseError, NotFoundError, ValidationError
from ledgerdesk.routers import intake as intake_router
from ledgerdesk.routers import master as master_router
from ledgerdesk.routers import payroll as payroll_router
from ledgerdesk.routers import purchases as purchases_router
from ledgerdesk.routers import reimbursements as reimbursements_router
from ledgerdesk.routers import reports as reports_router
from ledgerdesk.routers import sales as sales_router
from ledgerdesk.routers import transactions as transactions_router
from ledgerdesk.seed import seed_demo_data

settings = get_settings()

logger = logging.getLogger("ledgerdesk")
logging.basicConfig(level=settings["log_level"])

app = FastAPI(
    title="Ledgerdesk Accounting API",
    description="Chat expense intake, draft-to-ledger posting and monthly reports.",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings["allowed_origins"] or ["*"],
    allow_origin_regex=settings["allow_origin_regex"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(intake_router.router)
app.include_router(reimbursements_router.router)
app.include_router(sales_router.router)
app.include_router(payroll_router.router)
app.include_router(purchases_router.router)
app.include_router(transactions_router.router)
app.include_router(reports_router.router)
app.include_router(master_router.router)

ERROR_STATUS = {
    ValidationError: 400,
    MessageParseError: 400,
    NotFoundError: 404,
    ConflictError: 409,
}


@app.on_event("startup")
async def startup_event() -> None:
    init_db()
    if settings["seed_demo_data"]:
        seed_demo_data()
    with SessionLocal() as db:
        app.state.item_matcher = load_item_matcher(db)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.exception_handler(LedgerError)
async def ledger_error_handler(_, exc: LedgerError):  # type: ignore[override]
    status_code = ERROR_STATUS.get(type(exc), 400)
    payload: Dict[str, Any] = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, ValidationError) and exc.field:
        payload["field"] = exc.field
    if isinstance(exc, MessageParseError) and exc.line_no:
        payload["line"] = exc.line_no
    if status_code != 404:
        logger.info("%s: %s", exc.code, exc.message)
    return fastapi_response(status_code, payload)


@app.exception_handler(HTTPException)
async def http_error_handler(_, exc: HTTPException):  # type: ignore[override]
    return fastapi_response(exc.status_code, {"detail": exc.detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(_, exc: Exception):  # type: ignore[override]
    logger.exception("Unhandled error: %s", exc)
    return fastapi_response(500, {"detail": "Internal server error"})


def fastapi_response(status_code: int, payload: Dict[str, Any]):
    return JSONResponse(status_code=status_code, content=payload)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("ledgerdesk.app:app", host="0.0.0.0", port=settings["port"])
