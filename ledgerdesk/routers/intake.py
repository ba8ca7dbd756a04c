from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ledgerdesk.chat_intake import ingest_message
from ledgerdesk.db import get_db
from ledgerdesk.deps import get_app_settings, get_item_matcher
from ledgerdesk.item_matcher import ItemMatcher
from ledgerdesk.schemas import IntakeMessageRequest, IntakeResponse

router = APIRouter(prefix="/api/accounting/intake", tags=["intake"])


@router.post("/message", response_model=IntakeResponse)
def intake_message(
    payload: IntakeMessageRequest,
    response: Response,
    db: Session = Depends(get_db),
    matcher: ItemMatcher = Depends(get_item_matcher),
    settings: Dict[str, Any] = Depends(get_app_settings),
) -> IntakeResponse:
    """Turn a chat expense message into Draft reimbursements.

    A message that cannot be parsed answers 400 with the same envelope, so the
    chat bot can relay ``reply`` to the sender either way.
    """
    result = ingest_message(db, matcher, settings, payload)
    if not result.ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return result
