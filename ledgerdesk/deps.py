from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ledgerdesk import accounting_store as store
from ledgerdesk.config import get_settings
from ledgerdesk.db import get_db
from ledgerdesk.item_matcher import ItemMatcher, build_matcher

logger = logging.getLogger("ledgerdesk.deps")


def get_app_settings() -> Dict[str, Any]:
    return get_settings()


def load_item_matcher(db: Session) -> ItemMatcher:
    matcher = build_matcher(store.list_active_items(db))
    logger.info("item matcher loaded with %d catalog items", len(matcher))
    return matcher


def get_item_matcher(request: Request, db: Session = Depends(get_db)) -> ItemMatcher:
    """Catalog matcher, built once per process on first use and kept on app state."""
    matcher = getattr(request.app.state, "item_matcher", None)
    if matcher is None:
        matcher = load_item_matcher(db)
        request.app.state.item_matcher = matcher
    return matcher
