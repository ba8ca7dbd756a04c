from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

LineType = Literal["INVENTORY", "EXPENSE", "SALES", "ASSET", "LIABILITY", "CAPITAL", "DRAWING", "COGS"]
LINE_TYPES = ("INVENTORY", "EXPENSE", "SALES", "ASSET", "LIABILITY", "CAPITAL", "DRAWING", "COGS")

# Reimbursement lifecycle. Sales summaries and payroll entries only track posted_at.
DRAFT = "Draft"
READY = "Ready"
POSTED = "Posted"

PERIOD_TYPES = ("Daily", "Weekly", "Monthly")

CASH_IN_LINE_TYPES = ("SALES", "CAPITAL")
CASH_OUT_LINE_TYPES = ("INVENTORY", "EXPENSE", "COGS", "DRAWING")
PNL_LINE_TYPES = ("SALES", "COGS", "EXPENSE")


class Item(BaseModel):
    """Catalog entry used for matching chat descriptions."""

    id: str
    code: str
    name: str
    keywords: str = ""  # comma separated, e.g. "cabe,merah,tanjung"
    unit: Optional[str] = None


class ParsedItem(BaseModel):
    """One item line of a chat message."""

    raw_text: str
    description: str
    quantity: Decimal
    unit: str = ""
    total_price: Decimal
    line_no: int = 0


class ParsedMessage(BaseModel):
    expense_date: date
    items: List[ParsedItem] = Field(default_factory=list)


class MatchStatus(str, Enum):
    MATCHED = "Matched"
    AMBIGUOUS = "Ambiguous"
    UNMATCHED = "Unmatched"


class MatchResult(BaseModel):
    status: MatchStatus
    item: Optional[Item] = None
    candidates: List[Item] = Field(default_factory=list)


__all__ = [
    "CASH_IN_LINE_TYPES",
    "CASH_OUT_LINE_TYPES",
    "DRAFT",
    "Item",
    "LINE_TYPES",
    "LineType",
    "MatchResult",
    "MatchStatus",
    "PERIOD_TYPES",
    "PNL_LINE_TYPES",
    "POSTED",
    "ParsedItem",
    "ParsedMessage",
    "READY",
]
