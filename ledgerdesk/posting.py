"""Draft-to-ledger posting shared by reimbursements, sales and payroll.

Every flow keeps its own draft table but posts the same way: pick the postable
rows, turn each one into a ``CashTransactionORM`` carrying the next sequential
code, then flag the rows as posted. ``post_drafts`` does that inside a single
commit so a failure leaves neither half-written ledger lines nor half-flagged
drafts behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from ledgerdesk.codes import MaxCodeAllocator, transaction_code_allocator
from ledgerdesk.db_models import CashTransactionORM

logger = logging.getLogger("ledgerdesk.posting")


@dataclass
class PostingResult:
    posted_count: int
    transactions: List[CashTransactionORM] = field(default_factory=list)

    @property
    def codes(self) -> List[str]:
        return [t.transaction_code for t in self.transactions]


class DraftLedgerSource:
    """One posting variant. Subclasses select rows, map them and mark them."""

    name = "drafts"

    def select_postable(self, db: Session) -> List[Any]:
        raise NotImplementedError

    def to_transaction(self, row: Any, code: str) -> CashTransactionORM:
        raise NotImplementedError

    def mark_posted(self, db: Session, rows: List[Any], posted_at: datetime) -> None:
        for row in rows:
            row.posted_at = posted_at


def post_drafts(
    db: Session,
    source: DraftLedgerSource,
    allocator: Optional[MaxCodeAllocator] = None,
    now: Optional[datetime] = None,
) -> PostingResult:
    rows = source.select_postable(db)
    if not rows:
        logger.info("posting %s: nothing to post", source.name)
        return PostingResult(posted_count=0)

    allocator = allocator or transaction_code_allocator(db)
    posted_at = now or datetime.utcnow()
    transactions: List[CashTransactionORM] = []
    try:
        codes = allocator.reserve(len(rows))
        for row, code in zip(rows, codes):
            txn = source.to_transaction(row, code)
            db.add(txn)
            transactions.append(txn)
        db.flush()
        source.mark_posted(db, rows, posted_at)
        db.commit()
    except Exception:
        db.rollback()
        logger.error("posting %s failed, rolled back %d rows", source.name, len(rows))
        raise

    for txn in transactions:
        db.refresh(txn)
    logger.info(
        "posting %s: %d transactions %s..%s",
        source.name,
        len(transactions),
        transactions[0].transaction_code,
        transactions[-1].transaction_code,
    )
    return PostingResult(posted_count=len(rows), transactions=transactions)


__all__ = ["DraftLedgerSource", "PostingResult", "post_drafts"]
