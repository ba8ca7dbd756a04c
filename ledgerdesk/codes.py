"""Sequential human-readable codes (``PCS000001``, ``RMB000001``).

The next code is derived from the current maximum stored code: strip the
prefix, parse the number, add one and pad again. Two concurrent callers can read
the same maximum and collide on the unique column; the service runs with a
single accounting operator and accepts that. Swap ``MaxCodeAllocator`` for a
sequence-backed allocator if that ever changes.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ledgerdesk.db_models import CashTransactionORM, ReimbursementORM

TRANSACTION_PREFIX = "PCS"
BATCH_PREFIX = "RMB"
CODE_WIDTH = 6


def format_code(prefix: str, number: int, width: int = CODE_WIDTH) -> str:
    return f"{prefix}{number:0{width}d}"


def parse_code_number(code: Optional[str], prefix: str) -> int:
    """Numeric part of a stored code, 0 when there is none yet."""
    if not code:
        return 0
    if not code.startswith(prefix):
        raise ValueError(f"code {code!r} does not start with {prefix!r}")
    digits = code[len(prefix):]
    if not digits.isdigit():
        raise ValueError(f"code {code!r} has a non-numeric suffix")
    return int(digits)


class MaxCodeAllocator:
    """Allocates codes by reading the current maximum through ``read_max``."""

    def __init__(self, prefix: str, read_max: Callable[[], Optional[str]], width: int = CODE_WIDTH):
        self.prefix = prefix
        self.width = width
        self._read_max = read_max

    def reserve(self, count: int) -> List[str]:
        """Return ``count`` consecutive, strictly increasing codes after the current maximum."""
        if count <= 0:
            return []
        start = parse_code_number(self._read_max(), self.prefix) + 1
        return [format_code(self.prefix, n, self.width) for n in range(start, start + count)]

    def next_code(self) -> str:
        return self.reserve(1)[0]


def transaction_code_allocator(db: Session) -> MaxCodeAllocator:
    def read_max() -> Optional[str]:
        return (
            db.query(func.max(CashTransactionORM.transaction_code))
            .filter(CashTransactionORM.transaction_code.like(f"{TRANSACTION_PREFIX}%"))
            .scalar()
        )

    return MaxCodeAllocator(TRANSACTION_PREFIX, read_max)


def batch_code_allocator(db: Session) -> MaxCodeAllocator:
    def read_max() -> Optional[str]:
        return (
            db.query(func.max(ReimbursementORM.batch_id))
            .filter(ReimbursementORM.batch_id.like(f"{BATCH_PREFIX}%"))
            .scalar()
        )

    return MaxCodeAllocator(BATCH_PREFIX, read_max)


__all__ = [
    "BATCH_PREFIX",
    "CODE_WIDTH",
    "MaxCodeAllocator",
    "TRANSACTION_PREFIX",
    "batch_code_allocator",
    "format_code",
    "parse_code_number",
    "transaction_code_allocator",
]
