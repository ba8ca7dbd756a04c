"""Typed errors raised by the accounting core.

Each error carries a machine-readable ``code`` so the API layer can map it to
an HTTP status without inspecting the message text.
"""

from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    code = "LEDGER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Missing or malformed field, unknown enum value, or dangling reference."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class MessageParseError(LedgerError):
    """A chat message could not be read as a date line followed by item lines."""

    code = "PARSE_ERROR"

    def __init__(self, message: str, line_no: Optional[int] = None, line: Optional[str] = None):
        super().__init__(message)
        self.line_no = line_no
        self.line = line


class ConflictError(LedgerError):
    """Duplicate natural key or an operation the row's state does not allow."""

    code = "CONFLICT"


class NotFoundError(LedgerError):
    """Unknown id, or an id whose status disqualifies the requested operation."""

    code = "NOT_FOUND"


__all__ = ["ConflictError", "LedgerError", "MessageParseError", "NotFoundError", "ValidationError"]
