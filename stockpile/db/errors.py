# stockpile/db/errors.py
"""
Errors raised by the data access layer.

Only the repository raises these; the endpoint factory translates them into
HTTP errors in a single step.
"""
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError

OVERLAP_MESSAGE = "Rental dates conflict with an existing rental"

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
EXCLUSION_VIOLATION = "23P01"
REFERENCE_VIOLATIONS = {"23503", "23502", "23514"}


class DataAccessError(Exception):
    default_message = "database error"

    def __init__(self, message: Optional[str] = None, table: Optional[str] = None):
        self.message = message or self.default_message
        self.table = table
        super().__init__(self.message)


class MissingDataError(DataAccessError):
    default_message = "no data to write"


class RowNotFoundError(DataAccessError):
    default_message = "row not found"


class UnknownColumnsError(DataAccessError):
    default_message = "unknown columns"

    def __init__(self, columns: Iterable[str] = (), table: Optional[str] = None, message: Optional[str] = None):
        self.columns = sorted(columns)
        super().__init__(message or f"unknown columns: {', '.join(self.columns)}", table)


class InvalidValueError(UnknownColumnsError):
    """A value cannot be converted to its column's type."""

    def __init__(self, column: str, value, table: Optional[str] = None):
        self.value = value
        super().__init__([column], table, f"invalid value for {column}: {value!r}")


class InvalidReferenceError(DataAccessError):
    default_message = "invalid reference"


class DuplicateRowError(DataAccessError):
    default_message = "duplicate row"


class OverlapError(DataAccessError):
    default_message = OVERLAP_MESSAGE


class ScopeViolationError(DataAccessError):
    default_message = "row belongs to another organization"


def classify_integrity_error(exc: IntegrityError, table: Optional[str] = None) -> DataAccessError:
    """Map a driver integrity error onto the data access error taxonomy."""
    orig = exc.orig
    message = str(orig)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)

    if sqlstate == EXCLUSION_VIOLATION or OVERLAP_MESSAGE in message:
        return OverlapError(table=table)
    if sqlstate == UNIQUE_VIOLATION or "UNIQUE constraint failed" in message:
        return DuplicateRowError(message, table)
    if sqlstate in REFERENCE_VIOLATIONS or any(
        marker in message
        for marker in ("FOREIGN KEY constraint failed", "NOT NULL constraint failed", "CHECK constraint failed")
    ):
        return InvalidReferenceError(message, table)
    return DataAccessError(message, table)
