"""Loan Policy — due dates, the one-time extension rule, derived overdue status.

Invariants:
    - due = loan time + duration_days (calendar days)
    - An extension adds one full policy period of the borrower's group
    - MAX_EXTENSIONS (1) is the single source of truth for the extension limit
    - Overdue is derived: ACTIVE and due < now, recomputed at every read
    - All comparisons happen on timezone-aware UTC datetimes

Design Decisions:
    - ensure_utc: SQLite hands back naive datetimes for DateTime(timezone=True)
      columns, PostgreSQL hands back aware ones; both are stored as UTC
"""

from datetime import datetime, timedelta, timezone

from bibli.core.domain_types import LoanStatus
from bibli.core.errors import AlreadyExtendedError, AlreadyReturnedError


MAX_EXTENSIONS: int = 1


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def compute_due(loaned_at: datetime, duration_days: int) -> datetime:
    return ensure_utc(loaned_at) + timedelta(days=duration_days)


def is_overdue(status: str, due_at: datetime, now: datetime) -> bool:
    return status == LoanStatus.ACTIVE and ensure_utc(due_at) < ensure_utc(now)


def days_overdue(status: str, due_at: datetime, now: datetime) -> int:
    """Whole days past due; 0 when not overdue."""
    if not is_overdue(status, due_at, now):
        return 0
    return (ensure_utc(now) - ensure_utc(due_at)).days


def check_open(loan_id: object, status: str) -> None:
    """Rule: return/extend/lost require an ACTIVE loan."""
    if status != LoanStatus.ACTIVE:
        raise AlreadyReturnedError(loan_id)


def extended_due(
    loan_id: object,
    status: str,
    extension_count: int,
    due_at: datetime,
    duration_days: int,
) -> datetime:
    """New due date for a single extension. Pure — caller applies it."""
    check_open(loan_id, status)
    if extension_count >= MAX_EXTENSIONS:
        raise AlreadyExtendedError(loan_id, extension_count)
    return ensure_utc(due_at) + timedelta(days=duration_days)
