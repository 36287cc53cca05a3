"""Loan ORM — one borrowing of one volume, kept after return as history.

Invariants:
    - status is active | returned; overdue is derived (active and due_at < now)
    - extension_count is 0 or 1
    - returned_at is set iff status == returned
    - At most one active loan per volume

Design Decisions:
    - volume_id / title_id ON DELETE SET NULL: deleting a volume (never while on
      loan) or title keeps the loan history row
    - closing_note records how a loan was closed other than by return ("lost")
    - Partial unique index on volume_id where status = active backs the
      one-active-loan rule against concurrent checkouts
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from bibli.core.domain_types import LoanStatus
from bibli.db.base import Base


class Loan(Base):
    """Loan record."""
    __tablename__ = "loans"
    __table_args__ = (
        Index(
            "uq_loans_active_volume", "volume_id", unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("titles.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    volume_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("volumes.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    borrower_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("borrowers.id", ondelete="RESTRICT"),
        nullable=False, index=True,
    )
    loaned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    due_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
    )
    returned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LoanStatus.ACTIVE.value, index=True,
    )
    extension_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    closing_note: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
