"""DuplicateCandidate ORM — a suspected pair of duplicate titles.

Invariants:
    - (title_a_id, title_b_id) stored in canonical order and unique: one record
      per unordered pair, ever
    - resolution is pending | confirmed | ignored | merged; ignored and merged are
      terminal and never re-raised by later scans
    - Never auto-deleted

Design Decisions:
    - Title ids kept without foreign keys: a merged pair outlives its secondary
      title as history
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Float, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from bibli.core.domain_types import Resolution
from bibli.db.base import Base


class DuplicateCandidate(Base):
    """Suspected duplicate pair."""
    __tablename__ = "duplicate_candidates"
    __table_args__ = (
        UniqueConstraint("title_a_id", "title_b_id", name="uq_duplicate_pair"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title_a_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    title_b_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    method: Mapped[str] = mapped_column(String(30), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    resolution: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Resolution.PENDING.value, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
