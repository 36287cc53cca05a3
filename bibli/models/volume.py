"""Volume ORM — one physical, individually barcoded copy of a Title.

Invariants:
    - barcode is unique system-wide
    - (title_id, copy_number) is unique; copy numbers per title form {1..n}
    - state is one of available | loaned | lost | maintenance (overdue is never stored)
    - state == loaned iff exactly one active Loan references the volume

Design Decisions:
    - title_id ON DELETE RESTRICT: the catalog refuses to drop a title with copies
    - location_id ON DELETE SET NULL: deleting a location unshelves, never deletes
    - created_at drives renumbering order after a merge
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from bibli.core.domain_types import VolumeCondition, VolumeState
from bibli.db.base import Base


class Volume(Base):
    """Physical copy."""
    __tablename__ = "volumes"
    __table_args__ = (
        UniqueConstraint("title_id", "copy_number", name="uq_volume_title_copy"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("titles.id", ondelete="RESTRICT"),
        nullable=False, index=True,
    )
    copy_number: Mapped[int] = mapped_column(Integer, nullable=False)
    barcode: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True,
    )
    condition: Mapped[str] = mapped_column(
        String(20), nullable=False, default=VolumeCondition.GOOD.value,
    )
    location_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=VolumeState.AVAILABLE.value, index=True,
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
