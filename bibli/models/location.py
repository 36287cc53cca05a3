"""Location ORM — node of the storage hierarchy (House > Room > Shelf).

Invariants:
    - parent_id is NULL for roots; no node is its own ancestor (checked in
      core/location_paths.py before every move)
    - accessibility_rank, when set, overrides tree depth for allocation

Design Decisions:
    - parent_id ON DELETE SET NULL: deleting a node detaches children as roots
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from bibli.db.base import Base


class Location(Base):
    """Storage node."""
    __tablename__ = "locations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    accessibility_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
