"""Title ORM — the abstract bibliographic record shared by all physical copies.

Invariants:
    - title is non-nullable text; isbn, when set, is 13 digits passing EAN-13
    - classification_code / classification_category are opaque, non-empty when set
    - A title cannot be deleted while any Volume references it (enforced in
      services/catalog_store.py, backed by ON DELETE RESTRICT)

Design Decisions:
    - No ORM relationship to volumes: async sessions cannot lazy-load, and every
      read path queries volumes explicitly
    - Metadata fields arrive pre-fetched (external ISBN lookup is not called here)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from bibli.db.base import Base


class Title(Base):
    """Bibliographic record."""
    __tablename__ = "titles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    subtitle: Mapped[str | None] = mapped_column(String(500), nullable=True)
    isbn: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    publisher_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("publishers.id", ondelete="SET NULL"),
        nullable=True,
    )
    publication_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pages: Mapped[int | None] = mapped_column(Integer, nullable=True)
    language: Mapped[str | None] = mapped_column(String(10), nullable=True)
    classification_code: Mapped[str | None] = mapped_column(
        String(20), nullable=True,
    )
    classification_category: Mapped[str | None] = mapped_column(
        String(200), nullable=True,
    )
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
