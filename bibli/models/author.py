"""Author ORM — people credited on titles, linked through TitleAuthor.

Invariants:
    - (title_id, author_id, role) is unique
    - The primary author of a title is its lowest display_order main_author link
      (falling back to the lowest display_order of any role)

Design Decisions:
    - Links cascade with the title: deleting a title drops its credits, never the author
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from bibli.core.domain_types import AuthorRole
from bibli.db.base import Base


class Author(Base):
    """Credited person."""
    __tablename__ = "authors"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    first_name: Mapped[str] = mapped_column(String(200), nullable=False)
    last_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


class TitleAuthor(Base):
    """Credit of an author on a title."""
    __tablename__ = "title_authors"
    __table_args__ = (
        UniqueConstraint("title_id", "author_id", "role", name="uq_title_author_role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("titles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("authors.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AuthorRole.MAIN_AUTHOR.value,
    )
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
