"""Initial schema — catalog, locations, borrowers, loans, duplicates, barcode counter.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union
import uuid

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DEFAULT_GROUPS = (
    ("Regular", 21, "Standard loan period"),
    ("Premium", 42, "Extended loan period"),
    ("Staff", 90, "Library staff"),
    ("Student", 14, "Short loan period"),
)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "publishers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(300), nullable=False, index=True),
        _created_at(),
    )

    op.create_table(
        "titles",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False, index=True),
        sa.Column("subtitle", sa.String(500), nullable=True),
        sa.Column("isbn", sa.String(20), nullable=True, index=True),
        sa.Column("publisher_id", UUID(as_uuid=True), sa.ForeignKey("publishers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("publication_year", sa.Integer, nullable=True),
        sa.Column("pages", sa.Integer, nullable=True),
        sa.Column("language", sa.String(10), nullable=True),
        sa.Column("classification_code", sa.String(20), nullable=True),
        sa.Column("classification_category", sa.String(200), nullable=True),
        sa.Column("summary", sa.Text, nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "authors",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("first_name", sa.String(200), nullable=False),
        sa.Column("last_name", sa.String(200), nullable=False, index=True),
        _created_at(),
    )

    op.create_table(
        "title_authors",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title_id", UUID(as_uuid=True), sa.ForeignKey("titles.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("author_id", UUID(as_uuid=True), sa.ForeignKey("authors.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="main_author"),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="1"),
        sa.UniqueConstraint("title_id", "author_id", "role", name="uq_title_author_role"),
    )

    op.create_table(
        "locations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, index=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("parent_id", UUID(as_uuid=True), sa.ForeignKey("locations.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("accessibility_rank", sa.Integer, nullable=True),
        _created_at(),
    )

    op.create_table(
        "volumes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title_id", UUID(as_uuid=True), sa.ForeignKey("titles.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("copy_number", sa.Integer, nullable=False),
        sa.Column("barcode", sa.String(50), nullable=False, unique=True, index=True),
        sa.Column("condition", sa.String(20), nullable=False, server_default="good"),
        sa.Column("location_id", UUID(as_uuid=True), sa.ForeignKey("locations.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("state", sa.String(20), nullable=False, server_default="available", index=True),
        sa.Column("note", sa.Text, nullable=True),
        _created_at(),
        sa.UniqueConstraint("title_id", "copy_number", name="uq_volume_title_copy"),
    )

    groups = op.create_table(
        "borrower_groups",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("loan_duration_days", sa.Integer, nullable=False, server_default="21"),
        sa.Column("description", sa.Text, nullable=True),
        _created_at(),
        sa.CheckConstraint("loan_duration_days > 0", name="ck_group_duration_positive"),
    )

    op.create_table(
        "borrowers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, index=True),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("address", sa.String(300), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("zip", sa.String(20), nullable=True),
        sa.Column("group_id", UUID(as_uuid=True), sa.ForeignKey("borrower_groups.id", ondelete="SET NULL"), nullable=True, index=True),
        _created_at(),
    )

    op.create_table(
        "loans",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title_id", UUID(as_uuid=True), sa.ForeignKey("titles.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("volume_id", UUID(as_uuid=True), sa.ForeignKey("volumes.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("borrower_id", UUID(as_uuid=True), sa.ForeignKey("borrowers.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("loaned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("returned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active", index=True),
        sa.Column("extension_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("closing_note", sa.String(50), nullable=True),
        _created_at(),
    )
    # at most one active loan per volume
    op.create_index(
        "uq_loans_active_volume", "loans", ["volume_id"], unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "duplicate_candidates",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title_a_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("title_b_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("method", sa.String(30), nullable=False),
        sa.Column("confidence", sa.Float, nullable=False),
        sa.Column("resolution", sa.String(20), nullable=False, server_default="pending", index=True),
        _created_at(),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("title_a_id", "title_b_id", name="uq_duplicate_pair"),
    )

    sequences = op.create_table(
        "barcode_sequences",
        sa.Column("name", sa.String(50), primary_key=True),
        sa.Column("next_value", sa.BigInteger, nullable=False, server_default="0"),
    )

    op.bulk_insert(groups, [
        {"id": uuid.uuid4(), "name": name, "loan_duration_days": days, "description": desc}
        for name, days, desc in DEFAULT_GROUPS
    ])
    op.bulk_insert(sequences, [{"name": "volume", "next_value": 0}])


def downgrade() -> None:
    op.drop_table("barcode_sequences")
    op.drop_table("duplicate_candidates")
    op.drop_index("uq_loans_active_volume", table_name="loans")
    op.drop_table("loans")
    op.drop_table("borrowers")
    op.drop_table("borrower_groups")
    op.drop_table("volumes")
    op.drop_table("locations")
    op.drop_table("title_authors")
    op.drop_table("authors")
    op.drop_table("titles")
    op.drop_table("publishers")
