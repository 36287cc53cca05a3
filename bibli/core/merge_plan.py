"""Merge Plan — pure field reconciliation and copy renumbering for title merges.

Invariants:
    - Primary's value wins whenever present; secondary fills only empty fields
    - renumber() returns exactly {1..n} over the combined volume set
    - Order is original creation time; ties keep primary's copies first, then by
      previous copy_number

Design Decisions:
    - Plan is computed before the mutating section; the shell applies it inside
      one atomic unit so any failure rolls the whole merge back
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from bibli.core.loan_policy import ensure_utc


MERGEABLE_FIELDS: tuple[str, ...] = (
    "subtitle",
    "isbn",
    "publisher_id",
    "publication_year",
    "pages",
    "language",
    "classification_code",
    "classification_category",
    "summary",
)


@dataclass(frozen=True)
class VolumeOrder:
    """Position data for one volume taking part in a merge."""
    id: UUID
    created_at: datetime
    from_primary: bool
    copy_number: int


def _is_empty(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def reconcile_fields(
    primary: dict[str, object],
    secondary: dict[str, object],
    fields: tuple[str, ...] = MERGEABLE_FIELDS,
) -> dict[str, object]:
    """Updates to apply to primary: secondary's values for primary's empty fields."""
    return {
        name: secondary[name]
        for name in fields
        if _is_empty(primary.get(name)) and not _is_empty(secondary.get(name))
    }


def renumber(volumes: list[VolumeOrder]) -> dict[UUID, int]:
    """New copy numbers 1..n by creation order."""
    ordered = sorted(
        volumes,
        key=lambda v: (
            ensure_utc(v.created_at), not v.from_primary, v.copy_number, str(v.id),
        ),
    )
    return {v.id: index for index, v in enumerate(ordered, start=1)}
