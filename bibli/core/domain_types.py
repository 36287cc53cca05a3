"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - TitleId, VolumeId, LocationId, ... wrap UUIDs — never use bare UUID in domain logic
    - Confidence is bounded 0.0–1.0
    - All valid states encoded as Enums — no raw string matching
    - VolumeCondition.rank is the explicit allocation ordinal (Excellent=0 … Damaged=4)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: stored in String columns and serialized to JSON without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

TitleId = NewType("TitleId", UUID)
VolumeId = NewType("VolumeId", UUID)
LocationId = NewType("LocationId", UUID)
BorrowerId = NewType("BorrowerId", UUID)
LoanId = NewType("LoanId", UUID)
CandidateId = NewType("CandidateId", UUID)


# ─── Value Types ─────────────────────────────────────────────────

Confidence = NewType("Confidence", float)   # 0.0–1.0
Barcode = NewType("Barcode", str)


# ─── Enums ───────────────────────────────────────────────────────

class VolumeCondition(str, Enum):
    """Physical condition of a volume, best first."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    DAMAGED = "damaged"

    @property
    def rank(self) -> int:
        return _CONDITION_ORDER.index(self)


_CONDITION_ORDER = list(VolumeCondition)


class VolumeState(str, Enum):
    """Volume lifecycle states — maps to DB `state` column.

    OVERDUE is never stored; it is projected at read time from the active loan.
    """
    AVAILABLE = "available"
    LOANED = "loaned"
    OVERDUE = "overdue"
    LOST = "lost"
    MAINTENANCE = "maintenance"


# States an operator may set by hand on a volume that is not on loan
OPERATOR_VOLUME_STATES = frozenset({
    VolumeState.AVAILABLE, VolumeState.MAINTENANCE, VolumeState.LOST,
})


class LoanStatus(str, Enum):
    """Persisted loan states. Overdue is derived, never stored."""
    ACTIVE = "active"
    RETURNED = "returned"


class DuplicateMethod(str, Enum):
    """How a duplicate candidate was detected, strongest first."""
    IDENTICAL_ISBN = "identical_isbn"
    TITLE_AUTHOR_MATCH = "title_author_match"
    FUZZY_MATCH = "fuzzy_match"


class Resolution(str, Enum):
    """Duplicate candidate resolution. IGNORED and MERGED are terminal."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IGNORED = "ignored"
    MERGED = "merged"

    @property
    def is_terminal(self) -> bool:
        return self in (Resolution.IGNORED, Resolution.MERGED)


class AuthorRole(str, Enum):
    """Contribution of an author to a title."""
    MAIN_AUTHOR = "main_author"
    CO_AUTHOR = "co_author"
    TRANSLATOR = "translator"
    ILLUSTRATOR = "illustrator"
    EDITOR = "editor"


class CodeKind(str, Enum):
    """Result of classifying a scanned code."""
    VOLUME_CODE = "volume_code"
    ISBN_CODE = "isbn_code"
    INVALID = "invalid"


class LocationAccessibility(str, Enum):
    """Allocation policy for ranking volumes by where they are shelved."""
    RANK = "rank"     # explicit per-location rank when set, else depth
    DEPTH = "depth"   # tree depth only
