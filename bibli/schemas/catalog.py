"""Catalog Schemas — titles, volumes, authors, publishers, scan lookups.

Invariants:
    - Text fields are stripped; required text is non-empty after stripping
    - Classification strings are opaque: only non-emptiness is checked
    - ISBN checksum is validated by the catalog service (shared EAN-13 function),
      not here, so the failure maps to INVALID_CODE like every other bad code
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bibli.core.domain_types import (
    AuthorRole, CodeKind, VolumeCondition, VolumeState,
)
from bibli.schemas.duplicates import CandidateResponse


def _strip_optional(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if not v:
        raise ValueError("must not be empty or whitespace")
    return v


class TitleFields(BaseModel):
    """Optional metadata shared by create and update (pre-fetched lookups welcome)."""
    subtitle: str | None = Field(None, max_length=500)
    isbn: str | None = Field(None, max_length=20)
    publisher_id: UUID | None = None
    publication_year: int | None = Field(None, ge=0, le=9999)
    pages: int | None = Field(None, ge=1)
    language: str | None = Field(None, max_length=10)
    classification_code: str | None = Field(None, max_length=20)
    classification_category: str | None = Field(None, max_length=200)
    summary: str | None = None

    @field_validator(
        "subtitle", "isbn", "language",
        "classification_code", "classification_category",
    )
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class TitleCreate(TitleFields):
    """Title creation — display title required, authors in credit order."""
    title: str = Field(min_length=1, max_length=500)
    author_ids: list[UUID] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty or whitespace")
        return v


class TitleUpdate(TitleFields):
    """Partial update — only fields present in the request are applied."""
    title: str | None = Field(None, min_length=1, max_length=500)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class TitleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    subtitle: str | None = None
    isbn: str | None = None
    publisher_id: UUID | None = None
    publication_year: int | None = None
    pages: int | None = None
    language: str | None = None
    classification_code: str | None = None
    classification_category: str | None = None
    summary: str | None = None
    created_at: datetime
    updated_at: datetime
    volume_count: int = 0


class AuthorCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=200)
    last_name: str = Field(min_length=1, max_length=200)


class AuthorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str


class TitleAuthorLink(BaseModel):
    author_id: UUID
    role: AuthorRole = AuthorRole.MAIN_AUTHOR
    display_order: int = Field(1, ge=1)


class PublisherCreate(BaseModel):
    name: str = Field(min_length=1, max_length=300)


class PublisherResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str


class VolumeCreate(BaseModel):
    """New copy — barcode issued automatically unless supplied."""
    condition: VolumeCondition = VolumeCondition.GOOD
    location_id: UUID | None = None
    note: str | None = None
    barcode: str | None = Field(None, max_length=50)


class VolumeUpdate(BaseModel):
    """Partial update. Send location_id: null to unshelve."""
    condition: VolumeCondition | None = None
    location_id: UUID | None = None
    note: str | None = None
    state: VolumeState | None = None


class VolumeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title_id: UUID
    copy_number: int
    barcode: str
    condition: VolumeCondition
    location_id: UUID | None = None
    state: VolumeState
    note: str | None = None
    created_at: datetime


class VolumeWithTitle(VolumeResponse):
    """Scan projection: the volume plus enough title context to display it."""
    title: str
    isbn: str | None = None
    location_path: list[str] = Field(default_factory=list)
    active_loan_id: UUID | None = None
    due_at: datetime | None = None


class ScanResult(BaseModel):
    """Outcome of classifying and resolving a scanned code."""
    kind: CodeKind
    code: str
    volume: VolumeWithTitle | None = None
    titles: list[TitleResponse] = Field(default_factory=list)


class TitleCreated(BaseModel):
    """Creation result with the duplicate candidates raised against the catalog."""
    title: TitleResponse
    duplicate_candidates: list[CandidateResponse] = Field(default_factory=list)
