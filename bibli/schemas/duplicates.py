"""Duplicate Schemas — candidates and merge requests."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, model_validator

from bibli.core.domain_types import DuplicateMethod, Resolution


class CandidateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title_a_id: UUID
    title_b_id: UUID
    method: DuplicateMethod
    confidence: float
    resolution: Resolution
    created_at: datetime
    resolved_at: datetime | None = None


class MergeRequest(BaseModel):
    """Merge secondary into primary. confirm must be true."""
    primary_id: UUID
    secondary_id: UUID
    confirm: bool = False

    @model_validator(mode="after")
    def validate_merge(self):
        if not self.confirm:
            raise ValueError("merge requires confirm=true")
        if self.primary_id == self.secondary_id:
            raise ValueError("cannot merge a title with itself")
        return self


class MergeResult(BaseModel):
    primary_id: UUID
    secondary_id: UUID
    volumes_moved: int
    loans_moved: int
    fields_adopted: list[str]
    candidate_id: UUID | None = None


class ScanSummary(BaseModel):
    """Outcome of a batch detection run."""
    titles_scanned: int
    pairs_matched: int
    candidates_created: int
    skipped_existing: int
