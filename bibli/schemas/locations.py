"""Location Schemas — hierarchy nodes and the LocationWithPath projection."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LocationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    parent_id: UUID | None = None
    accessibility_rank: int | None = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class LocationUpdate(BaseModel):
    """Partial update of descriptive fields; moves go through LocationMove."""
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    accessibility_rank: int | None = Field(None, ge=0)


class LocationMove(BaseModel):
    """parent_id null makes the node a root."""
    parent_id: UUID | None = None


class LocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    parent_id: UUID | None = None
    accessibility_rank: int | None = None
    created_at: datetime


class LocationWithPath(LocationResponse):
    """Node + materialized path + depth, in pre-order when listed."""
    path: list[str]
    full_path: str
    depth: int
    child_count: int = 0
    volume_count: int = 0
