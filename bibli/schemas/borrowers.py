"""Borrower Schemas — borrowers and their policy groups."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BorrowerGroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    loan_duration_days: int = Field(21, gt=0, le=3650)
    description: str | None = None


class BorrowerGroupUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    loan_duration_days: int | None = Field(None, gt=0, le=3650)
    description: str | None = None


class BorrowerGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    loan_duration_days: int
    description: str | None = None


class BorrowerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, max_length=50)
    address: str | None = Field(None, max_length=300)
    city: str | None = Field(None, max_length=100)
    zip: str | None = Field(None, max_length=20)
    group_id: UUID | None = None


class BorrowerUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    email: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, max_length=50)
    address: str | None = Field(None, max_length=300)
    city: str | None = Field(None, max_length=100)
    zip: str | None = Field(None, max_length=20)
    group_id: UUID | None = None


class BorrowerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    zip: str | None = None
    group_id: UUID | None = None
    created_at: datetime
