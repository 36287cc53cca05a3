"""Loan Schemas — loan requests and the LoanDetail projection.

Invariants:
    - is_overdue is computed at read time, never accepted from clients
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from bibli.core.domain_types import LoanStatus


class LoanCreate(BaseModel):
    """Title-level request: the allocation engine picks the volume."""
    title_id: UUID
    borrower_id: UUID


class LoanByBarcode(BaseModel):
    """Scan checkout of one specific volume."""
    barcode: str
    borrower_id: UUID


class LoanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title_id: UUID | None = None
    volume_id: UUID | None = None
    borrower_id: UUID
    loaned_at: datetime
    due_at: datetime
    returned_at: datetime | None = None
    status: LoanStatus
    extension_count: int
    closing_note: str | None = None


class LoanDetail(LoanResponse):
    """Loan plus display fields of its title, volume and borrower."""
    title: str | None = None
    barcode: str | None = None
    borrower_name: str
    borrower_email: str | None = None
    is_overdue: bool
    days_overdue: int = 0
