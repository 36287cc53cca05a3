"""Loan Routes — checkout, return, extension, lost, and the active/overdue views.

Invariants:
    - Every transition answers with the LoanDetail projection (overdue computed now)
    - status=overdue lists most overdue first
"""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from bibli.api.dependencies import get_ledger
from bibli.schemas.loans import LoanByBarcode, LoanCreate, LoanDetail
from bibli.services.loan_ledger import LoanLedger

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/loans", tags=["loans"])


@router.post("", response_model=LoanDetail, status_code=status.HTTP_201_CREATED)
async def create_loan(body: LoanCreate, ledger: LoanLedger = Depends(get_ledger)):
    """Title-level checkout; the best available copy is chosen server-side."""
    loan = await ledger.create_loan(body.title_id, body.borrower_id)
    return await ledger.get_detail(loan.id)


@router.post(
    "/scan", response_model=LoanDetail, status_code=status.HTTP_201_CREATED,
)
async def create_loan_by_barcode(
    body: LoanByBarcode, ledger: LoanLedger = Depends(get_ledger),
):
    loan = await ledger.create_loan_by_barcode(body.barcode, body.borrower_id)
    return await ledger.get_detail(loan.id)


@router.get("", response_model=list[LoanDetail])
async def list_loans(
    status_filter: Literal["active", "overdue"] = Query("active", alias="status"),
    ledger: LoanLedger = Depends(get_ledger),
):
    if status_filter == "overdue":
        return await ledger.list_overdue()
    return await ledger.list_active()


@router.get("/{loan_id}", response_model=LoanDetail)
async def get_loan(loan_id: UUID, ledger: LoanLedger = Depends(get_ledger)):
    return await ledger.get_detail(loan_id)


@router.post("/{loan_id}/return", response_model=LoanDetail)
async def return_loan(loan_id: UUID, ledger: LoanLedger = Depends(get_ledger)):
    await ledger.return_loan(loan_id)
    return await ledger.get_detail(loan_id)


@router.post("/{loan_id}/extend", response_model=LoanDetail)
async def extend_loan(loan_id: UUID, ledger: LoanLedger = Depends(get_ledger)):
    await ledger.extend_loan(loan_id)
    return await ledger.get_detail(loan_id)


@router.post("/{loan_id}/lost", response_model=LoanDetail)
async def declare_lost(loan_id: UUID, ledger: LoanLedger = Depends(get_ledger)):
    await ledger.declare_lost(loan_id)
    return await ledger.get_detail(loan_id)
