"""Borrower Routes — people who borrow, and their loan history."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from bibli.api.dependencies import get_borrowers, get_ledger
from bibli.schemas.borrowers import BorrowerCreate, BorrowerResponse, BorrowerUpdate
from bibli.schemas.loans import LoanDetail
from bibli.services.borrower_registry import BorrowerRegistry
from bibli.services.loan_ledger import LoanLedger

router = APIRouter(prefix="/api/v1/borrowers", tags=["borrowers"])


@router.post(
    "", response_model=BorrowerResponse, status_code=status.HTTP_201_CREATED,
)
async def create_borrower(
    body: BorrowerCreate, registry: BorrowerRegistry = Depends(get_borrowers),
):
    return await registry.create(body.model_dump())


@router.get("", response_model=list[BorrowerResponse])
async def list_borrowers(registry: BorrowerRegistry = Depends(get_borrowers)):
    return await registry.list_borrowers()


@router.get("/{borrower_id}", response_model=BorrowerResponse)
async def get_borrower(
    borrower_id: UUID, registry: BorrowerRegistry = Depends(get_borrowers),
):
    return await registry.get_or_404(borrower_id)


@router.patch("/{borrower_id}", response_model=BorrowerResponse)
async def update_borrower(
    borrower_id: UUID, body: BorrowerUpdate,
    registry: BorrowerRegistry = Depends(get_borrowers),
):
    return await registry.update(borrower_id, body.model_dump(exclude_unset=True))


@router.delete("/{borrower_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_borrower(
    borrower_id: UUID, registry: BorrowerRegistry = Depends(get_borrowers),
):
    await registry.delete(borrower_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{borrower_id}/loans", response_model=list[LoanDetail])
async def list_borrower_loans(
    borrower_id: UUID, ledger: LoanLedger = Depends(get_ledger),
):
    return await ledger.list_for_borrower(borrower_id)
