"""Borrower Group Routes — loan-duration policies."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from bibli.api.dependencies import get_borrowers
from bibli.schemas.borrowers import (
    BorrowerGroupCreate, BorrowerGroupResponse, BorrowerGroupUpdate,
)
from bibli.services.borrower_registry import BorrowerRegistry

router = APIRouter(prefix="/api/v1/borrower-groups", tags=["borrowers"])


@router.post(
    "", response_model=BorrowerGroupResponse, status_code=status.HTTP_201_CREATED,
)
async def create_group(
    body: BorrowerGroupCreate, registry: BorrowerRegistry = Depends(get_borrowers),
):
    return await registry.create_group(
        body.name, body.loan_duration_days, body.description,
    )


@router.get("", response_model=list[BorrowerGroupResponse])
async def list_groups(registry: BorrowerRegistry = Depends(get_borrowers)):
    return await registry.list_groups()


@router.get("/{group_id}", response_model=BorrowerGroupResponse)
async def get_group(
    group_id: UUID, registry: BorrowerRegistry = Depends(get_borrowers),
):
    return await registry.get_group_or_404(group_id)


@router.patch("/{group_id}", response_model=BorrowerGroupResponse)
async def update_group(
    group_id: UUID, body: BorrowerGroupUpdate,
    registry: BorrowerRegistry = Depends(get_borrowers),
):
    return await registry.update_group(group_id, body.model_dump(exclude_unset=True))


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group_id: UUID, registry: BorrowerRegistry = Depends(get_borrowers),
):
    await registry.delete_group(group_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
