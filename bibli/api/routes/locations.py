"""Location Routes — the storage hierarchy.

Invariants:
    - GET "" lists every node in pre-order with its materialized path
    - PUT /{id}/parent answers 409 CYCLE_DETECTED for a move under itself
      or a descendant
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from bibli.api.dependencies import get_locations
from bibli.schemas.locations import (
    LocationCreate, LocationMove, LocationUpdate, LocationWithPath,
)
from bibli.services.location_tree import LocationTree

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/locations", tags=["locations"])


@router.post(
    "", response_model=LocationWithPath, status_code=status.HTTP_201_CREATED,
)
async def create_location(
    body: LocationCreate, tree: LocationTree = Depends(get_locations),
):
    location = await tree.create(
        body.name, body.parent_id, body.description, body.accessibility_rank,
    )
    return await tree.get_with_path(location.id)


@router.get("", response_model=list[LocationWithPath])
async def list_locations(tree: LocationTree = Depends(get_locations)):
    return await tree.list_with_paths()


@router.get("/{location_id}", response_model=LocationWithPath)
async def get_location(
    location_id: UUID, tree: LocationTree = Depends(get_locations),
):
    return await tree.get_with_path(location_id)


@router.patch("/{location_id}", response_model=LocationWithPath)
async def update_location(
    location_id: UUID, body: LocationUpdate,
    tree: LocationTree = Depends(get_locations),
):
    await tree.update(location_id, **body.model_dump(exclude_unset=True))
    return await tree.get_with_path(location_id)


@router.put("/{location_id}/parent", response_model=LocationWithPath)
async def move_location(
    location_id: UUID, body: LocationMove,
    tree: LocationTree = Depends(get_locations),
):
    await tree.move(location_id, body.parent_id)
    return await tree.get_with_path(location_id)


@router.delete("/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_location(
    location_id: UUID, tree: LocationTree = Depends(get_locations),
):
    await tree.delete(location_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
