"""Volume Routes — single copies and the scan lookup.

Invariants:
    - /scan classifies the code first; INVALID answers 400 INVALID_CODE
    - PATCH only applies fields present in the body (location_id: null unshelves)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from bibli.api.dependencies import get_catalog
from bibli.schemas.catalog import (
    ScanResult, VolumeResponse, VolumeUpdate, VolumeWithTitle,
)
from bibli.services.catalog_store import CatalogStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/volumes", tags=["volumes"])


@router.get("/scan", response_model=ScanResult)
async def scan_code(
    code: str = Query(..., min_length=1),
    catalog: CatalogStore = Depends(get_catalog),
):
    """Volume barcode → the copy; ISBN → matching titles."""
    return await catalog.lookup_code(code)


@router.get("/{volume_id}", response_model=VolumeWithTitle)
async def get_volume(
    volume_id: UUID, catalog: CatalogStore = Depends(get_catalog),
):
    volume = await catalog.get_volume_or_404(volume_id)
    return await catalog.volume_with_title(volume)


@router.patch("/{volume_id}", response_model=VolumeResponse)
async def update_volume(
    volume_id: UUID, body: VolumeUpdate,
    catalog: CatalogStore = Depends(get_catalog),
):
    return await catalog.update_volume(volume_id, body.model_dump(exclude_unset=True))


@router.delete("/{volume_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_volume(
    volume_id: UUID, catalog: CatalogStore = Depends(get_catalog),
):
    await catalog.delete_volume(volume_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
