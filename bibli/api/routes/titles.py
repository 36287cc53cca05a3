"""Title Routes — catalog records, their authors, and their volumes.

Invariants:
    - Creating a title returns the duplicate candidates it raised
    - DELETE answers 409 HAS_VOLUMES while copies remain
    - Volume creation assigns copy number and barcode server-side
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from bibli.api.dependencies import get_allocation, get_catalog
from bibli.schemas.catalog import (
    TitleAuthorLink, TitleCreate, TitleCreated, TitleResponse, TitleUpdate,
    VolumeCreate, VolumeResponse,
)
from bibli.schemas.duplicates import CandidateResponse
from bibli.services.allocation_engine import AllocationEngine
from bibli.services.catalog_store import CatalogStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/titles", tags=["titles"])


@router.post(
    "", response_model=TitleCreated, status_code=status.HTTP_201_CREATED,
)
async def create_title(
    body: TitleCreate, catalog: CatalogStore = Depends(get_catalog),
):
    fields = body.model_dump(exclude={"author_ids"})
    title, candidates = await catalog.create_title(fields, body.author_ids)
    return TitleCreated(
        title=await catalog.title_response(title),
        duplicate_candidates=[
            CandidateResponse.model_validate(c) for c in candidates
        ],
    )


@router.get("", response_model=list[TitleResponse])
async def list_titles(
    q: str | None = Query(None, min_length=1, description="Title or ISBN fragment"),
    catalog: CatalogStore = Depends(get_catalog),
):
    if q:
        return await catalog.search_titles(q)
    return await catalog.list_titles()


@router.get("/{title_id}", response_model=TitleResponse)
async def get_title(
    title_id: UUID, catalog: CatalogStore = Depends(get_catalog),
):
    return await catalog.title_response(await catalog.get_title_or_404(title_id))


@router.patch("/{title_id}", response_model=TitleResponse)
async def update_title(
    title_id: UUID, body: TitleUpdate,
    catalog: CatalogStore = Depends(get_catalog),
):
    title = await catalog.update_title(title_id, body.model_dump(exclude_unset=True))
    return await catalog.title_response(title)


@router.delete("/{title_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_title(
    title_id: UUID, catalog: CatalogStore = Depends(get_catalog),
):
    await catalog.delete_title(title_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{title_id}/authors", status_code=status.HTTP_201_CREATED)
async def add_author(
    title_id: UUID, body: TitleAuthorLink,
    catalog: CatalogStore = Depends(get_catalog),
):
    link = await catalog.add_author(
        title_id, body.author_id, body.role, body.display_order,
    )
    return {
        "title_id": str(link.title_id),
        "author_id": str(link.author_id),
        "role": link.role,
        "display_order": link.display_order,
    }


@router.get("/{title_id}/volumes", response_model=list[VolumeResponse])
async def list_volumes(
    title_id: UUID, catalog: CatalogStore = Depends(get_catalog),
):
    return await catalog.list_volumes(title_id)


@router.post(
    "/{title_id}/volumes", response_model=VolumeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_volume(
    title_id: UUID, body: VolumeCreate,
    catalog: CatalogStore = Depends(get_catalog),
):
    return await catalog.add_volume(
        title_id, body.condition, body.location_id, body.note, body.barcode,
    )


@router.get("/{title_id}/allocation", response_model=VolumeResponse)
async def preview_allocation(
    title_id: UUID, engine: AllocationEngine = Depends(get_allocation),
):
    """The copy a title-level loan would hand out right now."""
    return await engine.select(title_id)
