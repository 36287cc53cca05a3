"""Author & Publisher Routes — the records titles point at."""

from fastapi import APIRouter, Depends, status

from bibli.api.dependencies import get_catalog
from bibli.schemas.catalog import (
    AuthorCreate, AuthorResponse, PublisherCreate, PublisherResponse,
)
from bibli.services.catalog_store import CatalogStore

router = APIRouter(prefix="/api/v1", tags=["authors"])


@router.post(
    "/authors", response_model=AuthorResponse, status_code=status.HTTP_201_CREATED,
)
async def create_author(
    body: AuthorCreate, catalog: CatalogStore = Depends(get_catalog),
):
    return await catalog.create_author(body.first_name, body.last_name)


@router.post(
    "/publishers", response_model=PublisherResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_publisher(
    body: PublisherCreate, catalog: CatalogStore = Depends(get_catalog),
):
    return await catalog.create_publisher(body.name)
