"""Duplicate Routes — candidate review, batch scan, and merge.

Invariants:
    - Merge requires confirm=true in the body (400 otherwise)
    - Confirm/ignore on an ignored or merged candidate answers 409
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from bibli.api.dependencies import get_resolver
from bibli.core.domain_types import Resolution
from bibli.schemas.duplicates import (
    CandidateResponse, MergeRequest, MergeResult, ScanSummary,
)
from bibli.services.duplicate_resolver import DuplicateResolver

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/duplicates", tags=["duplicates"])


@router.get("", response_model=list[CandidateResponse])
async def list_candidates(
    resolution: Resolution | None = Query(None),
    resolver: DuplicateResolver = Depends(get_resolver),
):
    return await resolver.list_candidates(resolution)


@router.post("/scan", response_model=ScanSummary)
async def scan_catalog(resolver: DuplicateResolver = Depends(get_resolver)):
    return await resolver.scan()


@router.post("/merge", response_model=MergeResult)
async def merge_titles(
    body: MergeRequest, resolver: DuplicateResolver = Depends(get_resolver),
):
    return await resolver.merge(body.primary_id, body.secondary_id)


@router.post("/{candidate_id}/confirm", response_model=CandidateResponse)
async def confirm_candidate(
    candidate_id: UUID, resolver: DuplicateResolver = Depends(get_resolver),
):
    return await resolver.confirm(candidate_id)


@router.post("/{candidate_id}/ignore", response_model=CandidateResponse)
async def ignore_candidate(
    candidate_id: UUID, resolver: DuplicateResolver = Depends(get_resolver),
):
    return await resolver.ignore(candidate_id)
