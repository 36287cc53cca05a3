"""Allocation Engine — picks the volume to hand out for a title-level request.

Invariants:
    - Only Available volumes are considered
    - Choice is (best condition, most accessible location, lowest copy number)
    - NoVolumeAvailable when nothing is eligible; the title must exist first
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bibli.core.allocation_ranking import VolumeSnapshot, select_best
from bibli.core.domain_types import (
    LocationAccessibility, VolumeCondition, VolumeState,
)
from bibli.core.errors import NoVolumeAvailableError, TitleNotFoundError
from bibli.core.location_paths import DEFAULT_MAX_DEPTH
from bibli.models.title import Title
from bibli.models.volume import Volume
from bibli.services.location_tree import LocationTree

logger = logging.getLogger(__name__)


class AllocationEngine:
    """Selects the best available copy of a title."""

    def __init__(
        self,
        db: AsyncSession,
        policy: LocationAccessibility = LocationAccessibility.RANK,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.db = db
        self.policy = policy
        self.locations = LocationTree(db, max_depth)

    async def select(self, title_id: UUID, lock: bool = False) -> Volume:
        """Best Available volume of the title.

        With lock=True the candidate rows are read FOR UPDATE, for callers that
        go on to loan the chosen volume in the same transaction.
        """
        if not await self.db.get(Title, title_id):
            raise TitleNotFoundError(title_id)
        query = select(Volume).where(
            Volume.title_id == title_id,
            Volume.state == VolumeState.AVAILABLE.value,
        )
        if lock:
            query = query.with_for_update()
        volumes = {v.id: v for v in (await self.db.execute(query)).scalars()}
        nodes = await self.locations.snapshot()
        best = select_best(
            [
                VolumeSnapshot(
                    v.id, v.copy_number, VolumeCondition(v.condition),
                    VolumeState(v.state), v.location_id,
                )
                for v in volumes.values()
            ],
            nodes, self.policy, self.locations.max_depth,
        )
        if best is None:
            logger.warning(
                "No volume available", extra={"title_id": title_id},
            )
            raise NoVolumeAvailableError(title_id)
        return volumes[best.id]
