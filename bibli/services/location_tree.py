"""Location Tree — storage hierarchy with cycle-free moves and materialized paths.

Invariants:
    - create fails ParentNotFound for an unknown parent, and CycleDetected when the
      new node would sit deeper than max_depth
    - move fails CycleDetected when the new parent is the node or inside its subtree
    - full_path / depth are bounded by max_depth (CycleDetected when exceeded)
    - delete detaches children (they become roots) and unshelves volumes; never recursive
    - list_with_paths returns pre-order: parent before descendants

Design Decisions:
    - All rows loaded into LocationNode snapshots once per operation, then the pure
      walks in core/location_paths.py do the work (one query, no recursive SQL)
"""

import logging
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bibli.core.errors import (
    CycleDetectedError, InvalidFieldError, ParentNotFoundError, ResourceNotFoundError,
)
from bibli.core.location_paths import (
    DEFAULT_MAX_DEPTH, LocationNode, check_attach, check_move, full_path, preorder,
)
from bibli.models.location import Location
from bibli.models.volume import Volume
from bibli.schemas.locations import LocationWithPath
from bibli.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

PATH_SEPARATOR = " > "


class LocationTree:
    """Hierarchy operations over the locations table."""

    def __init__(self, db: AsyncSession, max_depth: int = DEFAULT_MAX_DEPTH):
        self.db = db
        self.max_depth = max_depth

    async def snapshot(self) -> dict[UUID, LocationNode]:
        """Every location as a LocationNode, keyed by id."""
        result = await self.db.execute(
            select(
                Location.id, Location.name,
                Location.parent_id, Location.accessibility_rank,
            ),
        )
        return {
            row.id: LocationNode(
                row.id, row.name, row.parent_id, row.accessibility_rank,
            )
            for row in result
        }

    async def get_or_404(self, location_id: UUID) -> Location:
        location = await self.db.get(Location, location_id)
        if not location:
            raise ResourceNotFoundError("Location", location_id)
        return location

    async def create(
        self,
        name: str,
        parent_id: UUID | None = None,
        description: str | None = None,
        accessibility_rank: int | None = None,
    ) -> Location:
        name = _clean_name(name)
        if parent_id is not None:
            nodes = await self.snapshot()
            if parent_id not in nodes:
                raise ParentNotFoundError(parent_id)
            try:
                check_attach(name, parent_id, nodes, self.max_depth)
            except CycleDetectedError:
                logger.warning(
                    f"Refused to create '{name}' under {parent_id}: depth limit",
                )
                raise
        async with atomic(self.db):
            location = Location(
                name=name, parent_id=parent_id, description=description,
                accessibility_rank=accessibility_rank,
            )
            self.db.add(location)
        logger.info(
            f"Location '{name}' created", extra={"location_id": location.id},
        )
        return location

    async def update(self, location_id: UUID, **fields: object) -> Location:
        """Rename / describe / re-rank. Only keys given are applied."""
        location = await self.get_or_404(location_id)
        if "name" in fields:
            fields["name"] = _clean_name(fields["name"])
        async with atomic(self.db):
            for key in ("name", "description", "accessibility_rank"):
                if key in fields:
                    setattr(location, key, fields[key])
        return location

    async def move(self, location_id: UUID, new_parent_id: UUID | None) -> Location:
        location = await self.get_or_404(location_id)
        nodes = await self.snapshot()
        if new_parent_id is not None and new_parent_id not in nodes:
            raise ParentNotFoundError(new_parent_id)
        try:
            check_move(location_id, new_parent_id, nodes, self.max_depth)
        except CycleDetectedError:
            logger.warning(
                f"Refused move under {new_parent_id}: cycle",
                extra={"location_id": location_id},
            )
            raise
        async with atomic(self.db):
            location.parent_id = new_parent_id
        logger.info(
            f"Location moved under {new_parent_id}",
            extra={"location_id": location_id},
        )
        return location

    async def full_path(self, location_id: UUID) -> list[str]:
        nodes = await self.snapshot()
        if location_id not in nodes:
            raise ResourceNotFoundError("Location", location_id)
        return full_path(location_id, nodes, self.max_depth)

    async def delete(self, location_id: UUID) -> None:
        location = await self.get_or_404(location_id)
        async with atomic(self.db):
            await self.db.execute(
                update(Location)
                .where(Location.parent_id == location_id)
                .values(parent_id=None)
                .execution_options(synchronize_session="fetch"),
            )
            await self.db.execute(
                update(Volume)
                .where(Volume.location_id == location_id)
                .values(location_id=None)
                .execution_options(synchronize_session="fetch"),
            )
            await self.db.delete(location)
        logger.info("Location deleted", extra={"location_id": location_id})

    async def list_with_paths(self) -> list[LocationWithPath]:
        nodes = await self.snapshot()
        locations = {
            loc.id: loc
            for loc in (await self.db.execute(select(Location))).scalars()
        }
        volume_counts = await self._volume_counts()
        child_counts: dict[UUID, int] = {}
        for node in nodes.values():
            if node.parent_id in nodes:
                child_counts[node.parent_id] = child_counts.get(node.parent_id, 0) + 1
        return [
            self._project(
                locations[node.id], full_path(node.id, nodes, self.max_depth),
                depth, child_counts.get(node.id, 0), volume_counts.get(node.id, 0),
            )
            for node, depth in preorder(nodes, self.max_depth)
        ]

    async def get_with_path(self, location_id: UUID) -> LocationWithPath:
        location = await self.get_or_404(location_id)
        nodes = await self.snapshot()
        path = full_path(location_id, nodes, self.max_depth)
        child_count = sum(1 for n in nodes.values() if n.parent_id == location_id)
        volume_counts = await self._volume_counts()
        return self._project(
            location, path, len(path) - 1, child_count,
            volume_counts.get(location_id, 0),
        )

    async def _volume_counts(self) -> dict[UUID, int]:
        result = await self.db.execute(
            select(Volume.location_id, func.count(Volume.id))
            .where(Volume.location_id.isnot(None))
            .group_by(Volume.location_id),
        )
        return {location_id: count for location_id, count in result}

    @staticmethod
    def _project(
        location: Location, path: list[str], depth: int,
        child_count: int, volume_count: int,
    ) -> LocationWithPath:
        return LocationWithPath(
            id=location.id,
            name=location.name,
            description=location.description,
            parent_id=location.parent_id,
            accessibility_rank=location.accessibility_rank,
            created_at=location.created_at,
            path=path,
            full_path=PATH_SEPARATOR.join(path),
            depth=depth,
            child_count=child_count,
            volume_count=volume_count,
        )


def _clean_name(name: object) -> str:
    cleaned = str(name or "").strip()
    if not cleaned:
        raise InvalidFieldError("name", "Location name cannot be empty")
    return cleaned
