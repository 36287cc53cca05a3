"""Allocation Ranking — deterministic best-volume choice for a title-level loan.

Invariants:
    - Only AVAILABLE volumes are eligible (Maintenance/Loaned/Lost excluded)
    - Sort key is (condition rank, accessibility, copy_number), ascending, first = best
    - Same eligible set in any input order -> same choice
    - Unlocated volumes rank after every located one

Design Decisions:
    - Accessibility is a policy knob (LocationAccessibility): explicit per-location
      rank when the policy honors it, tree depth otherwise
    - Returns None instead of raising: the shell owns the NoVolumeAvailable failure
      so it can attach the title id and log it
"""

import math
from dataclasses import dataclass
from uuid import UUID

from bibli.core.domain_types import (
    LocationAccessibility, VolumeCondition, VolumeState,
)
from bibli.core.location_paths import (
    DEFAULT_MAX_DEPTH, LocationNode, depth_of,
)


@dataclass(frozen=True)
class VolumeSnapshot:
    """Fields of a volume the ranking looks at."""
    id: UUID
    copy_number: int
    condition: VolumeCondition
    state: VolumeState
    location_id: UUID | None = None


def accessibility(
    location_id: UUID | None,
    nodes: dict[UUID, LocationNode],
    policy: LocationAccessibility = LocationAccessibility.RANK,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> float:
    """Lower is easier to reach."""
    if location_id is None or location_id not in nodes:
        return math.inf
    node = nodes[location_id]
    if policy is LocationAccessibility.RANK and node.accessibility_rank is not None:
        return node.accessibility_rank
    return depth_of(location_id, nodes, max_depth)


def rank_volumes(
    volumes: list[VolumeSnapshot],
    nodes: dict[UUID, LocationNode],
    policy: LocationAccessibility = LocationAccessibility.RANK,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[VolumeSnapshot]:
    """Eligible volumes, best first."""
    eligible = [v for v in volumes if v.state == VolumeState.AVAILABLE]
    return sorted(
        eligible,
        key=lambda v: (
            VolumeCondition(v.condition).rank,
            accessibility(v.location_id, nodes, policy, max_depth),
            v.copy_number,
        ),
    )


def select_best(
    volumes: list[VolumeSnapshot],
    nodes: dict[UUID, LocationNode],
    policy: LocationAccessibility = LocationAccessibility.RANK,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> VolumeSnapshot | None:
    ranked = rank_volumes(volumes, nodes, policy, max_depth)
    return ranked[0] if ranked else None
