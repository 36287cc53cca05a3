"""Location Paths — pure hierarchy computations over a flat parent map.

Invariants:
    - Every upward walk is bounded by max_depth; exceeding it raises CycleDetectedError
    - A node never appears twice in a computed path
    - check_move rejects new_parent == node and new_parent inside node's subtree
    - check_attach rejects a new leaf whose depth would reach max_depth
    - preorder emits every parent before its descendants; siblings by (name, id)

Design Decisions:
    - Operates on LocationNode snapshots, not ORM rows: the shell loads all rows once
      (lookups gathered before the mutating section) and the walk is plain Python
    - A dangling parent reference is treated as a root: the FK sets parent NULL on
      delete, so this only shows up in hand-edited data
"""

from dataclasses import dataclass
from uuid import UUID

from bibli.core.errors import CycleDetectedError


DEFAULT_MAX_DEPTH: int = 32


@dataclass(frozen=True)
class LocationNode:
    """Snapshot of one location row."""
    id: UUID
    name: str
    parent_id: UUID | None = None
    accessibility_rank: int | None = None


def ancestor_chain(
    node_id: UUID,
    nodes: dict[UUID, LocationNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[LocationNode]:
    """Nodes from node_id up to its root, node first."""
    chain: list[LocationNode] = []
    seen: set[UUID] = set()
    current = nodes.get(node_id)
    while current is not None:
        if current.id in seen or len(chain) >= max_depth:
            raise CycleDetectedError(node_id, current.parent_id)
        seen.add(current.id)
        chain.append(current)
        current = (
            nodes.get(current.parent_id) if current.parent_id else None
        )
    return chain


def full_path(
    node_id: UUID,
    nodes: dict[UUID, LocationNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[str]:
    """Ordered names from root to node."""
    return [n.name for n in reversed(ancestor_chain(node_id, nodes, max_depth))]


def depth_of(
    node_id: UUID,
    nodes: dict[UUID, LocationNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> int:
    """0 for a root."""
    return len(ancestor_chain(node_id, nodes, max_depth)) - 1


def check_move(
    node_id: UUID,
    new_parent_id: UUID | None,
    nodes: dict[UUID, LocationNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> None:
    """Raise CycleDetectedError if node would become its own ancestor.

    Walks upward from the proposed parent; meeting node_id means the parent
    lies in node's subtree.
    """
    if new_parent_id is None:
        return
    if new_parent_id == node_id:
        raise CycleDetectedError(node_id, new_parent_id)
    try:
        chain = ancestor_chain(new_parent_id, nodes, max_depth)
    except CycleDetectedError:
        raise CycleDetectedError(node_id, new_parent_id)
    if any(n.id == node_id for n in chain):
        raise CycleDetectedError(node_id, new_parent_id)
    # Subtree height below node still counts toward the depth guard
    if len(chain) + _subtree_height(node_id, nodes, max_depth) >= max_depth:
        raise CycleDetectedError(node_id, new_parent_id)


def check_attach(
    label: object,
    parent_id: UUID | None,
    nodes: dict[UUID, LocationNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> None:
    """Raise CycleDetectedError if a new leaf under parent_id would pass max_depth.

    label names the node being created in the error (it has no id yet).
    """
    if parent_id is None:
        return
    if len(ancestor_chain(parent_id, nodes, max_depth)) >= max_depth:
        raise CycleDetectedError(label, parent_id)


def _children_index(nodes: dict[UUID, LocationNode]) -> dict[UUID | None, list[LocationNode]]:
    children: dict[UUID | None, list[LocationNode]] = {}
    for node in nodes.values():
        parent = node.parent_id if node.parent_id in nodes else None
        children.setdefault(parent, []).append(node)
    for siblings in children.values():
        siblings.sort(key=lambda n: (n.name.lower(), str(n.id)))
    return children


def _subtree_height(
    node_id: UUID, nodes: dict[UUID, LocationNode], max_depth: int,
) -> int:
    children = _children_index(nodes)
    height = 0
    frontier = [(node_id, 0)]
    visited: set[UUID] = set()
    while frontier:
        current, level = frontier.pop()
        if current in visited or level > max_depth:
            continue
        visited.add(current)
        height = max(height, level)
        frontier.extend((c.id, level + 1) for c in children.get(current, []))
    return height


def preorder(
    nodes: dict[UUID, LocationNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[tuple[LocationNode, int]]:
    """(node, depth) pairs, parents before descendants, for flat tree rendering.

    Nodes caught in a cycle are unreachable from any root and are omitted.
    """
    children = _children_index(nodes)
    ordered: list[tuple[LocationNode, int]] = []
    stack = [(root, 0) for root in reversed(children.get(None, []))]
    while stack:
        node, level = stack.pop()
        if level >= max_depth:
            continue
        ordered.append((node, level))
        stack.extend(
            (child, level + 1) for child in reversed(children.get(node.id, []))
        )
    return ordered
