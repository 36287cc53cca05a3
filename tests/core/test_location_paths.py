"""Location Paths — bounded walks, cycle refusal, and pre-order listing.

Tests cover:
    - full_path returns names root → node; depth_of counts edges
    - check_move refuses self-parenting and moves under a descendant
    - check_move refuses moves that would exceed the depth guard
    - check_attach refuses a new leaf below the deepest allowed level
    - a corrupted (cyclic) parent map raises instead of looping
    - preorder emits parents before children, siblings by name
"""

from uuid import uuid4

import pytest

from bibli.core.errors import CycleDetectedError
from bibli.core.location_paths import (
    LocationNode, check_attach, check_move, depth_of, full_path, preorder,
)


def _tree():
    house, room, shelf, garage = uuid4(), uuid4(), uuid4(), uuid4()
    nodes = {
        house: LocationNode(house, "House"),
        room: LocationNode(room, "Room", house),
        shelf: LocationNode(shelf, "Shelf", room),
        garage: LocationNode(garage, "Garage"),
    }
    return nodes, house, room, shelf, garage


def test_full_path_root_to_node():
    nodes, house, room, shelf, _ = _tree()
    assert full_path(shelf, nodes) == ["House", "Room", "Shelf"]
    assert full_path(house, nodes) == ["House"]


def test_depth_of_root_is_zero():
    nodes, house, _, shelf, _ = _tree()
    assert depth_of(house, nodes) == 0
    assert depth_of(shelf, nodes) == 2


def test_move_under_self_rejected():
    nodes, house, *_ = _tree()
    with pytest.raises(CycleDetectedError):
        check_move(house, house, nodes)


def test_move_under_descendant_rejected():
    nodes, house, room, shelf, _ = _tree()
    with pytest.raises(CycleDetectedError):
        check_move(house, room, nodes)
    with pytest.raises(CycleDetectedError):
        check_move(house, shelf, nodes)


def test_move_to_sibling_tree_allowed():
    nodes, _, room, _, garage = _tree()
    check_move(room, garage, nodes)
    check_move(room, None, nodes)


def test_move_exceeding_depth_guard_rejected():
    nodes, house, room, shelf, garage = _tree()
    # Room subtree has height 1; under Garage it would need 3 levels
    check_move(room, garage, nodes, max_depth=3)
    with pytest.raises(CycleDetectedError):
        check_move(room, garage, nodes, max_depth=2)


def test_attach_below_deepest_allowed_level_rejected():
    nodes, house, room, shelf, _ = _tree()
    check_attach("Box", room, nodes, max_depth=3)
    check_attach("Box", None, nodes, max_depth=3)
    with pytest.raises(CycleDetectedError) as exc:
        check_attach("Box", shelf, nodes, max_depth=3)
    assert exc.value.details["parent_id"] == str(shelf)


def test_cyclic_map_raises_instead_of_looping():
    a, b = uuid4(), uuid4()
    nodes = {a: LocationNode(a, "A", b), b: LocationNode(b, "B", a)}
    with pytest.raises(CycleDetectedError):
        full_path(a, nodes)


def test_path_longer_than_guard_raises():
    nodes, _, _, shelf, _ = _tree()
    with pytest.raises(CycleDetectedError):
        full_path(shelf, nodes, max_depth=2)


def test_preorder_parents_first_siblings_by_name():
    nodes, house, room, shelf, garage = _tree()
    attic = uuid4()
    nodes[attic] = LocationNode(attic, "attic", house)
    order = [(n.name, depth) for n, depth in preorder(nodes)]
    assert order == [
        ("Garage", 0),
        ("House", 0),
        ("attic", 1),
        ("Room", 1),
        ("Shelf", 2),
    ]


def test_preorder_skips_nodes_caught_in_a_cycle():
    nodes, *_ = _tree()
    a, b = uuid4(), uuid4()
    nodes[a] = LocationNode(a, "A", b)
    nodes[b] = LocationNode(b, "B", a)
    names = {n.name for n, _ in preorder(nodes)}
    assert "A" not in names and "B" not in names
    assert len(names) == 4
