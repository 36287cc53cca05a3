"""Merge Plan — field reconciliation and renumbering.

Tests cover:
    - primary's non-empty values are kept; only empty fields are filled
    - blank strings count as empty on both sides
    - renumber yields exactly 1..n by creation time, primary first on ties
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from bibli.core.merge_plan import VolumeOrder, reconcile_fields, renumber

T = datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_primary_wins_when_present():
    updates = reconcile_fields(
        {"isbn": "9780439708180", "pages": None, "summary": "  "},
        {"isbn": "9782070612758", "pages": 320, "summary": "A wizard"},
    )
    assert updates == {"pages": 320, "summary": "A wizard"}


def test_empty_secondary_values_are_not_adopted():
    assert reconcile_fields({"pages": None}, {"pages": None, "language": ""}) == {}


def test_renumber_by_creation_time():
    p1 = VolumeOrder(uuid4(), T, True, 1)
    p2 = VolumeOrder(uuid4(), T + timedelta(days=10), True, 2)
    s1 = VolumeOrder(uuid4(), T + timedelta(days=5), False, 1)
    plan = renumber([p2, s1, p1])
    assert plan == {p1.id: 1, s1.id: 2, p2.id: 3}


def test_renumber_ties_keep_primary_first():
    s1 = VolumeOrder(uuid4(), T, False, 1)
    p1 = VolumeOrder(uuid4(), T, True, 2)
    assert renumber([s1, p1]) == {p1.id: 1, s1.id: 2}


def test_renumber_accepts_naive_timestamps():
    a = VolumeOrder(uuid4(), datetime(2026, 1, 2), True, 1)
    b = VolumeOrder(uuid4(), T, False, 1)
    assert renumber([a, b]) == {b.id: 1, a.id: 2}


def test_renumber_is_dense():
    vols = [VolumeOrder(uuid4(), T + timedelta(hours=i), i % 2 == 0, i + 7) for i in range(6)]
    assert sorted(renumber(vols).values()) == [1, 2, 3, 4, 5, 6]
