"""Domain Types — enum values and the orderings other modules rely on.

Tests:
    - VolumeCondition.rank orders Excellent (best) to Damaged (worst)
    - Operators may set only Available, Maintenance, Lost by hand
    - Ignored and Merged are the terminal resolutions
    - Enums serialize to their string values
"""

from uuid import uuid4

from bibli.core.domain_types import (
    OPERATOR_VOLUME_STATES, LoanStatus, Resolution, TitleId,
    VolumeCondition, VolumeState,
)


def test_identity_types_wrap_uuid():
    uid = uuid4()
    assert TitleId(uid) == uid


def test_condition_rank_best_first():
    ranks = [c.rank for c in (
        VolumeCondition.EXCELLENT, VolumeCondition.GOOD, VolumeCondition.FAIR,
        VolumeCondition.POOR, VolumeCondition.DAMAGED,
    )]
    assert ranks == [0, 1, 2, 3, 4]


def test_operator_states_exclude_loaned_and_overdue():
    assert OPERATOR_VOLUME_STATES == {
        VolumeState.AVAILABLE, VolumeState.MAINTENANCE, VolumeState.LOST,
    }


def test_terminal_resolutions():
    assert Resolution.IGNORED.is_terminal
    assert Resolution.MERGED.is_terminal
    assert not Resolution.PENDING.is_terminal
    assert not Resolution.CONFIRMED.is_terminal


def test_loan_status_has_no_overdue_member():
    assert {s.value for s in LoanStatus} == {"active", "returned"}


def test_enums_compare_to_strings():
    assert VolumeState.LOANED == "loaned"
    assert VolumeCondition("good") is VolumeCondition.GOOD
