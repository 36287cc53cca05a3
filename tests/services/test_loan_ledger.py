"""Loan Ledger — checkout, due dates, one extension, return, lost, overdue views.

Invariants:
    - Title-level checkout hands out the allocation engine's choice
    - Volume.state == loaned iff an active loan references it
    - due = loan time + group duration; one extension of one more period
    - Overdue is computed against the injected clock
    - return/extend/lost decide on the stored loan, not a stale in-session copy
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from bibli.core.domain_types import LoanStatus, VolumeState
from bibli.core.errors import (
    AlreadyExtendedError, AlreadyReturnedError, CurrentlyLoanedError,
    InvalidCodeError, NoVolumeAvailableError, ResourceNotFoundError,
    VolumeUnavailableError,
)
from bibli.core.loan_policy import ensure_utc
from bibli.models.loan import Loan
from bibli.models.volume import Volume
from bibli.services.loan_ledger import LoanLedger


async def _active_loans_for(db, volume_id) -> int:
    return await db.scalar(
        select(func.count(Loan.id)).where(
            Loan.volume_id == volume_id, Loan.status == LoanStatus.ACTIVE.value,
        ),
    )


# ─── Checkout ────────────────────────────────────────────────────

async def test_title_loan_takes_best_copy(ledger, catalog, shelved_title, student, test_db):
    loan = await ledger.create_loan(shelved_title.id, student.id)

    volume = await catalog.get_volume_or_404(loan.volume_id)
    assert volume.copy_number == 2
    assert volume.state == VolumeState.LOANED
    assert loan.title_id == shelved_title.id
    assert await _active_loans_for(test_db, volume.id) == 1


async def test_student_due_date_and_single_extension(ledger, shelved_title, student, clock):
    start = clock.now()
    loan = await ledger.create_loan(shelved_title.id, student.id)
    assert ensure_utc(loan.due_at) == start + timedelta(days=14)

    clock.advance(days=10)
    extended = await ledger.extend_loan(loan.id)
    assert ensure_utc(extended.due_at) == start + timedelta(days=28)
    assert extended.extension_count == 1

    with pytest.raises(AlreadyExtendedError):
        await ledger.extend_loan(loan.id)


async def test_borrower_without_group_gets_default_duration(
    ledger, borrowers, shelved_title, clock,
):
    start = clock.now()
    walk_in = await borrowers.create({"name": "Walk-in"})
    loan = await ledger.create_loan(shelved_title.id, walk_in.id)
    assert ensure_utc(loan.due_at) == start + timedelta(days=21)


async def test_no_volume_available(ledger, shelved_title, student, test_session_factory):
    title_id, student_id = shelved_title.id, student.id
    for _ in range(3):
        await ledger.create_loan(title_id, student_id)

    with pytest.raises(NoVolumeAvailableError):
        await ledger.create_loan(title_id, student_id)

    async with test_session_factory() as fresh:
        loaned = await fresh.scalar(
            select(func.count(Volume.id)).where(Volume.state == VolumeState.LOANED.value),
        )
        loans = await fresh.scalar(select(func.count(Loan.id)))
    assert loaned == 3
    assert loans == 3


async def test_unknown_borrower(ledger, shelved_title):
    with pytest.raises(ResourceNotFoundError):
        await ledger.create_loan(shelved_title.id, uuid4())


async def test_checkout_by_barcode(ledger, catalog, title, student):
    volume = await catalog.add_volume(title.id)
    loan = await ledger.create_loan_by_barcode(volume.barcode, student.id)
    assert loan.volume_id == volume.id
    assert volume.state == VolumeState.LOANED


async def test_checkout_by_barcode_refusals(ledger, catalog, title, student):
    loaned = await catalog.add_volume(title.id)
    resting = await catalog.add_volume(title.id)
    await catalog.update_volume(resting.id, {"state": VolumeState.MAINTENANCE})
    loaned_code, resting_code = loaned.barcode, resting.barcode
    student_id = student.id
    await ledger.create_loan_by_barcode(loaned_code, student_id)

    with pytest.raises(CurrentlyLoanedError):
        await ledger.create_loan_by_barcode(loaned_code, student_id)
    with pytest.raises(VolumeUnavailableError) as exc:
        await ledger.create_loan_by_barcode(resting_code, student_id)
    assert exc.value.details["state"] == "maintenance"
    with pytest.raises(InvalidCodeError):
        await ledger.create_loan_by_barcode("9780439708180", student_id)
    with pytest.raises(ResourceNotFoundError):
        await ledger.create_loan_by_barcode("VOL99999999", student_id)


# ─── Return / lost ───────────────────────────────────────────────

async def test_return_frees_the_volume(ledger, catalog, shelved_title, student, clock, test_db):
    start = clock.now()
    loan = await ledger.create_loan(shelved_title.id, student.id)
    clock.advance(days=3)

    returned = await ledger.return_loan(loan.id)

    assert returned.status == LoanStatus.RETURNED
    assert ensure_utc(returned.returned_at) == start + timedelta(days=3)
    volume = await catalog.get_volume_or_404(loan.volume_id)
    assert volume.state == VolumeState.AVAILABLE
    assert await _active_loans_for(test_db, volume.id) == 0


async def test_return_twice_fails(ledger, shelved_title, student):
    loan = await ledger.create_loan(shelved_title.id, student.id)
    await ledger.return_loan(loan.id)
    with pytest.raises(AlreadyReturnedError):
        await ledger.return_loan(loan.id)
    with pytest.raises(AlreadyReturnedError):
        await ledger.extend_loan(loan.id)


async def test_declare_lost(ledger, catalog, shelved_title, student):
    loan = await ledger.create_loan(shelved_title.id, student.id)

    closed = await ledger.declare_lost(loan.id)

    assert closed.status == LoanStatus.RETURNED
    assert closed.closing_note == "lost"
    volume = await catalog.get_volume_or_404(loan.volume_id)
    assert volume.state == VolumeState.LOST
    assert await ledger.list_active() == []
    # Lost copy is never allocated again
    again = await ledger.create_loan(shelved_title.id, student.id)
    assert again.volume_id != volume.id


async def test_extend_rereads_a_stale_loan(
    ledger, shelved_title, student, clock, test_session_factory,
):
    loan = await ledger.create_loan(shelved_title.id, student.id)
    loan_id = loan.id

    async with test_session_factory() as other:
        desk = LoanLedger(other, clock)
        stale = await desk.get_or_404(loan_id)
        assert stale.extension_count == 0

        await ledger.extend_loan(loan_id)

        with pytest.raises(AlreadyExtendedError):
            await desk.extend_loan(loan_id)

    async with test_session_factory() as fresh:
        stored = await fresh.get(Loan, loan_id)
    assert stored.extension_count == 1


async def test_lost_after_return_elsewhere_is_refused(
    ledger, shelved_title, student, clock, test_session_factory,
):
    loan = await ledger.create_loan(shelved_title.id, student.id)
    loan_id, volume_id = loan.id, loan.volume_id

    async with test_session_factory() as other:
        desk = LoanLedger(other, clock)
        stale = await desk.get_or_404(loan_id)
        assert stale.status == LoanStatus.ACTIVE

        await ledger.return_loan(loan_id)

        with pytest.raises(AlreadyReturnedError):
            await desk.declare_lost(loan_id)
        with pytest.raises(AlreadyReturnedError):
            await desk.return_loan(loan_id)

    async with test_session_factory() as fresh:
        volume = await fresh.get(Volume, volume_id)
        stored = await fresh.get(Loan, loan_id)
    assert volume.state == VolumeState.AVAILABLE
    assert stored.closing_note is None


# ─── Reads ───────────────────────────────────────────────────────

async def test_overdue_is_derived_from_clock(ledger, shelved_title, student, clock):
    loan = await ledger.create_loan(shelved_title.id, student.id)

    clock.advance(days=14)
    assert await ledger.list_overdue() == []
    assert not (await ledger.get_detail(loan.id)).is_overdue

    clock.advance(days=1, minutes=1)
    overdue = await ledger.list_overdue()
    assert [d.id for d in overdue] == [loan.id]
    assert overdue[0].is_overdue
    assert overdue[0].days_overdue == 1


async def test_overdue_sorted_most_overdue_first(ledger, borrowers, shelved_title, student, clock):
    staff = await borrowers.create_group("Staff", 90)
    short = await ledger.create_loan(shelved_title.id, student.id)
    clock.advance(days=1)
    shorter_group = await borrowers.create_group("Express", 2)
    quick = await borrowers.create({"name": "Quick", "group_id": shorter_group.id})
    quickest = await ledger.create_loan(shelved_title.id, quick.id)
    keeper = await borrowers.create({"name": "Keeper", "group_id": staff.id})
    await ledger.create_loan(shelved_title.id, keeper.id)

    clock.advance(days=30)
    overdue = await ledger.list_overdue()
    assert [d.id for d in overdue] == [quickest.id, short.id]


async def test_loan_detail_projection(ledger, shelved_title, student):
    loan = await ledger.create_loan(shelved_title.id, student.id)
    detail = await ledger.get_detail(loan.id)
    assert detail.title == "The Hobbit"
    assert detail.barcode == "VOL00000002"
    assert detail.borrower_name == "Ada Student"
    assert detail.borrower_email == "ada@example.org"
    assert detail.days_overdue == 0


async def test_list_for_borrower_includes_history(ledger, shelved_title, student):
    first = await ledger.create_loan(shelved_title.id, student.id)
    await ledger.return_loan(first.id)
    second = await ledger.create_loan(shelved_title.id, student.id)

    history = await ledger.list_for_borrower(student.id)
    assert {d.id for d in history} == {first.id, second.id}
    assert [d.id for d in await ledger.list_active()] == [second.id]
