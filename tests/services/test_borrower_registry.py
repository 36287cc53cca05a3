"""Borrower Registry — group policies, borrower CRUD, and deletion guards."""

from uuid import uuid4

import pytest

from bibli.core.errors import ConflictError, InvalidFieldError, ResourceNotFoundError


async def test_group_duration_must_be_positive(borrowers):
    with pytest.raises(InvalidFieldError) as exc:
        await borrowers.create_group("Nobody", 0)
    assert exc.value.field == "loan_duration_days"


async def test_group_names_are_unique(borrowers, student_group):
    with pytest.raises(ConflictError) as exc:
        await borrowers.create_group(" Student ", 30)
    assert exc.value.code == "DUPLICATE_GROUP_NAME"


async def test_duration_follows_group(borrowers, student, student_group):
    assert await borrowers.loan_duration(student) == 14

    await borrowers.update_group(student_group.id, {"loan_duration_days": 7})
    assert await borrowers.loan_duration(student) == 7


async def test_deleting_group_falls_back_to_default(borrowers, student, student_group):
    await borrowers.delete_group(student_group.id)

    refreshed = await borrowers.get_or_404(student.id)
    assert refreshed.group_id is None
    assert await borrowers.loan_duration(refreshed) == 21


async def test_create_requires_name_and_known_group(borrowers):
    with pytest.raises(InvalidFieldError):
        await borrowers.create({"name": "  "})
    with pytest.raises(ResourceNotFoundError):
        await borrowers.create({"name": "Bob", "group_id": uuid4()})


async def test_update_applies_only_given_keys(borrowers, student):
    updated = await borrowers.update(student.id, {"city": "Lyon"})
    assert updated.city == "Lyon"
    assert updated.email == "ada@example.org"
    assert updated.group_id is not None

    detached = await borrowers.update(student.id, {"group_id": None})
    assert detached.group_id is None


async def test_borrower_with_loans_cannot_be_deleted(
    borrowers, ledger, shelved_title, student,
):
    loan = await ledger.create_loan(shelved_title.id, student.id)

    with pytest.raises(ConflictError) as exc:
        await borrowers.delete(student.id)
    assert exc.value.code == "HAS_ACTIVE_LOANS"

    await ledger.return_loan(loan.id)
    with pytest.raises(ConflictError) as exc:
        await borrowers.delete(student.id)
    assert exc.value.code == "HAS_LOAN_HISTORY"


async def test_delete_borrower_without_loans(borrowers, student):
    await borrowers.delete(student.id)
    assert await borrowers.list_borrowers() == []
