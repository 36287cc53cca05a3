"""Borrower Registry — borrower groups, borrowers, and loan-duration resolution.

Invariants:
    - Group names are unique (checked before insert, backed by the unique index)
    - loan_duration_days > 0
    - A borrower without a group borrows for the configured default duration
    - A borrower with an active loan cannot be deleted; one with returned loans
      cannot either, since loan history is kept
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bibli.core.domain_types import LoanStatus
from bibli.core.errors import ConflictError, InvalidFieldError, ResourceNotFoundError
from bibli.models.borrower import Borrower, BorrowerGroup
from bibli.models.loan import Loan
from bibli.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

DEFAULT_LOAN_DURATION_DAYS: int = 21

GROUP_FIELDS = ("name", "loan_duration_days", "description")
BORROWER_FIELDS = ("name", "email", "phone", "address", "city", "zip", "group_id")


class BorrowerRegistry:
    """CRUD over borrower groups and borrowers."""

    def __init__(
        self, db: AsyncSession, default_duration_days: int = DEFAULT_LOAN_DURATION_DAYS,
    ):
        self.db = db
        self.default_duration_days = default_duration_days

    # ─── Groups ────────────────────────────────────────────────

    async def get_group_or_404(self, group_id: UUID) -> BorrowerGroup:
        group = await self.db.get(BorrowerGroup, group_id)
        if not group:
            raise ResourceNotFoundError("BorrowerGroup", group_id)
        return group

    async def list_groups(self) -> list[BorrowerGroup]:
        result = await self.db.execute(select(BorrowerGroup).order_by(BorrowerGroup.name))
        return list(result.scalars())

    async def create_group(
        self, name: str, loan_duration_days: int, description: str | None = None,
    ) -> BorrowerGroup:
        name = name.strip()
        _check_duration(loan_duration_days)
        await self._check_group_name(name)
        async with atomic(self.db):
            group = BorrowerGroup(
                name=name, loan_duration_days=loan_duration_days,
                description=description,
            )
            self.db.add(group)
        logger.info(f"Borrower group '{name}' created ({loan_duration_days} days)")
        return group

    async def update_group(self, group_id: UUID, fields: dict) -> BorrowerGroup:
        group = await self.get_group_or_404(group_id)
        values = {k: v for k, v in fields.items() if k in GROUP_FIELDS}
        if values.get("loan_duration_days") is not None:
            _check_duration(values["loan_duration_days"])
        if values.get("name") is not None:
            values["name"] = values["name"].strip()
            if values["name"] != group.name:
                await self._check_group_name(values["name"])
        async with atomic(self.db):
            for key, value in values.items():
                if value is not None or key == "description":
                    setattr(group, key, value)
        return group

    async def delete_group(self, group_id: UUID) -> None:
        """Members fall back to the default duration."""
        group = await self.get_group_or_404(group_id)
        async with atomic(self.db):
            members = await self.db.execute(
                select(Borrower).where(Borrower.group_id == group_id),
            )
            for borrower in members.scalars():
                borrower.group_id = None
            await self.db.delete(group)
        logger.info(f"Borrower group '{group.name}' deleted")

    # ─── Borrowers ─────────────────────────────────────────────

    async def get_or_404(self, borrower_id: UUID) -> Borrower:
        borrower = await self.db.get(Borrower, borrower_id)
        if not borrower:
            raise ResourceNotFoundError("Borrower", borrower_id)
        return borrower

    async def list_borrowers(self) -> list[Borrower]:
        result = await self.db.execute(select(Borrower).order_by(Borrower.name))
        return list(result.scalars())

    async def create(self, fields: dict) -> Borrower:
        values = {k: v for k, v in fields.items() if k in BORROWER_FIELDS}
        if not (values.get("name") or "").strip():
            raise InvalidFieldError("name", "Borrower name cannot be empty")
        values["name"] = values["name"].strip()
        if values.get("group_id") is not None:
            await self.get_group_or_404(values["group_id"])
        async with atomic(self.db):
            borrower = Borrower(**values)
            self.db.add(borrower)
        logger.info("Borrower created", extra={"borrower_id": borrower.id})
        return borrower

    async def update(self, borrower_id: UUID, fields: dict) -> Borrower:
        """Only keys given are applied; group_id None moves to the default policy."""
        borrower = await self.get_or_404(borrower_id)
        values = {k: v for k, v in fields.items() if k in BORROWER_FIELDS}
        if "name" in values:
            if not (values["name"] or "").strip():
                raise InvalidFieldError("name", "Borrower name cannot be empty")
            values["name"] = values["name"].strip()
        if values.get("group_id") is not None:
            await self.get_group_or_404(values["group_id"])
        async with atomic(self.db):
            for key, value in values.items():
                setattr(borrower, key, value)
        return borrower

    async def delete(self, borrower_id: UUID) -> None:
        borrower = await self.get_or_404(borrower_id)
        active = await self.db.scalar(
            select(func.count(Loan.id)).where(
                Loan.borrower_id == borrower_id,
                Loan.status == LoanStatus.ACTIVE.value,
            ),
        )
        if active:
            logger.warning(
                f"Refused to delete borrower with {active} active loan(s)",
                extra={"borrower_id": borrower_id},
            )
            raise ConflictError(
                f"Borrower '{borrower_id}' has {active} active loan(s)",
                "HAS_ACTIVE_LOANS",
                {"borrower_id": str(borrower_id), "count": active},
            )
        history = await self.db.scalar(
            select(func.count(Loan.id)).where(Loan.borrower_id == borrower_id),
        )
        if history:
            raise ConflictError(
                f"Borrower '{borrower_id}' has {history} loan(s) on record",
                "HAS_LOAN_HISTORY",
                {"borrower_id": str(borrower_id), "count": history},
            )
        async with atomic(self.db):
            await self.db.delete(borrower)
        logger.info("Borrower deleted", extra={"borrower_id": borrower_id})

    async def loan_duration(self, borrower: Borrower) -> int:
        """Days of the borrower's group policy, or the default."""
        if borrower.group_id is None:
            return self.default_duration_days
        group = await self.db.get(BorrowerGroup, borrower.group_id)
        return group.loan_duration_days if group else self.default_duration_days

    async def _check_group_name(self, name: str) -> None:
        if not name:
            raise InvalidFieldError("name", "Group name cannot be empty")
        taken = await self.db.scalar(
            select(func.count(BorrowerGroup.id)).where(BorrowerGroup.name == name),
        )
        if taken:
            raise ConflictError(
                f"Borrower group '{name}' already exists",
                "DUPLICATE_GROUP_NAME", {"name": name},
            )


def _check_duration(days: int) -> None:
    if days <= 0:
        raise InvalidFieldError(
            "loan_duration_days", "Loan duration must be a positive number of days",
        )
