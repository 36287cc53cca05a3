"""Loan Ledger — checkout, return, extension, lost declaration, overdue reads.

Invariants:
    - Volume.state == loaned iff exactly one active loan references the volume
    - due_at = loaned_at + borrower group duration (default when no group)
    - One extension per loan, adding one more group period
    - Every transition (create/return/extend/lost) touches loan and volume in
      one atomic unit
    - return/extend/lost re-read the loan under a row lock inside that unit, so
      two desks acting on one loan cannot both pass the open or extension check
    - Overdue is derived from the injected clock at read time, never stored

Design Decisions:
    - Clock injected (core/boundary_protocols.Clock) so due-date and overdue
      behaviour is testable without sleeping
    - Lost is recorded on the volume; the loan is closed as returned with
      closing_note "lost" so it stops counting as active or overdue
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bibli.core.barcode_format import BarcodeFormat
from bibli.core.boundary_protocols import Clock
from bibli.core.domain_types import (
    CodeKind, LocationAccessibility, LoanStatus, VolumeState,
)
from bibli.core.errors import (
    CurrentlyLoanedError, InvalidCodeError, ResourceNotFoundError,
    VolumeUnavailableError,
)
from bibli.core.loan_policy import (
    check_open, compute_due, days_overdue, extended_due, is_overdue,
)
from bibli.core.location_paths import DEFAULT_MAX_DEPTH
from bibli.infrastructure.clock import SystemClock
from bibli.models.borrower import Borrower
from bibli.models.loan import Loan
from bibli.models.title import Title
from bibli.models.volume import Volume
from bibli.schemas.loans import LoanDetail
from bibli.services.allocation_engine import AllocationEngine
from bibli.services.barcode_issuer import BarcodeIssuer
from bibli.services.borrower_registry import (
    DEFAULT_LOAN_DURATION_DAYS, BorrowerRegistry,
)
from bibli.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

LOST_NOTE = "lost"


class LoanLedger:
    """Loan lifecycle over loans + volumes."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock | None = None,
        default_duration_days: int = DEFAULT_LOAN_DURATION_DAYS,
        barcode_format: BarcodeFormat | None = None,
        policy: LocationAccessibility = LocationAccessibility.RANK,
        max_location_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.db = db
        self.clock = clock or SystemClock()
        self.borrowers = BorrowerRegistry(db, default_duration_days)
        self.allocation = AllocationEngine(db, policy, max_location_depth)
        self.barcodes = BarcodeIssuer(db, barcode_format)

    async def get_or_404(self, loan_id: UUID) -> Loan:
        loan = await self.db.get(Loan, loan_id)
        if not loan:
            raise ResourceNotFoundError("Loan", loan_id)
        return loan

    # ─── Transitions ───────────────────────────────────────────

    async def create_loan(self, title_id: UUID, borrower_id: UUID) -> Loan:
        """Title-level checkout: the allocation engine picks the copy."""
        borrower = await self.borrowers.get_or_404(borrower_id)
        duration = await self.borrowers.loan_duration(borrower)
        async with atomic(self.db):
            volume = await self.allocation.select(title_id, lock=True)
            loan = await self._open(volume, borrower, duration)
        return loan

    async def create_loan_by_barcode(self, barcode: str, borrower_id: UUID) -> Loan:
        """Checkout of the exact copy that was scanned."""
        code = barcode.strip()
        if self.barcodes.classify(code) is not CodeKind.VOLUME_CODE:
            raise InvalidCodeError(code, "volume barcode")
        borrower = await self.borrowers.get_or_404(borrower_id)
        duration = await self.borrowers.loan_duration(borrower)
        async with atomic(self.db):
            volume = await self.db.scalar(
                select(Volume).where(Volume.barcode == code).with_for_update(),
            )
            if not volume:
                raise ResourceNotFoundError("Volume", code)
            if volume.state == VolumeState.LOANED.value:
                active = await self._active_loan(volume.id)
                raise CurrentlyLoanedError(volume.id, active.id if active else None)
            if volume.state != VolumeState.AVAILABLE.value:
                logger.warning(
                    f"Scanned volume not available ({volume.state})",
                    extra={"volume_id": volume.id, "barcode": code},
                )
                raise VolumeUnavailableError(volume.id, volume.state)
            loan = await self._open(volume, borrower, duration)
        return loan

    async def return_loan(self, loan_id: UUID) -> Loan:
        async with atomic(self.db):
            loan = await self._lock(loan_id)
            check_open(loan_id, loan.status)
            loan.status = LoanStatus.RETURNED.value
            loan.returned_at = self.clock.now()
            volume = await self._volume_of(loan)
            if volume is not None and volume.state == VolumeState.LOANED.value:
                volume.state = VolumeState.AVAILABLE.value
        logger.info(
            "Loan returned",
            extra={"loan_id": loan.id, "volume_id": loan.volume_id},
        )
        return loan

    async def extend_loan(self, loan_id: UUID) -> Loan:
        """Push the due date one group period further, once."""
        loan = await self.get_or_404(loan_id)
        borrower = await self.borrowers.get_or_404(loan.borrower_id)
        duration = await self.borrowers.loan_duration(borrower)
        async with atomic(self.db):
            loan = await self._lock(loan_id)
            new_due = extended_due(
                loan_id, loan.status, loan.extension_count, loan.due_at, duration,
            )
            loan.due_at = new_due
            loan.extension_count += 1
        logger.info(
            f"Loan extended to {new_due.date().isoformat()}",
            extra={"loan_id": loan.id},
        )
        return loan

    async def declare_lost(self, loan_id: UUID) -> Loan:
        async with atomic(self.db):
            loan = await self._lock(loan_id)
            check_open(loan_id, loan.status)
            loan.status = LoanStatus.RETURNED.value
            loan.returned_at = self.clock.now()
            loan.closing_note = LOST_NOTE
            volume = await self._volume_of(loan)
            if volume is not None:
                volume.state = VolumeState.LOST.value
        logger.warning(
            "Volume declared lost",
            extra={"loan_id": loan.id, "volume_id": loan.volume_id},
        )
        return loan

    async def _lock(self, loan_id: UUID) -> Loan:
        """Re-read the loan under a row lock. Caller holds the unit."""
        loan = await self.db.scalar(
            select(Loan)
            .where(Loan.id == loan_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        if not loan:
            raise ResourceNotFoundError("Loan", loan_id)
        return loan

    async def _open(self, volume: Volume, borrower: Borrower, duration: int) -> Loan:
        """Insert the loan and flip the volume to loaned. Caller holds the unit."""
        active = await self._active_loan(volume.id)
        if active:
            raise CurrentlyLoanedError(volume.id, active.id)
        now = self.clock.now()
        loan = Loan(
            title_id=volume.title_id,
            volume_id=volume.id,
            borrower_id=borrower.id,
            loaned_at=now,
            due_at=compute_due(now, duration),
            status=LoanStatus.ACTIVE.value,
            extension_count=0,
            created_at=now,
        )
        volume.state = VolumeState.LOANED.value
        self.db.add(loan)
        await self.db.flush()
        logger.info(
            f"Volume #{volume.copy_number} loaned for {duration} days",
            extra={"loan_id": loan.id, "volume_id": volume.id,
                   "borrower_id": borrower.id},
        )
        return loan

    # ─── Reads ─────────────────────────────────────────────────

    async def get_detail(self, loan_id: UUID) -> LoanDetail:
        rows = await self._details(Loan.id == loan_id)
        if not rows:
            raise ResourceNotFoundError("Loan", loan_id)
        return rows[0]

    async def list_active(self) -> list[LoanDetail]:
        return await self._details(Loan.status == LoanStatus.ACTIVE.value)

    async def list_overdue(self) -> list[LoanDetail]:
        """Active loans past due, most overdue first."""
        active = await self.list_active()
        return [d for d in active if d.is_overdue]

    async def list_for_borrower(self, borrower_id: UUID) -> list[LoanDetail]:
        await self.borrowers.get_or_404(borrower_id)
        return await self._details(Loan.borrower_id == borrower_id)

    async def _details(self, *criteria) -> list[LoanDetail]:
        now = self.clock.now()
        result = await self.db.execute(
            select(Loan, Title.title, Volume.barcode, Borrower.name, Borrower.email)
            .join(Borrower, Borrower.id == Loan.borrower_id)
            .outerjoin(Title, Title.id == Loan.title_id)
            .outerjoin(Volume, Volume.id == Loan.volume_id)
            .where(*criteria)
            .order_by(Loan.due_at, Loan.id),
        )
        return [
            LoanDetail(
                id=loan.id,
                title_id=loan.title_id,
                volume_id=loan.volume_id,
                borrower_id=loan.borrower_id,
                loaned_at=loan.loaned_at,
                due_at=loan.due_at,
                returned_at=loan.returned_at,
                status=loan.status,
                extension_count=loan.extension_count,
                closing_note=loan.closing_note,
                title=title,
                barcode=barcode,
                borrower_name=name,
                borrower_email=email,
                is_overdue=is_overdue(loan.status, loan.due_at, now),
                days_overdue=days_overdue(loan.status, loan.due_at, now),
            )
            for loan, title, barcode, name, email in result
        ]

    async def _active_loan(self, volume_id: UUID) -> Loan | None:
        return await self.db.scalar(
            select(Loan).where(
                Loan.volume_id == volume_id,
                Loan.status == LoanStatus.ACTIVE.value,
            ),
        )

    async def _volume_of(self, loan: Loan) -> Volume | None:
        if loan.volume_id is None:
            return None
        return await self.db.scalar(
            select(Volume)
            .where(Volume.id == loan.volume_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
