"""Catalog Store — titles, their volumes, and the numbering/referential rules.

Invariants:
    - copy_number = 1 + max(existing copy numbers of the title, default 0)
    - Barcodes are issued by BarcodeIssuer inside the same atomic unit as the insert
    - delete_title fails HasVolumes{count} while any volume remains
    - delete_volume / state changes fail CurrentlyLoaned while an active loan exists
    - ISBN, when present, is stored as 13 digits passing the EAN-13 checksum
    - Classification strings are opaque; only non-emptiness is checked
    - Title creation runs duplicate detection in the same atomic unit

Design Decisions:
    - Title row locked (SELECT ... FOR UPDATE) before computing the next copy number;
      SQLite ignores the hint and serializes writers on its own
    - Overdue shown on volume projections is derived from the active loan at read time
"""

import logging
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bibli.core.barcode_format import BarcodeFormat, is_valid_ean13, normalize_isbn
from bibli.core.boundary_protocols import Clock
from bibli.core.domain_types import (
    OPERATOR_VOLUME_STATES, AuthorRole, CodeKind, LoanStatus,
    VolumeCondition, VolumeState,
)
from bibli.core.errors import (
    CurrentlyLoanedError, DuplicateBarcodeError, HasVolumesError,
    InvalidCodeError, InvalidFieldError, ResourceNotFoundError, TitleNotFoundError,
)
from bibli.core.loan_policy import is_overdue
from bibli.core.location_paths import DEFAULT_MAX_DEPTH, full_path
from bibli.core.title_matching import FUZZY_THRESHOLD
from bibli.infrastructure.clock import SystemClock
from bibli.models.author import Author, TitleAuthor
from bibli.models.duplicate_candidate import DuplicateCandidate
from bibli.models.loan import Loan
from bibli.models.location import Location
from bibli.models.publisher import Publisher
from bibli.models.title import Title
from bibli.models.volume import Volume
from bibli.schemas.catalog import ScanResult, TitleResponse, VolumeWithTitle
from bibli.services.barcode_issuer import BarcodeIssuer
from bibli.services.duplicate_resolver import DuplicateResolver
from bibli.services.location_tree import LocationTree
from bibli.services.unit_of_work import atomic

logger = logging.getLogger(__name__)

TITLE_FIELDS: tuple[str, ...] = (
    "title", "subtitle", "isbn", "publisher_id", "publication_year", "pages",
    "language", "classification_code", "classification_category", "summary",
)
NON_EMPTY_FIELDS: tuple[str, ...] = (
    "title", "classification_code", "classification_category",
)


class CatalogStore:
    """Title and volume persistence with catalog invariants."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock | None = None,
        barcode_format: BarcodeFormat | None = None,
        fuzzy_threshold: float = FUZZY_THRESHOLD,
        max_location_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.db = db
        self.clock = clock or SystemClock()
        self.barcodes = BarcodeIssuer(db, barcode_format)
        self.resolver = DuplicateResolver(db, self.clock, fuzzy_threshold)
        self.locations = LocationTree(db, max_location_depth)

    # ─── Authors & publishers ──────────────────────────────────

    async def create_author(self, first_name: str, last_name: str) -> Author:
        async with atomic(self.db):
            author = Author(first_name=first_name.strip(), last_name=last_name.strip())
            self.db.add(author)
        return author

    async def create_publisher(self, name: str) -> Publisher:
        async with atomic(self.db):
            publisher = Publisher(name=name.strip())
            self.db.add(publisher)
        return publisher

    # ─── Titles ────────────────────────────────────────────────

    async def get_title_or_404(self, title_id: UUID) -> Title:
        title = await self.db.get(Title, title_id)
        if not title:
            raise TitleNotFoundError(title_id)
        return title

    async def create_title(
        self, fields: dict, author_ids: list[UUID] | None = None,
    ) -> tuple[Title, list[DuplicateCandidate]]:
        """Insert a title and raise duplicate candidates against the catalog."""
        values = _validate_title_fields(fields, require_title=True)
        author_ids = list(dict.fromkeys(author_ids or []))
        await self._check_references(values.get("publisher_id"), author_ids)
        now = self.clock.now()
        async with atomic(self.db):
            title = Title(**values, created_at=now, updated_at=now)
            self.db.add(title)
            await self.db.flush()
            for order, author_id in enumerate(author_ids, start=1):
                self.db.add(TitleAuthor(
                    title_id=title.id, author_id=author_id,
                    role=AuthorRole.MAIN_AUTHOR.value, display_order=order,
                ))
            await self.db.flush()
            candidates = await self.resolver.detect_for(title.id)
        logger.info(
            f"Title '{title.title}' created with {len(candidates)} duplicate candidate(s)",
            extra={"title_id": title.id},
        )
        return title, candidates

    async def update_title(self, title_id: UUID, fields: dict) -> Title:
        title = await self.get_title_or_404(title_id)
        values = _validate_title_fields(fields, require_title=False)
        await self._check_references(values.get("publisher_id"), [])
        async with atomic(self.db):
            for key, value in values.items():
                setattr(title, key, value)
            title.updated_at = self.clock.now()
        return title

    async def add_author(
        self, title_id: UUID, author_id: UUID,
        role: AuthorRole = AuthorRole.MAIN_AUTHOR, display_order: int = 1,
    ) -> TitleAuthor:
        await self.get_title_or_404(title_id)
        await self._check_references(None, [author_id])
        async with atomic(self.db):
            link = TitleAuthor(
                title_id=title_id, author_id=author_id,
                role=AuthorRole(role).value, display_order=display_order,
            )
            self.db.add(link)
        return link

    async def list_titles(self) -> list[TitleResponse]:
        counts = (
            select(Volume.title_id, func.count(Volume.id).label("volume_count"))
            .group_by(Volume.title_id)
            .subquery()
        )
        result = await self.db.execute(
            select(Title, func.coalesce(counts.c.volume_count, 0))
            .outerjoin(counts, counts.c.title_id == Title.id)
            .order_by(Title.title, Title.id),
        )
        return [_title_response(title, count) for title, count in result]

    async def search_titles(self, text: str) -> list[TitleResponse]:
        pattern = f"%{text.strip()}%"
        result = await self.db.execute(
            select(Title)
            .where(or_(Title.title.ilike(pattern), Title.isbn.ilike(pattern)))
            .order_by(Title.title, Title.id),
        )
        titles = list(result.scalars())
        counts = await self._volume_counts([t.id for t in titles])
        return [_title_response(t, counts.get(t.id, 0)) for t in titles]

    async def title_response(self, title: Title) -> TitleResponse:
        counts = await self._volume_counts([title.id])
        return _title_response(title, counts.get(title.id, 0))

    async def delete_title(self, title_id: UUID) -> None:
        title = await self.get_title_or_404(title_id)
        count = await self.db.scalar(
            select(func.count(Volume.id)).where(Volume.title_id == title_id),
        )
        if count:
            logger.warning(
                f"Refused to delete title with {count} volume(s)",
                extra={"title_id": title_id},
            )
            raise HasVolumesError(title_id, count)
        async with atomic(self.db):
            await self.db.execute(
                delete(TitleAuthor).where(TitleAuthor.title_id == title_id),
            )
            await self.db.delete(title)
        logger.info("Title deleted", extra={"title_id": title_id})

    # ─── Volumes ───────────────────────────────────────────────

    async def get_volume_or_404(self, volume_id: UUID) -> Volume:
        volume = await self.db.get(Volume, volume_id)
        if not volume:
            raise ResourceNotFoundError("Volume", volume_id)
        return volume

    async def list_volumes(self, title_id: UUID) -> list[Volume]:
        await self.get_title_or_404(title_id)
        result = await self.db.execute(
            select(Volume)
            .where(Volume.title_id == title_id)
            .order_by(Volume.copy_number),
        )
        return list(result.scalars())

    async def add_volume(
        self,
        title_id: UUID,
        condition: VolumeCondition = VolumeCondition.GOOD,
        location_id: UUID | None = None,
        note: str | None = None,
        barcode: str | None = None,
    ) -> Volume:
        """New copy with the next copy number and an issued (or given) barcode."""
        if location_id is not None:
            await self.locations.get_or_404(location_id)
        if barcode is not None:
            barcode = await self._check_manual_barcode(barcode)
        async with atomic(self.db):
            title = await self.db.scalar(
                select(Title).where(Title.id == title_id).with_for_update(),
            )
            if not title:
                raise TitleNotFoundError(title_id)
            highest = await self.db.scalar(
                select(func.max(Volume.copy_number)).where(Volume.title_id == title_id),
            )
            volume = Volume(
                title_id=title_id,
                copy_number=(highest or 0) + 1,
                barcode=barcode or await self.barcodes.reserve(),
                condition=VolumeCondition(condition).value,
                location_id=location_id,
                state=VolumeState.AVAILABLE.value,
                note=note,
                created_at=self.clock.now(),
            )
            self.db.add(volume)
        logger.info(
            f"Volume #{volume.copy_number} added",
            extra={"title_id": title_id, "volume_id": volume.id,
                   "barcode": volume.barcode},
        )
        return volume

    async def update_volume(self, volume_id: UUID, fields: dict) -> Volume:
        """Condition / shelf / note / operator state. Only keys given are applied."""
        volume = await self.get_volume_or_404(volume_id)
        if fields.get("location_id") is not None:
            await self.locations.get_or_404(fields["location_id"])
        if fields.get("state") is not None:
            state = VolumeState(fields["state"])
            if state not in OPERATOR_VOLUME_STATES:
                raise InvalidFieldError(
                    "state", f"State '{state.value}' cannot be set by hand",
                )
            await self._check_not_loaned(volume)
        async with atomic(self.db):
            if fields.get("condition") is not None:
                volume.condition = VolumeCondition(fields["condition"]).value
            if "location_id" in fields:
                volume.location_id = fields["location_id"]
            if "note" in fields:
                volume.note = fields["note"]
            if fields.get("state") is not None:
                volume.state = VolumeState(fields["state"]).value
        return volume

    async def delete_volume(self, volume_id: UUID) -> None:
        volume = await self.get_volume_or_404(volume_id)
        await self._check_not_loaned(volume)
        async with atomic(self.db):
            await self.db.delete(volume)
        logger.info("Volume deleted", extra={"volume_id": volume_id})

    # ─── Scan projections ──────────────────────────────────────

    async def volume_with_title(self, volume: Volume) -> VolumeWithTitle:
        title = await self.get_title_or_404(volume.title_id)
        loan = await self._active_loan(volume.id)
        state = VolumeState(volume.state)
        if loan and is_overdue(loan.status, loan.due_at, self.clock.now()):
            state = VolumeState.OVERDUE
        path: list[str] = []
        if volume.location_id is not None:
            nodes = await self.locations.snapshot()
            if volume.location_id in nodes:
                path = full_path(volume.location_id, nodes, self.locations.max_depth)
        return VolumeWithTitle(
            id=volume.id,
            title_id=volume.title_id,
            copy_number=volume.copy_number,
            barcode=volume.barcode,
            condition=volume.condition,
            location_id=volume.location_id,
            state=state,
            note=volume.note,
            created_at=volume.created_at,
            title=title.title,
            isbn=title.isbn,
            location_path=path,
            active_loan_id=loan.id if loan else None,
            due_at=loan.due_at if loan else None,
        )

    async def lookup_code(self, code: str) -> ScanResult:
        """Resolve a scanned code to a volume (internal code) or titles (ISBN)."""
        kind = self.barcodes.classify(code)
        value = code.strip()
        if kind is CodeKind.VOLUME_CODE:
            volume = await self.db.scalar(select(Volume).where(Volume.barcode == value))
            if not volume:
                raise ResourceNotFoundError("Volume", value)
            return ScanResult(
                kind=kind, code=value, volume=await self.volume_with_title(volume),
            )
        if kind is CodeKind.ISBN_CODE:
            isbn = normalize_isbn(value)
            result = await self.db.execute(
                select(Title).where(Title.isbn == isbn).order_by(Title.created_at),
            )
            titles = list(result.scalars())
            counts = await self._volume_counts([t.id for t in titles])
            return ScanResult(
                kind=kind, code=isbn,
                titles=[_title_response(t, counts.get(t.id, 0)) for t in titles],
            )
        raise InvalidCodeError(value)

    # ─── Helpers ───────────────────────────────────────────────

    async def _active_loan(self, volume_id: UUID) -> Loan | None:
        return await self.db.scalar(
            select(Loan).where(
                Loan.volume_id == volume_id,
                Loan.status == LoanStatus.ACTIVE.value,
            ),
        )

    async def _check_not_loaned(self, volume: Volume) -> None:
        loan = await self._active_loan(volume.id)
        if loan or volume.state == VolumeState.LOANED.value:
            logger.warning(
                "Refused change to a loaned volume", extra={"volume_id": volume.id},
            )
            raise CurrentlyLoanedError(volume.id, loan.id if loan else None)

    async def _check_manual_barcode(self, barcode: str) -> str:
        value = barcode.strip()
        if self.barcodes.classify(value) is not CodeKind.VOLUME_CODE:
            raise InvalidCodeError(value, "volume barcode")
        taken = await self.db.scalar(
            select(func.count(Volume.id)).where(Volume.barcode == value),
        )
        if taken:
            raise DuplicateBarcodeError(value)
        return value

    async def _check_references(
        self, publisher_id: UUID | None, author_ids: list[UUID],
    ) -> None:
        if publisher_id is not None and not await self.db.get(Publisher, publisher_id):
            raise ResourceNotFoundError("Publisher", publisher_id)
        for author_id in author_ids:
            if not await self.db.get(Author, author_id):
                raise ResourceNotFoundError("Author", author_id)

    async def _volume_counts(self, title_ids: list[UUID]) -> dict[UUID, int]:
        if not title_ids:
            return {}
        result = await self.db.execute(
            select(Volume.title_id, func.count(Volume.id))
            .where(Volume.title_id.in_(title_ids))
            .group_by(Volume.title_id),
        )
        return {title_id: count for title_id, count in result}


def _validate_title_fields(fields: dict, require_title: bool) -> dict:
    """Known fields only; ISBN normalized and checksummed; opaque strings non-empty."""
    values = {k: v for k, v in fields.items() if k in TITLE_FIELDS}
    if require_title and not values.get("title"):
        raise InvalidFieldError("title", "Title cannot be empty")
    for name in NON_EMPTY_FIELDS:
        if name in values and values[name] is not None:
            cleaned = str(values[name]).strip()
            if not cleaned:
                raise InvalidFieldError(name, f"{name} cannot be empty when present")
            values[name] = cleaned
    if values.get("isbn"):
        isbn = normalize_isbn(values["isbn"])
        if not is_valid_ean13(isbn):
            raise InvalidCodeError(values["isbn"], "ISBN-13")
        values["isbn"] = isbn
    return values


def _title_response(title: Title, volume_count: int) -> TitleResponse:
    response = TitleResponse.model_validate(title)
    response.volume_count = volume_count
    return response
