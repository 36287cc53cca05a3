"""Duplicate Resolver — candidate detection, review, and atomic title merges.

Invariants:
    - At most one candidate per unordered title pair; pairs already recorded
      (any resolution) are never re-raised by a scan
    - Ignored and Merged are terminal: confirm/ignore on them fails CandidateResolved
    - merge is all-or-nothing: volumes moved and renumbered 1..n, loan history
      re-pointed, empty primary fields filled from secondary, secondary deleted,
      candidate marked Merged; any failure leaves storage exactly as before
    - Primary's copies keep relative order; merged set ordered by creation time

Design Decisions:
    - Renumbering goes through temporary negative copy numbers first so the
      (title_id, copy_number) unique constraint never sees two rows collide
    - Candidates have no foreign keys: a merged pair stays readable after the
      secondary title row is gone
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bibli.core.boundary_protocols import Clock
from bibli.core.domain_types import AuthorRole, Resolution
from bibli.core.errors import (
    CandidateResolvedError, InvalidFieldError, ResourceNotFoundError, TitleNotFoundError,
)
from bibli.core.merge_plan import (
    MERGEABLE_FIELDS, VolumeOrder, reconcile_fields, renumber,
)
from bibli.core.title_matching import (
    FUZZY_THRESHOLD, TitleFingerprint, find_matches, pair_key, scan_pairs,
)
from bibli.infrastructure.clock import SystemClock
from bibli.models.author import TitleAuthor
from bibli.models.duplicate_candidate import DuplicateCandidate
from bibli.models.loan import Loan
from bibli.models.title import Title
from bibli.models.volume import Volume
from bibli.schemas.duplicates import MergeResult, ScanSummary
from bibli.services.unit_of_work import atomic

logger = logging.getLogger(__name__)


class DuplicateResolver:
    """Finds and resolves duplicate titles."""

    def __init__(
        self, db: AsyncSession, clock: Clock | None = None,
        threshold: float = FUZZY_THRESHOLD,
    ):
        self.db = db
        self.clock = clock or SystemClock()
        self.threshold = threshold

    # ─── Detection ─────────────────────────────────────────────

    async def fingerprints(self) -> list[TitleFingerprint]:
        """Every title reduced to what the matcher compares."""
        titles = (await self.db.execute(
            select(Title.id, Title.title, Title.isbn),
        )).all()
        authors = await self._primary_authors()
        return [
            TitleFingerprint(row.id, row.title, row.isbn, authors.get(row.id))
            for row in titles
        ]

    async def detect_for(self, title_id: UUID) -> list[DuplicateCandidate]:
        """Record candidates for one title against the catalog. Caller commits."""
        catalog = await self.fingerprints()
        subject = next((f for f in catalog if f.id == title_id), None)
        if subject is None:
            raise TitleNotFoundError(title_id)
        existing = await self._existing_pairs()
        created = []
        for other, match in find_matches(subject, catalog, self.threshold):
            a, b = pair_key(subject.id, other.id)
            if (a, b) in existing:
                continue
            candidate = DuplicateCandidate(
                title_a_id=a, title_b_id=b,
                method=match.method.value, confidence=match.confidence,
                resolution=Resolution.PENDING.value,
                created_at=self.clock.now(),
            )
            self.db.add(candidate)
            existing.add((a, b))
            created.append(candidate)
        if created:
            await self.db.flush()
            logger.info(
                f"{len(created)} duplicate candidate(s) raised",
                extra={"title_id": title_id},
            )
        return created

    async def scan(self) -> ScanSummary:
        """Compare every pair of titles and record the new matches."""
        catalog = await self.fingerprints()
        pairs = scan_pairs(catalog, self.threshold)
        existing = await self._existing_pairs()
        created = skipped = 0
        async with atomic(self.db):
            for first, second, match in pairs:
                key = pair_key(first.id, second.id)
                if key in existing:
                    skipped += 1
                    continue
                self.db.add(DuplicateCandidate(
                    title_a_id=key[0], title_b_id=key[1],
                    method=match.method.value, confidence=match.confidence,
                    resolution=Resolution.PENDING.value,
                    created_at=self.clock.now(),
                ))
                existing.add(key)
                created += 1
        logger.info(
            f"Duplicate scan: {len(catalog)} titles, {len(pairs)} matches, "
            f"{created} new",
        )
        return ScanSummary(
            titles_scanned=len(catalog),
            pairs_matched=len(pairs),
            candidates_created=created,
            skipped_existing=skipped,
        )

    # ─── Review ────────────────────────────────────────────────

    async def get_or_404(self, candidate_id: UUID) -> DuplicateCandidate:
        candidate = await self.db.get(DuplicateCandidate, candidate_id)
        if not candidate:
            raise ResourceNotFoundError("DuplicateCandidate", candidate_id)
        return candidate

    async def list_candidates(
        self, resolution: Resolution | None = None,
    ) -> list[DuplicateCandidate]:
        query = select(DuplicateCandidate).order_by(
            DuplicateCandidate.confidence.desc(), DuplicateCandidate.created_at,
        )
        if resolution is not None:
            query = query.where(
                DuplicateCandidate.resolution == Resolution(resolution).value,
            )
        return list((await self.db.execute(query)).scalars())

    async def confirm(self, candidate_id: UUID) -> DuplicateCandidate:
        """Mark as a real duplicate awaiting merge."""
        return await self._resolve(candidate_id, Resolution.CONFIRMED)

    async def ignore(self, candidate_id: UUID) -> DuplicateCandidate:
        """Mark as not a duplicate; the pair will never be raised again."""
        return await self._resolve(candidate_id, Resolution.IGNORED)

    async def _resolve(
        self, candidate_id: UUID, resolution: Resolution,
    ) -> DuplicateCandidate:
        candidate = await self.get_or_404(candidate_id)
        current = Resolution(candidate.resolution)
        if current.is_terminal:
            raise CandidateResolvedError(candidate_id, current.value)
        async with atomic(self.db):
            candidate.resolution = resolution.value
            candidate.resolved_at = self.clock.now()
        logger.info(
            f"Duplicate candidate {resolution.value}",
            extra={"candidate_id": candidate_id},
        )
        return candidate

    # ─── Merge ─────────────────────────────────────────────────

    async def merge(self, primary_id: UUID, secondary_id: UUID) -> MergeResult:
        """Fold secondary into primary in one atomic unit."""
        if primary_id == secondary_id:
            raise InvalidFieldError("secondary_id", "Cannot merge a title with itself")
        primary = await self.db.get(Title, primary_id)
        if not primary:
            raise TitleNotFoundError(primary_id)
        secondary = await self.db.get(Title, secondary_id)
        if not secondary:
            raise TitleNotFoundError(secondary_id)

        a, b = pair_key(primary_id, secondary_id)
        candidate = await self.db.scalar(
            select(DuplicateCandidate).where(
                DuplicateCandidate.title_a_id == a,
                DuplicateCandidate.title_b_id == b,
            ),
        )
        if candidate and Resolution(candidate.resolution).is_terminal:
            raise CandidateResolvedError(candidate.id, candidate.resolution)

        async with atomic(self.db):
            volumes_moved = await self._move_volumes(primary_id, secondary_id)
            loans_moved = (await self.db.execute(
                update(Loan)
                .where(Loan.title_id == secondary_id)
                .values(title_id=primary_id)
                .execution_options(synchronize_session=False),
            )).rowcount
            adopted = await self._adopt_fields(primary, secondary)
            await self._adopt_authors(primary_id, secondary_id)
            now = self.clock.now()
            await self._close_other_candidates(secondary_id, candidate, now)
            if candidate is not None:
                candidate.resolution = Resolution.MERGED.value
                candidate.resolved_at = now
            primary.updated_at = now
            await self.db.execute(
                delete(TitleAuthor).where(TitleAuthor.title_id == secondary_id),
            )
            await self.db.delete(secondary)
            await self.db.flush()

        logger.info(
            f"Merged title {secondary_id}: {volumes_moved} volume(s), "
            f"{loans_moved} loan(s), fields {adopted}",
            extra={"title_id": primary_id},
        )
        return MergeResult(
            primary_id=primary_id,
            secondary_id=secondary_id,
            volumes_moved=volumes_moved,
            loans_moved=loans_moved,
            fields_adopted=adopted,
            candidate_id=candidate.id if candidate else None,
        )

    async def _move_volumes(self, primary_id: UUID, secondary_id: UUID) -> int:
        result = await self.db.execute(
            select(Volume)
            .where(Volume.title_id.in_([primary_id, secondary_id]))
            .with_for_update(),
        )
        volumes = list(result.scalars())
        plan = renumber([
            VolumeOrder(v.id, v.created_at, v.title_id == primary_id, v.copy_number)
            for v in volumes
        ])
        for index, volume in enumerate(volumes, start=1):
            volume.copy_number = -index
        await self.db.flush()
        moved = 0
        for volume in volumes:
            if volume.title_id == secondary_id:
                volume.title_id = primary_id
                moved += 1
            volume.copy_number = plan[volume.id]
        await self.db.flush()
        return moved

    async def _adopt_fields(self, primary: Title, secondary: Title) -> list[str]:
        updates = reconcile_fields(
            {name: getattr(primary, name) for name in MERGEABLE_FIELDS},
            {name: getattr(secondary, name) for name in MERGEABLE_FIELDS},
        )
        for name, value in updates.items():
            setattr(primary, name, value)
        return sorted(updates)

    async def _adopt_authors(self, primary_id: UUID, secondary_id: UUID) -> None:
        has_authors = await self.db.scalar(
            select(TitleAuthor.id).where(TitleAuthor.title_id == primary_id).limit(1),
        )
        if has_authors:
            return
        await self.db.execute(
            update(TitleAuthor)
            .where(TitleAuthor.title_id == secondary_id)
            .values(title_id=primary_id)
            .execution_options(synchronize_session=False),
        )

    async def _close_other_candidates(
        self, secondary_id: UUID, keep: DuplicateCandidate | None,
        now: datetime,
    ) -> None:
        """Pending reviews that mention the vanished title can no longer be acted on."""
        query = (
            update(DuplicateCandidate)
            .where(
                or_(
                    DuplicateCandidate.title_a_id == secondary_id,
                    DuplicateCandidate.title_b_id == secondary_id,
                ),
                DuplicateCandidate.resolution.in_(
                    [Resolution.PENDING.value, Resolution.CONFIRMED.value],
                ),
            )
            .values(resolution=Resolution.IGNORED.value, resolved_at=now)
            .execution_options(synchronize_session=False)
        )
        if keep is not None:
            query = query.where(DuplicateCandidate.id != keep.id)
        await self.db.execute(query)

    # ─── Helpers ───────────────────────────────────────────────

    async def _existing_pairs(self) -> set[tuple[UUID, UUID]]:
        result = await self.db.execute(
            select(DuplicateCandidate.title_a_id, DuplicateCandidate.title_b_id),
        )
        return {(row.title_a_id, row.title_b_id) for row in result}

    async def _primary_authors(self) -> dict[UUID, UUID]:
        """title_id -> first-credited main author (first credit of any role if none)."""
        result = await self.db.execute(
            select(
                TitleAuthor.title_id, TitleAuthor.author_id,
                TitleAuthor.role, TitleAuthor.display_order,
            ),
        )
        best: dict[UUID, tuple[tuple[bool, int], UUID]] = {}
        for row in result:
            key = (row.role != AuthorRole.MAIN_AUTHOR.value, row.display_order)
            if row.title_id not in best or key < best[row.title_id][0]:
                best[row.title_id] = (key, row.author_id)
        return {title_id: author_id for title_id, (_, author_id) in best.items()}
