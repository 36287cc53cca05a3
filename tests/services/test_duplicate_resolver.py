"""Duplicate Resolver — detection on create, batch scans, review, and merges.

Invariants:
    - Same ISBN → identical_isbn at 1.0; same normalized title + author → 0.95
    - A recorded pair (any resolution) is never raised again
    - merge renumbers by creation time, re-points loans, fills empty fields,
      deletes the secondary, and marks the candidate merged
    - A failed merge leaves every row as it was
"""

import pytest
from sqlalchemy import func, select

from bibli.core.domain_types import DuplicateMethod, Resolution
from bibli.core.errors import (
    CandidateResolvedError, InvalidFieldError, TitleNotFoundError,
)
from bibli.core.title_matching import pair_key
from bibli.models.author import TitleAuthor
from bibli.models.duplicate_candidate import DuplicateCandidate
from bibli.models.loan import Loan
from bibli.models.title import Title
from bibli.models.volume import Volume

HOBBIT_ISBN = "9780547928227"
EMMA_ISBN = "9780141439587"


async def _seed_raw_titles(db, clock, *names: str) -> list[Title]:
    """Insert titles without going through detection."""
    now = clock.now()
    titles = [Title(title=name, created_at=now, updated_at=now) for name in names]
    db.add_all(titles)
    await db.commit()
    return titles


# ─── Detection ───────────────────────────────────────────────────

async def test_same_isbn_raises_candidate_on_create(catalog):
    first, _ = await catalog.create_title({"title": "Harry Potter", "isbn": "9780439708180"})
    second, candidates = await catalog.create_title({
        "title": "Harry Potter and the Philosopher's Stone",
        "isbn": "978-0-439-70818-0",
    })

    assert len(candidates) == 1
    candidate = candidates[0]
    assert candidate.method == DuplicateMethod.IDENTICAL_ISBN
    assert candidate.confidence == 1.0
    assert candidate.resolution == Resolution.PENDING
    assert (candidate.title_a_id, candidate.title_b_id) == pair_key(first.id, second.id)


async def test_title_and_author_match(catalog):
    author = await catalog.create_author("Frank", "Herbert")
    await catalog.create_title({"title": "Dune"}, [author.id])
    _, candidates = await catalog.create_title({"title": "DUNE!"}, [author.id])

    assert [(c.method, c.confidence) for c in candidates] == [
        (DuplicateMethod.TITLE_AUTHOR_MATCH, 0.95),
    ]


async def test_unrelated_titles_raise_nothing(catalog):
    await catalog.create_title({"title": "Dune", "isbn": "9780441013593"})
    _, candidates = await catalog.create_title({"title": "Emma", "isbn": EMMA_ISBN})
    assert candidates == []


async def test_scan_is_idempotent(resolver, test_db, clock):
    await _seed_raw_titles(test_db, clock, "Foundation", "Foundation.", "Dune")

    first = await resolver.scan()
    assert first.titles_scanned == 3
    assert first.pairs_matched == 1
    assert first.candidates_created == 1

    second = await resolver.scan()
    assert second.candidates_created == 0
    assert second.skipped_existing == 1
    assert len(await resolver.list_candidates()) == 1


async def test_ignored_pair_is_not_raised_again(resolver, test_db, clock):
    await _seed_raw_titles(test_db, clock, "Foundation", "Foundation.")
    await resolver.scan()
    [candidate] = await resolver.list_candidates()
    candidate_id = candidate.id

    ignored = await resolver.ignore(candidate_id)
    assert ignored.resolution == Resolution.IGNORED
    assert ignored.resolved_at == clock.now()

    summary = await resolver.scan()
    assert summary.candidates_created == 0
    assert await resolver.list_candidates(Resolution.PENDING) == []

    with pytest.raises(CandidateResolvedError):
        await resolver.confirm(candidate_id)


async def test_list_candidates_strongest_first(catalog, resolver):
    author = await catalog.create_author("Frank", "Herbert")
    await catalog.create_title({"title": "Dune"}, [author.id])
    await catalog.create_title({"title": "Dune"}, [author.id])
    await catalog.create_title({"title": "Emma", "isbn": EMMA_ISBN})
    await catalog.create_title({"title": "Emma (Penguin)", "isbn": EMMA_ISBN})

    listing = await resolver.list_candidates()
    assert [c.confidence for c in listing] == [1.0, 0.95]


# ─── Merge ───────────────────────────────────────────────────────

async def test_merge_folds_secondary_into_primary(
    catalog, resolver, ledger, student, title, clock, test_session_factory,
):
    primary_first = await catalog.add_volume(title.id)
    clock.advance(hours=1)
    secondary, [candidate] = await catalog.create_title(
        {"title": "The Hobbit", "isbn": HOBBIT_ISBN, "pages": 300},
    )
    secondary_copy = await catalog.add_volume(secondary.id)
    clock.advance(hours=1)
    primary_second = await catalog.add_volume(title.id)
    loan = await ledger.create_loan_by_barcode(secondary_copy.barcode, student.id)
    primary_id, secondary_id = title.id, secondary.id

    result = await resolver.merge(primary_id, secondary_id)

    assert result.volumes_moved == 1
    assert result.loans_moved == 1
    assert result.fields_adopted == ["isbn", "pages"]
    assert result.candidate_id == candidate.id

    async with test_session_factory() as fresh:
        merged = await fresh.get(Title, primary_id)
        assert merged.isbn == HOBBIT_ISBN
        assert merged.pages == 300
        assert await fresh.get(Title, secondary_id) is None

        copies = {
            v.id: v.copy_number for v in (await fresh.execute(
                select(Volume).where(Volume.title_id == primary_id),
            )).scalars()
        }
        assert copies == {
            primary_first.id: 1, secondary_copy.id: 2, primary_second.id: 3,
        }
        assert (await fresh.get(Loan, loan.id)).title_id == primary_id
        stored = await fresh.get(DuplicateCandidate, candidate.id)
        assert stored.resolution == Resolution.MERGED


async def test_merge_adopts_authors_when_primary_has_none(
    catalog, resolver, title, test_session_factory,
):
    author = await catalog.create_author("J. R. R.", "Tolkien")
    secondary, _ = await catalog.create_title({"title": "Hobbit, The"}, [author.id])
    primary_id, author_id = title.id, author.id

    await resolver.merge(primary_id, secondary.id)

    async with test_session_factory() as fresh:
        links = (await fresh.execute(
            select(TitleAuthor.author_id).where(TitleAuthor.title_id == primary_id),
        )).scalars().all()
    assert links == [author_id]


async def test_merge_closes_other_candidates_of_secondary(
    catalog, resolver, test_session_factory,
):
    a, _ = await catalog.create_title({"title": "Emma", "isbn": EMMA_ISBN})
    b, _ = await catalog.create_title({"title": "Emma", "isbn": EMMA_ISBN})
    c, _ = await catalog.create_title({"title": "Emma", "isbn": EMMA_ISBN})
    a_id, b_id, c_id = a.id, b.id, c.id

    await resolver.merge(a_id, b_id)

    async with test_session_factory() as fresh:
        rows = (await fresh.execute(select(DuplicateCandidate))).scalars().all()
    by_pair = {(r.title_a_id, r.title_b_id): r.resolution for r in rows}
    assert by_pair == {
        pair_key(a_id, b_id): Resolution.MERGED,
        pair_key(b_id, c_id): Resolution.IGNORED,
        pair_key(a_id, c_id): Resolution.PENDING,
    }


async def test_merge_without_candidate(catalog, resolver, title):
    other, candidates = await catalog.create_title({"title": "Dune"})
    assert candidates == []

    result = await resolver.merge(title.id, other.id)
    assert result.candidate_id is None
    assert result.volumes_moved == 0


async def test_merge_refusals(catalog, resolver, title):
    title_id = title.id
    with pytest.raises(InvalidFieldError):
        await resolver.merge(title_id, title_id)

    other, [candidate] = await catalog.create_title({"title": "The Hobbit"})
    other_id = other.id
    await resolver.ignore(candidate.id)
    with pytest.raises(CandidateResolvedError):
        await resolver.merge(title_id, other_id)

    await catalog.delete_title(other_id)
    with pytest.raises(TitleNotFoundError):
        await resolver.merge(title_id, other_id)


async def test_failed_merge_changes_nothing(
    catalog, resolver, title, monkeypatch, test_session_factory,
):
    await catalog.add_volume(title.id)
    secondary, [candidate] = await catalog.create_title(
        {"title": "The Hobbit", "isbn": HOBBIT_ISBN},
    )
    moved = await catalog.add_volume(secondary.id)
    primary_id, secondary_id = title.id, secondary.id
    moved_id, candidate_id = moved.id, candidate.id

    async def fail(*args):
        raise RuntimeError("storage went away")

    monkeypatch.setattr(resolver, "_adopt_authors", fail)

    with pytest.raises(RuntimeError):
        await resolver.merge(primary_id, secondary_id)

    async with test_session_factory() as fresh:
        assert await fresh.get(Title, secondary_id) is not None
        assert (await fresh.get(Title, primary_id)).isbn is None
        volume = await fresh.get(Volume, moved_id)
        assert volume.title_id == secondary_id
        assert volume.copy_number == 1
        assert (await fresh.get(DuplicateCandidate, candidate_id)).resolution == (
            Resolution.PENDING
        )
        count = await fresh.scalar(
            select(func.count(Volume.id)).where(Volume.title_id == primary_id),
        )
    assert count == 1
