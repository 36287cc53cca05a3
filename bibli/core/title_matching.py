"""Title Matching — normalization -> distance -> confidence for duplicate detection.

Invariants:
    - normalize_title is applied identically to both sides
    - match_titles is PURE and symmetric: match_titles(a, b) == match_titles(b, a)
    - Detection priority: identical ISBN (1.0) > exact title + primary author (0.95)
      > fuzzy similarity >= threshold (confidence = similarity)
    - pair_key orders ids so a pair has one canonical form

Design Decisions:
    - Plain dynamic-programming Levenshtein (two rows): titles are short, and a
      dependency for one function is not worth it
    - Punctuation becomes a space before collapsing, so "Harry Potter: Book" and
      "Harry Potter Book" normalize the same
"""

import re
import unicodedata
from dataclasses import dataclass
from uuid import UUID

from bibli.core.domain_types import DuplicateMethod


FUZZY_THRESHOLD: float = 0.85
ISBN_CONFIDENCE: float = 1.0
TITLE_AUTHOR_CONFIDENCE: float = 0.95

_PUNCTUATION = re.compile(r"[^\w\s]", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class TitleFingerprint:
    """What the matcher needs to know about a title."""
    id: UUID
    title: str
    isbn: str | None = None
    primary_author_id: UUID | None = None


@dataclass(frozen=True)
class MatchResult:
    method: DuplicateMethod
    confidence: float


def normalize_title(text: str) -> str:
    """Lowercase, strip diacritics, drop punctuation, collapse whitespace."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    lowered = stripped.lower().replace("_", " ")
    no_punct = _PUNCTUATION.sub(" ", lowered)
    return _WHITESPACE.sub(" ", no_punct).strip()


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,                # deletion
                current[j - 1] + 1,             # insertion
                previous[j - 1] + (ca != cb),   # substitution
            ))
        previous = current
    return previous[-1]


def _normalized_similarity(na: str, nb: str) -> float:
    if not na and not nb:
        return 1.0
    return 1.0 - levenshtein_distance(na, nb) / max(len(na), len(nb))


def title_similarity(a: str, b: str) -> float:
    """1 - normalized Levenshtein distance of the normalized titles."""
    return _normalized_similarity(normalize_title(a), normalize_title(b))


def match_titles(
    a: TitleFingerprint,
    b: TitleFingerprint,
    threshold: float = FUZZY_THRESHOLD,
) -> MatchResult | None:
    """Strongest applicable match between two titles, or None."""
    if a.isbn and b.isbn and a.isbn == b.isbn:
        return MatchResult(DuplicateMethod.IDENTICAL_ISBN, ISBN_CONFIDENCE)

    na, nb = normalize_title(a.title), normalize_title(b.title)
    if (
        na and na == nb
        and a.primary_author_id is not None
        and a.primary_author_id == b.primary_author_id
    ):
        return MatchResult(
            DuplicateMethod.TITLE_AUTHOR_MATCH, TITLE_AUTHOR_CONFIDENCE,
        )

    if not na or not nb:
        return None
    similarity = _normalized_similarity(na, nb)
    if similarity >= threshold:
        return MatchResult(DuplicateMethod.FUZZY_MATCH, round(similarity, 4))
    return None


def pair_key(a: UUID, b: UUID) -> tuple[UUID, UUID]:
    """Canonical (smaller, larger) ordering of an unordered pair."""
    return (a, b) if str(a) <= str(b) else (b, a)


def find_matches(
    candidate: TitleFingerprint,
    catalog: list[TitleFingerprint],
    threshold: float = FUZZY_THRESHOLD,
) -> list[tuple[TitleFingerprint, MatchResult]]:
    """Every catalog entry matching candidate, strongest first."""
    matches = []
    for other in catalog:
        if other.id == candidate.id:
            continue
        result = match_titles(candidate, other, threshold)
        if result:
            matches.append((other, result))
    matches.sort(key=lambda m: (-m[1].confidence, str(m[0].id)))
    return matches


def scan_pairs(
    catalog: list[TitleFingerprint],
    threshold: float = FUZZY_THRESHOLD,
) -> list[tuple[TitleFingerprint, TitleFingerprint, MatchResult]]:
    """All matching unordered pairs in the catalog, canonical order."""
    ordered = sorted(catalog, key=lambda t: str(t.id))
    pairs = []
    for i, first in enumerate(ordered):
        for second in ordered[i + 1:]:
            result = match_titles(first, second, threshold)
            if result:
                pairs.append((first, second, result))
    return pairs
