"""Title Matching — normalization, distance, and detection priority.

Tests cover:
    - normalize_title drops diacritics, case, punctuation, extra whitespace
    - levenshtein_distance on known pairs
    - ISBN match beats everything (1.0); exact title + author is 0.95
    - fuzzy match confidence equals similarity and respects the threshold
    - match_titles is symmetric; pair_key is canonical
    - scan_pairs finds each unordered pair once
"""

from uuid import uuid4

import pytest

from bibli.core.domain_types import DuplicateMethod
from bibli.core.title_matching import (
    TitleFingerprint, find_matches, levenshtein_distance, match_titles,
    normalize_title, pair_key, scan_pairs, title_similarity,
)


def _fp(title, isbn=None, author=None):
    return TitleFingerprint(uuid4(), title, isbn, author)


def test_normalize_title():
    assert normalize_title("  Les Misérables!  ") == "les miserables"
    assert normalize_title("Harry Potter: Book_One") == "harry potter book one"
    assert normalize_title("A   B\tC") == "a b c"


@pytest.mark.parametrize("a, b, distance", [
    ("kitten", "sitting", 3),
    ("", "abc", 3),
    ("flaw", "lawn", 2),
    ("same", "same", 0),
])
def test_levenshtein_distance(a, b, distance):
    assert levenshtein_distance(a, b) == distance
    assert levenshtein_distance(b, a) == distance


def test_identical_isbn_is_certain():
    author = uuid4()
    result = match_titles(
        _fp("Anything", "9780439708180"), _fp("Else entirely", "9780439708180", author),
    )
    assert result.method is DuplicateMethod.IDENTICAL_ISBN
    assert result.confidence == 1.0


def test_exact_title_same_author():
    author = uuid4()
    result = match_titles(_fp("The Hobbit", author=author), _fp("the hobbit!", author=author))
    assert result.method is DuplicateMethod.TITLE_AUTHOR_MATCH
    assert result.confidence == 0.95


def test_exact_title_different_author_falls_to_fuzzy():
    result = match_titles(_fp("The Hobbit", author=uuid4()), _fp("The Hobbit", author=uuid4()))
    assert result.method is DuplicateMethod.FUZZY_MATCH
    assert result.confidence == 1.0


def test_fuzzy_confidence_is_similarity():
    a, b = _fp("The Lord of the Rings"), _fp("The Lord of the Ring")
    result = match_titles(a, b)
    assert result.method is DuplicateMethod.FUZZY_MATCH
    assert result.confidence == round(title_similarity(a.title, b.title), 4)
    assert result.confidence >= 0.85


def test_below_threshold_is_no_match():
    assert match_titles(_fp("The Hobbit"), _fp("Dune")) is None
    a, b = _fp("The Lord of the Rings"), _fp("The Lord of the Ring")
    assert match_titles(a, b, threshold=0.99) is None


def test_match_is_symmetric():
    author = uuid4()
    pairs = [
        (_fp("Dune", "9780441013593"), _fp("Dune Messiah", "9780441013593")),
        (_fp("Emma", author=author), _fp("EMMA", author=author)),
        (_fp("Pride and Prejudice"), _fp("Pride & Prejudice")),
    ]
    for a, b in pairs:
        assert match_titles(a, b) == match_titles(b, a)


def test_pair_key_is_canonical():
    a, b = uuid4(), uuid4()
    assert pair_key(a, b) == pair_key(b, a)
    assert str(pair_key(a, b)[0]) <= str(pair_key(a, b)[1])


def test_find_matches_strongest_first_and_skips_self():
    subject = _fp("The Hobbit", "9780261103344")
    by_isbn = _fp("Hobbit, The", "9780261103344")
    fuzzy = _fp("The Hobbitt")
    catalog = [subject, fuzzy, by_isbn, _fp("Dune")]
    found = [other for other, _ in find_matches(subject, catalog)]
    assert found == [by_isbn, fuzzy]


def test_scan_pairs_reports_each_pair_once():
    a, b, c = _fp("The Hobbit"), _fp("The Hobbit."), _fp("Dune")
    pairs = scan_pairs([c, b, a])
    assert len(pairs) == 1
    first, second, _ = pairs[0]
    assert {first.id, second.id} == {a.id, b.id}
    assert (first.id, second.id) == pair_key(a.id, b.id)
