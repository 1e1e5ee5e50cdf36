from __future__ import annotations

from reflink.models.references import ReferenceEntry
from reflink.services.ranking import rank


def _entry(title: str, confidence: float | None = None) -> ReferenceEntry:
    return ReferenceEntry(title=title, url=f"https://en.wikipedia.org/wiki/{title}", confidence=confidence)


def test_rank_orders_by_confidence_descending():
    entries = [_entry("Newton's Laws", 0.9), _entry("Force", 0.95)]

    ranked = rank(entries, 5)

    assert [(e.title, e.confidence) for e in ranked] == [("Force", 0.95), ("Newton's Laws", 0.9)]


def test_rank_treats_missing_confidence_as_zero_and_is_stable():
    entries = [_entry("A"), _entry("B", 0.2), _entry("C"), _entry("D", 0.0)]

    ranked = rank(entries, 10)

    assert [e.title for e in ranked] == ["B", "A", "C", "D"]


def test_rank_keeps_highest_confidence_duplicate():
    entries = [_entry("Gravity", 0.1), _entry("Mass", 0.5), _entry("Gravity", 0.8)]

    ranked = rank(entries, 5)

    assert [(e.title, e.confidence) for e in ranked] == [("Gravity", 0.8), ("Mass", 0.5)]


def test_rank_truncates_to_limit():
    entries = [_entry(f"T{i}", i / 10) for i in range(8)]

    ranked = rank(entries, 6)

    assert len(ranked) == 6
    assert ranked[0].title == "T7"
    assert len({e.title for e in ranked}) == 6


def test_rank_length_is_min_of_limit_and_distinct_titles():
    entries = [_entry("A", 0.3), _entry("A", 0.2), _entry("B", 0.1)]

    assert len(rank(entries, 5)) == 2
    assert len(rank(entries, 1)) == 1


def test_rank_empty_and_non_positive_limit():
    assert rank([], 5) == []
    assert rank([_entry("A", 0.3)], 0) == []


def test_rank_without_limit_keeps_every_distinct_title():
    entries = [_entry(f"T{i}", i / 10) for i in range(8)] + [_entry("T3", 0.05)]

    ranked = rank(entries)

    assert [e.title for e in ranked] == [f"T{i}" for i in range(7, -1, -1)]
