"""
Unit tests for duplicate / search ranking
"""

from datetime import datetime, timedelta, timezone

import pytest

from bugtracker.core.exceptions import DimensionMismatchError
from bugtracker.services.ranking import (
    Candidate,
    RankingConfig,
    is_recent,
    rank_duplicates,
    rank_search_results,
    score_candidates,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

DUPLICATES = RankingConfig(threshold=0.75, limit=5)
SEARCH = RankingConfig(threshold=0.3, limit=10, tie_window=0.1, recent_days=7)


def test_duplicate_ranking_example() -> None:
    candidates = [
        Candidate("A", [1.0, 0.0]),
        Candidate("B", [0.0, 1.0]),
        Candidate("C", [0.9, 0.1]),
    ]

    ranked = rank_duplicates([1.0, 0.0], candidates, DUPLICATES)

    assert [item.id for item in ranked] == ["A", "C"]
    assert ranked[0].similarity == pytest.approx(1.0)
    assert ranked[1].similarity == pytest.approx(0.9938837, abs=1e-6)


def test_threshold_is_strict() -> None:
    # cos = 3/5 exactly
    config = RankingConfig(threshold=0.6, limit=5)
    candidates = [Candidate("edge", [3.0, 4.0])]

    ranked = rank_duplicates([1.0, 0.0], candidates, config)

    assert ranked == []


def test_results_are_capped() -> None:
    candidates = [Candidate(i, [1.0, i / 1000]) for i in range(30)]

    assert len(rank_duplicates([1.0, 0.0], candidates, DUPLICATES)) == 5
    assert len(rank_search_results([1.0, 0.0], candidates, SEARCH, NOW)) == 10


def test_duplicates_sorted_descending() -> None:
    candidates = [Candidate(i, [1.0, i / 10]) for i in range(8)]

    ranked = rank_duplicates([1.0, 0.0], candidates, DUPLICATES)
    similarities = [item.similarity for item in ranked]

    assert similarities == sorted(similarities, reverse=True)
    assert all(value > DUPLICATES.threshold for value in similarities)


def test_empty_candidates_return_empty_list() -> None:
    assert rank_duplicates([1.0, 0.0], [], DUPLICATES) == []
    assert rank_search_results([1.0, 0.0], [], SEARCH, NOW) == []


def test_mismatched_candidates_are_dropped() -> None:
    candidates = [
        Candidate("short", [1.0]),
        Candidate("empty", []),
        Candidate("ok", [1.0, 0.0]),
    ]

    scored = score_candidates([1.0, 0.0], candidates)

    assert [item.id for item in scored] == ["ok"]


def test_empty_query_raises() -> None:
    with pytest.raises(DimensionMismatchError):
        rank_duplicates([], [Candidate("A", [1.0])], DUPLICATES)


def test_search_tie_prefers_high_priority_and_recent() -> None:
    stale_normal = Candidate(
        "first",
        [0.82, (1 - 0.82**2) ** 0.5],
        {"priority": "Medium", "created_at": NOW - timedelta(days=10)},
    )
    fresh_critical = Candidate(
        "second",
        [0.79, (1 - 0.79**2) ** 0.5],
        {"priority": "Critical", "created_at": NOW},
    )

    ranked = rank_search_results([1.0, 0.0], [stale_normal, fresh_critical], SEARCH, NOW)

    assert [item.id for item in ranked] == ["second", "first"]
    assert ranked[0].is_high_priority is True
    assert ranked[0].is_recent is True
    assert ranked[1].is_high_priority is False
    assert ranked[1].is_recent is False


def test_search_tie_prefers_recent_when_priority_equal() -> None:
    older = Candidate(
        "older",
        [0.85, (1 - 0.85**2) ** 0.5],
        {"priority": "Low", "created_at": NOW - timedelta(days=30)},
    )
    newer = Candidate(
        "newer",
        [0.80, (1 - 0.80**2) ** 0.5],
        {"priority": "Low", "created_at": NOW - timedelta(days=1)},
    )

    ranked = rank_search_results([1.0, 0.0], [older, newer], SEARCH, NOW)

    assert [item.id for item in ranked] == ["newer", "older"]


def test_search_outside_tie_window_keeps_similarity_order() -> None:
    strong = Candidate("strong", [0.95, (1 - 0.95**2) ** 0.5], {"priority": "Low"})
    weak_critical = Candidate(
        "weak",
        [0.6, 0.8],
        {"priority": "Critical", "created_at": NOW},
    )

    ranked = rank_search_results([1.0, 0.0], [weak_critical, strong], SEARCH, NOW)

    assert [item.id for item in ranked] == ["strong", "weak"]


def test_search_threshold_filters_low_similarity() -> None:
    ranked = rank_search_results(
        [1.0, 0.0],
        [Candidate("low", [0.2, 0.98]), Candidate("ok", [0.5, 0.8660254])],
        SEARCH,
        NOW,
    )

    assert [item.id for item in ranked] == ["ok"]


def test_is_recent_accepts_naive_datetimes() -> None:
    naive = (NOW - timedelta(days=2)).replace(tzinfo=None)

    assert is_recent(naive, SEARCH, NOW) is True
    assert is_recent(naive - timedelta(days=10), SEARCH, NOW) is False
    assert is_recent(None, SEARCH, NOW) is False
