"""
Duplicate / search ranking

Scores stored vectors against a query vector, keeps those strictly above
a threshold, orders them and caps the count. Duplicate detection and
semantic search share the machinery but run with different configs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import cmp_to_key
from typing import Any, Iterable, Mapping, Sequence

from bugtracker.core.config import settings
from bugtracker.core.exceptions import DimensionMismatchError
from bugtracker.core.logging import get_logger
from bugtracker.services.similarity import cosine_similarity

logger = get_logger(__name__)


@dataclass(frozen=True)
class RankingConfig:
    threshold: float
    limit: int
    tie_window: float = 0.1
    recent_days: int = 7
    high_priority_levels: tuple[str, ...] = ("Critical",)


def duplicate_config() -> RankingConfig:
    return RankingConfig(
        threshold=settings.duplicate_similarity_threshold,
        limit=settings.duplicate_max_results,
        tie_window=settings.search_tie_window,
        recent_days=settings.recent_window_days,
        high_priority_levels=tuple(settings.high_priority_levels),
    )


def search_config() -> RankingConfig:
    return RankingConfig(
        threshold=settings.search_similarity_threshold,
        limit=settings.search_max_results,
        tie_window=settings.search_tie_window,
        recent_days=settings.recent_window_days,
        high_priority_levels=tuple(settings.high_priority_levels),
    )


@dataclass(frozen=True)
class Candidate:
    """Stored record offered to the ranker: ``(id, vector, metadata)``."""

    id: Any
    vector: Sequence[float]
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class ScoredCandidate:
    id: Any
    similarity: float
    metadata: Mapping[str, Any] = field(default_factory=dict)
    is_high_priority: bool = False
    is_recent: bool = False


def as_utc(value: datetime) -> datetime:
    """Naive datetimes (SQLite) are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_high_priority(priority: Any, config: RankingConfig) -> bool:
    if priority is None:
        return False
    value = getattr(priority, "value", priority)
    return value in config.high_priority_levels


def is_recent(created_at: datetime | None, config: RankingConfig, now: datetime) -> bool:
    if created_at is None:
        return False
    return as_utc(created_at) >= as_utc(now) - timedelta(days=config.recent_days)


def score_candidates(
    query: Sequence[float],
    candidates: Iterable[Candidate],
) -> list[ScoredCandidate]:
    """
    Score every candidate against the query.

    Candidates whose vectors cannot be compared are dropped. An empty query
    is a caller error and raises instead of silently yielding nothing.

    Raises:
        DimensionMismatchError: If the query vector is empty
    """
    if not query:
        raise DimensionMismatchError("Query vector is empty")

    scored: list[ScoredCandidate] = []
    for candidate in candidates:
        try:
            similarity = cosine_similarity(query, candidate.vector)
        except DimensionMismatchError as exc:
            logger.debug(
                "ranking_candidate_skipped",
                candidate_id=str(candidate.id),
                reason=exc.message,
            )
            continue
        scored.append(
            ScoredCandidate(
                id=candidate.id,
                similarity=similarity,
                metadata=candidate.metadata,
            )
        )
    return scored


def rank_duplicates(
    query: Sequence[float],
    candidates: Iterable[Candidate],
    config: RankingConfig,
) -> list[ScoredCandidate]:
    """Keep similarity > threshold, highest first, at most ``config.limit``."""
    above = [item for item in score_candidates(query, candidates) if item.similarity > config.threshold]
    above.sort(key=lambda item: item.similarity, reverse=True)
    return above[: config.limit]


def _compare_search_results(window: float):
    def compare(a: ScoredCandidate, b: ScoredCandidate) -> int:
        if abs(a.similarity - b.similarity) < window:
            if a.is_high_priority != b.is_high_priority:
                return -1 if a.is_high_priority else 1
            if a.is_recent != b.is_recent:
                return -1 if a.is_recent else 1
        if a.similarity > b.similarity:
            return -1
        if a.similarity < b.similarity:
            return 1
        return 0

    return compare


def rank_search_results(
    query: Sequence[float],
    candidates: Iterable[Candidate],
    config: RankingConfig,
    now: datetime | None = None,
) -> list[ScoredCandidate]:
    """
    Threshold filter and cap like :func:`rank_duplicates`, ordered with the
    search tie rule: within ``tie_window`` a high-priority result goes
    first, then a recent one; otherwise higher similarity first.
    """
    now = now or datetime.now(timezone.utc)

    above: list[ScoredCandidate] = []
    for item in score_candidates(query, candidates):
        if item.similarity <= config.threshold:
            continue
        item.is_high_priority = is_high_priority(item.metadata.get("priority"), config)
        item.is_recent = is_recent(item.metadata.get("created_at"), config, now)
        above.append(item)

    # Pre-sort so the tie rule only reorders neighbours in similarity order.
    above.sort(key=lambda item: item.similarity, reverse=True)
    above.sort(key=cmp_to_key(_compare_search_results(config.tie_window)))
    return above[: config.limit]
