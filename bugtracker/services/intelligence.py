"""
Bug intelligence service

Duplicate detection, AI-style bug analysis and two-tier search.
Embedding failures are absorbed here: the caller gets the result without
the embedding-based enhancement instead of an error.
"""

from __future__ import annotations

import re
import time
import traceback
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol, Sequence

from bugtracker.core.config import settings
from bugtracker.core.exceptions import AnalysisError, SearchError
from bugtracker.core.logging import get_logger, measure_latency, metrics_counter
from bugtracker.embedding.guard import embed_with_timeout
from bugtracker.embedding.protocol import EmbeddingProviderProtocol
from bugtracker.models.bug import Bug, BugStatus
from bugtracker.repositories.bug_repository import BugRepository
from bugtracker.schemas.ai import (
    AnalysisMetadata,
    AnalyzeRequest,
    BugAnalysis,
    DuplicateCandidate,
    RelatedBug,
    SearchInsights,
    SearchMetadata,
    SearchResponse,
    SearchResult,
)
from bugtracker.services.confidence import ConfidenceWeights, fuse_confidence
from bugtracker.services.heuristics import BugSignals, HeuristicAnalyzer
from bugtracker.services.ranking import (
    Candidate,
    RankingConfig,
    duplicate_config,
    is_high_priority,
    is_recent,
    rank_duplicates,
    rank_search_results,
    search_config,
)

logger = get_logger(__name__)

ANALYSIS_FAILED_MESSAGE = "Failed to analyze bug"
SEARCH_FAILED_MESSAGE = "Failed to perform search"
RELATED_SNIPPET_LENGTH = 150
MAX_SUGGESTIONS = 4
FALLBACK_SUGGESTIONS = [
    "Show recent bugs",
    "Critical bugs this week",
    "My assigned bugs",
    "Bugs by priority",
]

_TERM_PATTERN = re.compile(r"[\w-]{2,}")


def snippet(text: str, length: int) -> str:
    """First ``length`` characters, with ``...`` appended when cut."""
    if len(text) <= length:
        return text
    return text[:length] + "..."


def search_quality(score: float) -> str:
    if score > 0.7:
        return "High"
    if score > 0.4:
        return "Medium"
    return "Low"


def _error_details() -> dict | None:
    if settings.is_production:
        return None
    return {"trace": traceback.format_exc()}


@dataclass
class SearchHit:
    bug: Bug
    relevance_score: float
    similarity: float | None = None


class PrimarySearchProtocol(Protocol):
    """Tier 1 search scoped to one owner."""

    async def search(self, query: str, owner_id: int, *, limit: int) -> Sequence[SearchHit]:
        ...


class KeywordSearchService:
    """
    Keyword search over title, description, component and tags.

    Relevance is the share of query terms a bug contains, as a percentage.
    """

    def __init__(self, repository: BugRepository) -> None:
        self.repository = repository

    @staticmethod
    def extract_terms(query: str) -> list[str]:
        seen: dict[str, None] = {}
        for term in _TERM_PATTERN.findall(query.lower()):
            seen.setdefault(term, None)
        return list(seen)

    async def search(self, query: str, owner_id: int, *, limit: int) -> list[SearchHit]:
        terms = self.extract_terms(query)
        if not terms:
            return []

        bugs = await self.repository.keyword_search(owner_id, terms, limit=limit * 5)

        hits: list[SearchHit] = []
        for bug in bugs:
            haystack = " ".join(
                [bug.title, bug.description, bug.component or "", " ".join(bug.tags or [])]
            ).lower()
            matched = sum(1 for term in terms if term in haystack)
            if matched:
                hits.append(SearchHit(bug=bug, relevance_score=matched / len(terms) * 100))

        hits.sort(key=lambda hit: hit.relevance_score, reverse=True)
        return hits[:limit]


class BugIntelligenceService:
    """
    Stateless per-request service; collaborators are constructor-injected.
    """

    def __init__(
        self,
        *,
        repository: BugRepository,
        embedding_provider: EmbeddingProviderProtocol,
        primary_search: PrimarySearchProtocol | None = None,
        analyzer: HeuristicAnalyzer | None = None,
        duplicate_ranking: RankingConfig | None = None,
        search_ranking: RankingConfig | None = None,
        confidence_weights: ConfidenceWeights | None = None,
        candidate_limit: int | None = None,
        embedding_timeout_seconds: float | None = None,
    ) -> None:
        self.repository = repository
        self.embedding_provider = embedding_provider
        self.primary_search = primary_search or KeywordSearchService(repository)
        self.analyzer = analyzer or HeuristicAnalyzer()
        self.duplicate_ranking = duplicate_ranking or duplicate_config()
        self.search_ranking = search_ranking or search_config()
        self.confidence_weights = confidence_weights or ConfidenceWeights.from_settings()
        self.candidate_limit = candidate_limit or settings.duplicate_candidate_limit
        self.embedding_timeout_seconds = embedding_timeout_seconds

    async def _try_embed(self, text: str, *, purpose: str) -> list[float] | None:
        """Embed ``text`` or return None when the provider fails or stalls."""
        try:
            return await embed_with_timeout(
                self.embedding_provider,
                text,
                self.embedding_timeout_seconds,
            )
        except Exception as exc:  # noqa: BLE001
            metrics_counter("embedding_failures", purpose=purpose)
            logger.warning(
                "embedding_unavailable",
                purpose=purpose,
                error_type=exc.__class__.__name__,
                error=str(exc),
            )
            return None

    # --- Duplicates ---

    async def rank_duplicates_for_vector(
        self,
        vector: list[float],
        owner_id: int,
    ) -> list[DuplicateCandidate]:
        bugs = await self.repository.list_with_embeddings(
            owner_id,
            exclude_status=BugStatus.RESOLVED,
            limit=self.candidate_limit,
        )
        candidates = [Candidate(id=bug.id, vector=bug.embedding, metadata={"bug": bug}) for bug in bugs]
        ranked = rank_duplicates(vector, candidates, self.duplicate_ranking)

        return [
            DuplicateCandidate(
                id=item.metadata["bug"].id,
                title=item.metadata["bug"].title,
                description_snippet=snippet(
                    item.metadata["bug"].description,
                    settings.duplicate_snippet_length,
                ),
                status=item.metadata["bug"].status,
                priority=item.metadata["bug"].priority,
                created_at=item.metadata["bug"].created_at,
                similarity=item.similarity,
            )
            for item in ranked
        ]

    async def find_duplicates(self, description: str, owner_id: int) -> list[DuplicateCandidate]:
        """
        Owner's unresolved bugs semantically close to ``description``.

        Returns [] when the embedding cannot be computed.
        """
        vector = await self._try_embed(description, purpose="duplicates")
        if vector is None:
            return []

        duplicates = await self.rank_duplicates_for_vector(vector, owner_id)
        logger.info("duplicates_found", owner_id=owner_id, count=len(duplicates))
        return duplicates

    # --- Analysis ---

    async def _find_related(self, signals: BugSignals, tags: list[str], owner_id: int) -> list[RelatedBug]:
        try:
            bugs = await self.repository.find_related(
                owner_id,
                component=signals.component,
                tags=tags,
                limit=settings.related_bugs_limit,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("related_bugs_lookup_failed", owner_id=owner_id, error=str(exc))
            return []

        return [
            RelatedBug(
                id=bug.id,
                title=bug.title,
                description_snippet=snippet(bug.description, RELATED_SNIPPET_LENGTH),
                status=bug.status,
                priority=bug.priority,
                component=bug.component,
                created_at=bug.created_at,
            )
            for bug in bugs
        ]

    @measure_latency("ai_analyze")
    async def analyze_bug(self, request: AnalyzeRequest, owner_id: int) -> BugAnalysis:
        """
        Heuristic analysis enriched with related bugs, duplicates and a
        fused confidence.

        Raises:
            AnalysisError: If the heuristic analysis or the duplicate lookup fails
        """
        started = time.perf_counter()
        signals = BugSignals(
            description=request.description,
            component=request.component,
            title=request.title,
            affected_users=request.affected_users,
        )

        try:
            heuristic = self.analyzer.analyze(signals)
        except Exception as exc:
            logger.error("bug_analysis_failed", owner_id=owner_id, error=str(exc))
            raise AnalysisError(ANALYSIS_FAILED_MESSAGE, details=_error_details()) from exc

        related = await self._find_related(signals, heuristic.tags, owner_id)

        vector = await self._try_embed(request.description, purpose="analyze")
        duplicates: list[DuplicateCandidate] = []
        if vector is not None:
            try:
                duplicates = await self.rank_duplicates_for_vector(vector, owner_id)
            except Exception as exc:
                logger.error("duplicate_lookup_failed", owner_id=owner_id, error=str(exc))
                raise AnalysisError(ANALYSIS_FAILED_MESSAGE, details=_error_details()) from exc

        base_confidence = self.analyzer.score_confidence(len(related))
        confidence = fuse_confidence(
            base_confidence,
            [duplicate.similarity for duplicate in duplicates],
            heuristic.tags,
            heuristic.severity,
            self.confidence_weights,
        )
        reasoning = self.analyzer.explain(
            severity=heuristic.severity,
            tags=heuristic.tags,
            duplicate_count=len(duplicates),
            related_bug_count=len(related),
        )

        logger.info(
            "bug_analyzed",
            owner_id=owner_id,
            severity=heuristic.severity,
            duplicates=len(duplicates),
            related=len(related),
            confidence=confidence,
        )

        return BugAnalysis(
            severity=heuristic.severity,
            priority=heuristic.priority,
            assignee=heuristic.assignee,
            tags=heuristic.tags,
            estimated_time=heuristic.estimated_time,
            suggested_solution=heuristic.suggested_solution,
            confidence=confidence,
            reasoning=reasoning,
            related_bugs=related,
            duplicates=duplicates,
            metadata=AnalysisMetadata(
                processing_time_ms=(time.perf_counter() - started) * 1000,
                embedding_available=vector is not None,
                duplicate_threshold=self.duplicate_ranking.threshold,
                candidate_limit=self.candidate_limit,
                analyzed_at=datetime.now(timezone.utc),
            ),
        )

    # --- Search ---

    def _to_result(self, hit: SearchHit, now: datetime) -> SearchResult:
        bug = hit.bug
        return SearchResult(
            id=bug.id,
            title=bug.title,
            description=bug.description,
            status=bug.status,
            priority=bug.priority,
            tags=list(bug.tags or []),
            component=bug.component,
            created_at=bug.created_at,
            similarity=hit.similarity,
            relevance_score=hit.relevance_score,
            is_high_priority=is_high_priority(bug.priority, self.search_ranking),
            is_recent=is_recent(bug.created_at, self.search_ranking, now),
        )

    async def _semantic_hits(self, vector: list[float], owner_id: int, now: datetime) -> list[SearchHit]:
        bugs = await self.repository.list_with_embeddings(owner_id)
        candidates = [
            Candidate(
                id=bug.id,
                vector=bug.embedding,
                metadata={"bug": bug, "priority": bug.priority, "created_at": bug.created_at},
            )
            for bug in bugs
        ]
        ranked = rank_search_results(vector, candidates, self.search_ranking, now)
        return [
            SearchHit(
                bug=item.metadata["bug"],
                relevance_score=item.similarity * 100,
                similarity=item.similarity,
            )
            for item in ranked
        ]

    @staticmethod
    def common_tags(results: Sequence[SearchResult], limit: int = 3) -> list[str]:
        counts: Counter[str] = Counter()
        for result in results:
            counts.update(result.tags)
        return [tag for tag, _ in counts.most_common(limit)]

    @classmethod
    def suggestions(cls, query: str, results: Sequence[SearchResult]) -> list[str]:
        lowered = query.lower()
        suggestions: list[str] = []

        if "critical" in lowered:
            suggestions.append("Show all critical bugs from this month")
        if "frontend" in lowered:
            suggestions.append("Frontend bugs with high priority")

        if results:
            components = list(dict.fromkeys(r.component for r in results if r.component))
            for component in components[:2]:
                suggestions.append(f"More bugs in {component} component")
            for tag in cls.common_tags(results)[:2]:
                suggestions.append(f"Bugs tagged with {tag}")

        return suggestions[:MAX_SUGGESTIONS]

    @measure_latency("ai_search")
    async def search(self, query: str, owner_id: int) -> SearchResponse:
        """
        Tier 1 keyword search; Tier 2 semantic search only when Tier 1 is empty.

        Raises:
            SearchError: If the primary tier or the semantic candidate lookup fails
        """
        started = time.perf_counter()
        now = datetime.now(timezone.utc)
        limit = self.search_ranking.limit

        try:
            hits = list(await self.primary_search.search(query, owner_id, limit=limit))
        except Exception as exc:
            logger.error("primary_search_failed", owner_id=owner_id, error=str(exc))
            raise SearchError(SEARCH_FAILED_MESSAGE, details=_error_details()) from exc

        tier = "keyword"
        degraded = False
        if not hits:
            tier = "semantic"
            vector = await self._try_embed(query, purpose="search")
            if vector is None:
                degraded = True
            else:
                try:
                    hits = await self._semantic_hits(vector, owner_id, now)
                except Exception as exc:
                    logger.error("semantic_search_failed", owner_id=owner_id, error=str(exc))
                    raise SearchError(SEARCH_FAILED_MESSAGE, details=_error_details()) from exc

        results = [self._to_result(hit, now) for hit in hits]

        if tier == "semantic":
            scores = [hit.similarity or 0.0 for hit in hits]
        else:
            scores = [hit.relevance_score / 100 for hit in hits]
        mean_score = sum(scores) / len(scores) if scores else 0.0

        if degraded:
            quality = "Failed"
            suggestions = list(FALLBACK_SUGGESTIONS)
            confidence = 0
        else:
            quality = search_quality(mean_score)
            suggestions = self.suggestions(query, results)
            confidence = round(mean_score * 100)

        logger.info(
            "search_completed",
            owner_id=owner_id,
            tier=tier,
            results=len(results),
            degraded=degraded,
        )

        return SearchResponse(
            data=results,
            metadata=SearchMetadata(
                query=query,
                tier=tier,
                total_results=len(results),
                search_quality=quality,
                has_high_priority_results=any(r.is_high_priority for r in results),
                processing_time_ms=(time.perf_counter() - started) * 1000,
            ),
            search_insights=SearchInsights(
                confidence=max(0, min(100, confidence)),
                suggestions=suggestions,
                common_tags=self.common_tags(results),
            ),
        )
