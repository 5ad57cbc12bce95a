"""
Embedding backfill

Computes missing (or, when forced, all) bug embeddings in sequential
chunks. Records inside a chunk are embedded concurrently; a failed record
is reported and left for the next pass.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

from bugtracker.core.config import settings
from bugtracker.core.logging import get_logger, metrics_counter
from bugtracker.embedding.guard import embed_with_timeout
from bugtracker.embedding.protocol import EmbeddingProviderProtocol
from bugtracker.models.bug import Bug
from bugtracker.repositories.bug_repository import BugRepository
from bugtracker.schemas.bug import EmbeddingBackfillSummary, EmbeddingStatus, RecentEmbedding

logger = get_logger(__name__)


@dataclass
class _BackfillTally:
    processed: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class EmbeddingBackfillService:
    def __init__(
        self,
        *,
        repository: BugRepository,
        embedding_provider: EmbeddingProviderProtocol,
        batch_delay_seconds: float | None = None,
        fetch_multiplier: int | None = None,
        max_reported_errors: int | None = None,
        embedding_timeout_seconds: float | None = None,
    ) -> None:
        self.repository = repository
        self.embedding_provider = embedding_provider
        self.batch_delay_seconds = (
            settings.backfill_batch_delay_seconds
            if batch_delay_seconds is None
            else batch_delay_seconds
        )
        self.fetch_multiplier = fetch_multiplier or settings.backfill_fetch_multiplier
        self.max_reported_errors = max_reported_errors or settings.backfill_max_reported_errors
        self.embedding_timeout_seconds = embedding_timeout_seconds

    async def embed_bug(self, bug: Bug) -> Bug:
        """
        Recompute one bug's embedding from its title and description.

        Raises:
            EmbeddingError: If the provider fails or times out
        """
        vector = await embed_with_timeout(
            self.embedding_provider,
            bug.embedding_text,
            self.embedding_timeout_seconds,
        )
        return await self.repository.update_embedding(bug, vector, datetime.now(timezone.utc))

    async def embed_bug_best_effort(self, bug: Bug) -> bool:
        """Like :meth:`embed_bug` but logs and returns False on failure."""
        try:
            await self.embed_bug(bug)
        except Exception as exc:  # noqa: BLE001
            metrics_counter("embedding_failures", purpose="bug_create")
            logger.warning("bug_embedding_skipped", bug_id=str(bug.id), error=str(exc))
            return False
        return True

    async def _embed_for_chunk(self, bug: Bug) -> list[float]:
        return await embed_with_timeout(
            self.embedding_provider,
            bug.embedding_text,
            self.embedding_timeout_seconds,
        )

    async def _process_chunk(self, chunk: Sequence[Bug], tally: _BackfillTally) -> None:
        # The session is not safe for concurrent use: fan out only the
        # provider calls, then write results one by one.
        outcomes = await asyncio.gather(
            *(self._embed_for_chunk(bug) for bug in chunk),
            return_exceptions=True,
        )
        for bug, outcome in zip(chunk, outcomes):
            if isinstance(outcome, BaseException):
                tally.failed += 1
                tally.errors.append(f"Bug {bug.id}: {outcome}")
                logger.warning("backfill_record_failed", bug_id=str(bug.id), error=str(outcome))
                continue
            await self.repository.update_embedding(bug, outcome, datetime.now(timezone.utc))
            tally.processed += 1

    async def backfill(
        self,
        owner_id: int | None,
        *,
        batch_size: int | None = None,
        force: bool = False,
    ) -> EmbeddingBackfillSummary:
        """
        Embed up to ``batch_size * fetch_multiplier`` bugs for ``owner_id``
        (every owner when None).
        """
        batch_size = batch_size or settings.backfill_batch_size
        bugs = list(
            await self.repository.list_for_backfill(
                owner_id,
                limit=batch_size * self.fetch_multiplier,
                include_embedded=force,
            )
        )

        if not bugs:
            return EmbeddingBackfillSummary(
                message="No bugs found that need embedding generation",
                timestamp=datetime.now(timezone.utc),
            )

        logger.info(
            "backfill_started",
            owner_id=owner_id,
            total=len(bugs),
            batch_size=batch_size,
            force=force,
        )

        tally = _BackfillTally()
        chunks = [bugs[i : i + batch_size] for i in range(0, len(bugs), batch_size)]
        for index, chunk in enumerate(chunks, start=1):
            await self._process_chunk(chunk, tally)
            logger.info("backfill_batch_done", batch=index, batches=len(chunks))
            if index < len(chunks) and self.batch_delay_seconds > 0:
                await asyncio.sleep(self.batch_delay_seconds)

        summary = EmbeddingBackfillSummary(
            message="Embedding generation completed",
            processed=tally.processed,
            failed=tally.failed,
            total=len(bugs),
            errors=tally.errors[: self.max_reported_errors],
            timestamp=datetime.now(timezone.utc),
        )
        logger.info(
            "backfill_completed",
            owner_id=owner_id,
            processed=summary.processed,
            failed=summary.failed,
            total=summary.total,
        )
        return summary

    async def status(self, owner_id: int | None) -> EmbeddingStatus:
        total = await self.repository.count(owner_id)
        with_embeddings = await self.repository.count_with_embeddings(owner_id)
        recent = await self.repository.recent_embedding_updates(owner_id, limit=5)

        return EmbeddingStatus(
            total_bugs=total,
            bugs_with_embeddings=with_embeddings,
            bugs_without_embeddings=total - with_embeddings,
            completion_percentage=round(with_embeddings / total * 100) if total else 0,
            recent_embeddings=[
                RecentEmbedding(id=bug.id, title=bug.title, updated_at=bug.embedding_updated_at)
                for bug in recent
            ],
            last_updated=datetime.now(timezone.utc),
        )
