"""Bug service"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.exceptions import AuthorizationError, RecordNotFoundError
from bugtracker.core.logging import get_logger
from bugtracker.embedding.protocol import EmbeddingProviderProtocol
from bugtracker.models.bug import Bug, BugComment, BugStatus
from bugtracker.models.user import User
from bugtracker.repositories.bug_repository import BugRepository
from bugtracker.schemas.bug import (
    BugCreate,
    BugResponse,
    BugUpdate,
    CommentCreate,
    CommentResponse,
)
from bugtracker.services.embedding_backfill import EmbeddingBackfillService
from bugtracker.services.heuristics import BugSignals, HeuristicAnalyzer

logger = get_logger(__name__)


class BugService:
    """Bug CRUD, comments and per-bug embedding upkeep"""

    def __init__(
        self,
        session: AsyncSession,
        *,
        embedding_provider: EmbeddingProviderProtocol,
        analyzer: HeuristicAnalyzer | None = None,
    ):
        self.session = session
        self.bug_repo = BugRepository(session)
        self.analyzer = analyzer or HeuristicAnalyzer()
        self.embeddings = EmbeddingBackfillService(
            repository=self.bug_repo,
            embedding_provider=embedding_provider,
        )

    async def _get_visible(self, bug_id: UUID, user: User) -> Bug:
        bug = await self.bug_repo.get_by_id(bug_id)
        if bug is None or user.id not in (bug.created_by, bug.assignee_id):
            raise RecordNotFoundError(f"Bug with id={bug_id} not found")
        return bug

    async def _get_owned(self, bug_id: UUID, user: User) -> Bug:
        bug = await self._get_visible(bug_id, user)
        if bug.created_by != user.id:
            raise AuthorizationError("Only the bug owner can modify this bug")
        return bug

    async def create_bug(self, payload: BugCreate, user: User) -> BugResponse:
        """
        File a bug. Heuristic tags are appended to the caller's tags; the
        embedding is computed best effort and never blocks creation.
        """
        suggested = self.analyzer.generate_tags(
            BugSignals(
                description=payload.description,
                component=payload.component,
                title=payload.title,
                affected_users=payload.affected_users,
            )
        )
        tags = list(dict.fromkeys([*payload.tags, *suggested]))

        bug = await self.bug_repo.create(
            Bug(
                title=payload.title,
                description=payload.description,
                priority=payload.priority,
                severity=payload.severity,
                environment=payload.environment,
                component=payload.component,
                tags=tags,
                affected_users=payload.affected_users,
                assignee_id=payload.assignee_id,
                created_by=user.id,
                status=BugStatus.OPEN,
            )
        )
        await self.embeddings.embed_bug_best_effort(bug)
        await self.bug_repo.update(bug)

        logger.info("bug_created", bug_id=str(bug.id), owner_id=user.id, has_embedding=bug.has_embedding)
        return BugResponse.model_validate(bug)

    async def get_bug(self, bug_id: UUID, user: User) -> BugResponse:
        return BugResponse.model_validate(await self._get_visible(bug_id, user))

    async def list_bugs(self, user: User, *, status: BugStatus | None = None) -> list[BugResponse]:
        bugs = await self.bug_repo.list_for_owner(user.id, status=status)
        return [BugResponse.model_validate(bug) for bug in bugs]

    async def update_bug(self, bug_id: UUID, payload: BugUpdate, user: User) -> BugResponse:
        """Apply set fields. Stored embeddings are left as they are."""
        bug = await self._get_owned(bug_id, user)

        changes = payload.model_dump(exclude_unset=True)
        for field_name, value in changes.items():
            setattr(bug, field_name, value)

        if "status" in changes:
            if bug.status == BugStatus.RESOLVED and bug.resolved_at is None:
                bug.resolved_at = datetime.now(timezone.utc)
            elif bug.status != BugStatus.RESOLVED:
                bug.resolved_at = None

        bug = await self.bug_repo.update(bug)
        logger.info("bug_updated", bug_id=str(bug.id), fields=sorted(changes))
        return BugResponse.model_validate(bug)

    async def delete_bug(self, bug_id: UUID, user: User) -> None:
        bug = await self._get_owned(bug_id, user)
        await self.bug_repo.delete(bug)
        logger.info("bug_deleted", bug_id=str(bug_id), owner_id=user.id)

    async def add_comment(self, bug_id: UUID, payload: CommentCreate, user: User) -> CommentResponse:
        bug = await self._get_visible(bug_id, user)
        comment = await self.bug_repo.add_comment(
            BugComment(bug_id=bug.id, author_id=user.id, text=payload.text)
        )
        return CommentResponse.model_validate(comment)

    async def list_comments(self, bug_id: UUID, user: User) -> list[CommentResponse]:
        bug = await self._get_visible(bug_id, user)
        comments = await self.bug_repo.list_comments(bug.id)
        return [CommentResponse.model_validate(comment) for comment in comments]

    async def regenerate_embedding(self, bug_id: UUID, user: User) -> BugResponse:
        """
        Raises:
            EmbeddingError: If the provider fails; explicit regeneration reports it
        """
        bug = await self._get_owned(bug_id, user)
        await self.embeddings.embed_bug(bug)
        bug = await self.bug_repo.update(bug)
        logger.info("bug_embedding_regenerated", bug_id=str(bug.id))
        return BugResponse.model_validate(bug)
