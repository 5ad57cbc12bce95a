"""
Bug repository
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.models.bug import Bug, BugComment, BugStatus


class BugRepository:
    """Owns every query against bugs and their comments."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # --- CRUD ---

    async def create(self, bug: Bug) -> Bug:
        self.session.add(bug)
        await self.session.flush()
        await self.session.refresh(bug)
        return bug

    async def get_by_id(self, bug_id: UUID) -> Bug | None:
        stmt = select(Bug).where(Bug.id == bug_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_owner(
        self,
        owner_id: int,
        *,
        status: BugStatus | None = None,
    ) -> Sequence[Bug]:
        """Owner's bugs, newest first, optionally filtered by status."""

        stmt = select(Bug).where(Bug.created_by == owner_id)
        if status is not None:
            stmt = stmt.where(Bug.status == status)
        stmt = stmt.order_by(Bug.created_at.desc())

        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def update(self, bug: Bug) -> Bug:
        await self.session.flush()
        await self.session.refresh(bug)
        return bug

    async def delete(self, bug: Bug) -> None:
        await self.session.delete(bug)
        await self.session.flush()

    # --- Embedding queries ---

    async def list_with_embeddings(
        self,
        owner_id: int,
        *,
        exclude_status: BugStatus | None = None,
        limit: int | None = None,
    ) -> Sequence[Bug]:
        """
        Owner's bugs that carry an embedding.

        ``embedding_updated_at`` is written together with the vector, so it
        doubles as the "non-empty embedding" marker across dialects.
        """

        stmt = select(Bug).where(
            Bug.created_by == owner_id,
            Bug.embedding_updated_at.is_not(None),
        )
        if exclude_status is not None:
            stmt = stmt.where(Bug.status != exclude_status)
        stmt = stmt.order_by(Bug.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return [bug for bug in result.scalars().all() if bug.embedding]

    async def list_for_backfill(
        self,
        owner_id: int | None,
        *,
        limit: int,
        include_embedded: bool = False,
    ) -> Sequence[Bug]:
        """Bugs waiting for an embedding (every bug when ``include_embedded``)."""

        stmt = select(Bug)
        if owner_id is not None:
            stmt = stmt.where(Bug.created_by == owner_id)
        if not include_embedded:
            stmt = stmt.where(Bug.embedding_updated_at.is_(None))
        stmt = stmt.order_by(Bug.created_at.asc()).limit(limit)

        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def update_embedding(
        self,
        bug: Bug,
        embedding: list[float],
        updated_at: datetime,
    ) -> Bug:
        """Replace the stored vector wholesale."""

        bug.embedding = list(embedding)
        bug.embedding_updated_at = updated_at
        await self.session.flush()
        return bug

    async def count(self, owner_id: int | None = None) -> int:
        stmt = select(func.count()).select_from(Bug)
        if owner_id is not None:
            stmt = stmt.where(Bug.created_by == owner_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def count_with_embeddings(self, owner_id: int | None = None) -> int:
        stmt = select(func.count()).select_from(Bug).where(Bug.embedding_updated_at.is_not(None))
        if owner_id is not None:
            stmt = stmt.where(Bug.created_by == owner_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def recent_embedding_updates(
        self,
        owner_id: int | None = None,
        *,
        limit: int = 5,
    ) -> Sequence[Bug]:
        stmt = select(Bug).where(Bug.embedding_updated_at.is_not(None))
        if owner_id is not None:
            stmt = stmt.where(Bug.created_by == owner_id)
        stmt = stmt.order_by(Bug.embedding_updated_at.desc()).limit(limit)

        result = await self.session.execute(stmt)
        return result.scalars().all()

    # --- Search / analysis queries ---

    async def keyword_search(
        self,
        owner_id: int,
        terms: list[str],
        *,
        limit: int,
    ) -> Sequence[Bug]:
        """
        Owner's bugs whose title, description, component or tags contain any term.

        Tags are matched against the serialized JSON array; callers re-score
        the loaded rows.
        """

        if not terms:
            return []

        clauses = []
        for term in terms:
            pattern = f"%{term}%"
            clauses.extend(
                [
                    Bug.title.ilike(pattern),
                    Bug.description.ilike(pattern),
                    Bug.component.ilike(pattern),
                    cast(Bug.tags, String).ilike(pattern),
                ]
            )

        stmt = (
            select(Bug)
            .where(Bug.created_by == owner_id, or_(*clauses))
            .order_by(Bug.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_related(
        self,
        owner_id: int,
        *,
        component: str | None,
        tags: list[str],
        limit: int,
        exclude_id: UUID | None = None,
    ) -> list[Bug]:
        """
        Owner's bugs sharing the component or at least one tag.

        Tags live in a JSON column, so the overlap test runs on loaded rows.
        """

        if not component and not tags:
            return []

        stmt = select(Bug).where(Bug.created_by == owner_id)
        if exclude_id is not None:
            stmt = stmt.where(Bug.id != exclude_id)
        stmt = stmt.order_by(Bug.created_at.desc())

        result = await self.session.execute(stmt)
        wanted = set(tags)
        related: list[Bug] = []
        for bug in result.scalars():
            same_component = bool(component) and bug.component == component
            if same_component or wanted.intersection(bug.tags or []):
                related.append(bug)
                if len(related) >= limit:
                    break
        return related

    async def list_created_between(
        self,
        owner_id: int,
        start: datetime,
        end: datetime,
    ) -> Sequence[Bug]:
        stmt = (
            select(Bug)
            .where(
                Bug.created_by == owner_id,
                Bug.created_at >= start,
                Bug.created_at <= end,
            )
            .order_by(Bug.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_open_for_owner(self, owner_id: int) -> Sequence[Bug]:
        stmt = select(Bug).where(
            Bug.created_by == owner_id,
            Bug.status != BugStatus.RESOLVED,
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    # --- Comments ---

    async def add_comment(self, comment: BugComment) -> BugComment:
        self.session.add(comment)
        await self.session.flush()
        await self.session.refresh(comment)
        return comment

    async def list_comments(self, bug_id: UUID) -> Sequence[BugComment]:
        stmt = (
            select(BugComment)
            .where(BugComment.bug_id == bug_id)
            .order_by(BugComment.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
