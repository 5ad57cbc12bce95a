"""
Bug Schemas
Pydantic models for bug CRUD requests/responses
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from bugtracker.models.bug import BugEnvironment, BugPriority, BugSeverity, BugStatus
from bugtracker.schemas.base import BaseResponseSchema, BaseSchema, CamelSchema


class BugBase(BaseSchema):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1)
    priority: BugPriority = Field(default=BugPriority.MEDIUM)
    severity: BugSeverity = Field(default=BugSeverity.MAJOR)
    environment: BugEnvironment = Field(default=BugEnvironment.DEVELOPMENT)
    component: str | None = Field(default=None, max_length=100)
    tags: list[str] = Field(default_factory=list)
    affected_users: int = Field(default=0, ge=0)
    assignee_id: int | None = None


class BugCreate(BugBase):
    """Schema for filing a new bug"""

    pass


class BugUpdate(BaseSchema):
    """Partial update; unset fields are left untouched"""

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1)
    status: BugStatus | None = None
    priority: BugPriority | None = None
    severity: BugSeverity | None = None
    environment: BugEnvironment | None = None
    component: str | None = Field(default=None, max_length=100)
    tags: list[str] | None = None
    affected_users: int | None = Field(default=None, ge=0)
    assignee_id: int | None = None


class BugResponse(BugBase, BaseResponseSchema):
    status: BugStatus
    created_by: int
    resolved_at: datetime | None = None
    has_embedding: bool = False
    embedding_updated_at: datetime | None = None


class BugListParams(BaseSchema):
    status: BugStatus | None = Field(default=None, description="Status filter")


class CommentCreate(BaseSchema):
    text: str = Field(min_length=1, max_length=5000)


class CommentResponse(BaseResponseSchema):
    bug_id: UUID
    author_id: int
    text: str


class DuplicateLookupRequest(BaseSchema):
    description: str = Field(min_length=1)


class EmbeddingBackfillRequest(CamelSchema):
    user_id: int | str | None = Field(
        default=None,
        description="Owner to backfill; 'all' for every owner (managers only)",
    )
    batch_size: int = Field(default=10, ge=1, le=100)
    force_regenerate: bool = False


class EmbeddingBackfillSummary(CamelSchema):
    message: str
    processed: int = 0
    failed: int = 0
    total: int = 0
    errors: list[str] = Field(default_factory=list)
    timestamp: datetime


class RecentEmbedding(CamelSchema):
    id: UUID
    title: str
    updated_at: datetime | None = None


class EmbeddingStatus(CamelSchema):
    total_bugs: int
    bugs_with_embeddings: int
    bugs_without_embeddings: int
    completion_percentage: int
    recent_embeddings: list[RecentEmbedding] = Field(default_factory=list)
    last_updated: datetime
