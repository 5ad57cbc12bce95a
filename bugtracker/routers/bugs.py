"""Bug routes: CRUD, comments, duplicates and embedding upkeep"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from bugtracker.core.dependencies import (
    get_backfill_service,
    get_bug_service,
    get_current_user,
    get_intelligence_service,
)
from bugtracker.core.exceptions import AuthorizationError, ValidationError
from bugtracker.models.bug import BugStatus
from bugtracker.models.user import User
from bugtracker.schemas.ai import DuplicateCandidate
from bugtracker.schemas.bug import (
    BugCreate,
    BugResponse,
    BugUpdate,
    CommentCreate,
    CommentResponse,
    DuplicateLookupRequest,
    EmbeddingBackfillRequest,
    EmbeddingBackfillSummary,
    EmbeddingStatus,
)
from bugtracker.services.bug_service import BugService
from bugtracker.services.embedding_backfill import EmbeddingBackfillService
from bugtracker.services.intelligence import BugIntelligenceService

router = APIRouter(prefix="/bugs", tags=["bugs"])

ALL_OWNERS = "all"


def resolve_backfill_owner(requested: int | str | None, current_user: User) -> int | None:
    """
    Owner scope for backfill/status. Only managers may reach other owners
    or every owner (``"all"``, returned as None).
    """

    if requested is None or requested == "":
        return current_user.id

    if requested == ALL_OWNERS:
        owner_id = None
    else:
        try:
            owner_id = int(requested)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid userId: {requested!r}")

    if owner_id != current_user.id and not current_user.is_manager:
        raise AuthorizationError("Only managers can process other users' bugs")
    return owner_id


@router.post(
    "",
    response_model=BugResponse,
    status_code=status.HTTP_201_CREATED,
    summary="File a bug",
)
async def create_bug(
    payload: BugCreate,
    current_user: User = Depends(get_current_user),
    service: BugService = Depends(get_bug_service),
) -> BugResponse:
    return await service.create_bug(payload, current_user)


@router.get(
    "",
    response_model=list[BugResponse],
    summary="List own bugs",
)
async def list_bugs(
    status_filter: Optional[BugStatus] = Query(None, alias="status", description="Status filter"),
    current_user: User = Depends(get_current_user),
    service: BugService = Depends(get_bug_service),
) -> list[BugResponse]:
    return await service.list_bugs(current_user, status=status_filter)


@router.post(
    "/duplicates",
    response_model=list[DuplicateCandidate],
    summary="Find likely duplicates of a description",
)
async def find_duplicates(
    payload: DuplicateLookupRequest,
    current_user: User = Depends(get_current_user),
    service: BugIntelligenceService = Depends(get_intelligence_service),
) -> list[DuplicateCandidate]:
    return await service.find_duplicates(payload.description, current_user.id)


@router.post(
    "/generate-embeddings",
    response_model=EmbeddingBackfillSummary,
    summary="Backfill missing embeddings",
)
async def generate_embeddings(
    payload: EmbeddingBackfillRequest | None = None,
    current_user: User = Depends(get_current_user),
    service: EmbeddingBackfillService = Depends(get_backfill_service),
) -> EmbeddingBackfillSummary:
    payload = payload or EmbeddingBackfillRequest()
    owner_id = resolve_backfill_owner(payload.user_id, current_user)
    return await service.backfill(
        owner_id,
        batch_size=payload.batch_size,
        force=payload.force_regenerate,
    )


@router.get(
    "/generate-embeddings",
    response_model=EmbeddingStatus,
    summary="Embedding coverage",
)
async def embedding_status(
    user_id: Optional[str] = Query(None, alias="userId"),
    current_user: User = Depends(get_current_user),
    service: EmbeddingBackfillService = Depends(get_backfill_service),
) -> EmbeddingStatus:
    owner_id = resolve_backfill_owner(user_id, current_user)
    return await service.status(owner_id)


@router.get(
    "/{bug_id}",
    response_model=BugResponse,
    summary="Bug detail",
)
async def get_bug(
    bug_id: UUID,
    current_user: User = Depends(get_current_user),
    service: BugService = Depends(get_bug_service),
) -> BugResponse:
    return await service.get_bug(bug_id, current_user)


@router.patch(
    "/{bug_id}",
    response_model=BugResponse,
    summary="Update a bug",
)
async def update_bug(
    bug_id: UUID,
    payload: BugUpdate,
    current_user: User = Depends(get_current_user),
    service: BugService = Depends(get_bug_service),
) -> BugResponse:
    return await service.update_bug(bug_id, payload, current_user)


@router.delete(
    "/{bug_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a bug",
)
async def delete_bug(
    bug_id: UUID,
    current_user: User = Depends(get_current_user),
    service: BugService = Depends(get_bug_service),
) -> None:
    await service.delete_bug(bug_id, current_user)


@router.post(
    "/{bug_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a bug",
)
async def add_comment(
    bug_id: UUID,
    payload: CommentCreate,
    current_user: User = Depends(get_current_user),
    service: BugService = Depends(get_bug_service),
) -> CommentResponse:
    return await service.add_comment(bug_id, payload, current_user)


@router.get(
    "/{bug_id}/comments",
    response_model=list[CommentResponse],
    summary="List comments",
)
async def list_comments(
    bug_id: UUID,
    current_user: User = Depends(get_current_user),
    service: BugService = Depends(get_bug_service),
) -> list[CommentResponse]:
    return await service.list_comments(bug_id, current_user)


@router.post(
    "/{bug_id}/embedding",
    response_model=BugResponse,
    summary="Recompute a bug's embedding",
)
async def regenerate_embedding(
    bug_id: UUID,
    current_user: User = Depends(get_current_user),
    service: BugService = Depends(get_bug_service),
) -> BugResponse:
    return await service.regenerate_embedding(bug_id, current_user)
