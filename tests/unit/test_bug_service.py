"""
Unit tests for BugService
"""

from uuid import uuid4

import pytest

from bugtracker.core.exceptions import AuthorizationError, EmbeddingError, RecordNotFoundError
from bugtracker.models.bug import BugPriority, BugStatus
from bugtracker.schemas.bug import BugCreate, BugUpdate, CommentCreate
from bugtracker.services.bug_service import BugService


@pytest.fixture
def bug_service(async_db_session, static_embedder) -> BugService:
    return BugService(async_db_session, embedding_provider=static_embedder(default=[0.6, 0.8]))


def _payload(**overrides) -> BugCreate:
    data = {
        "title": "Login button broken",
        "description": "Clicking login on the UI does nothing",
        "component": "Frontend",
        "tags": ["customer"],
    }
    data.update(overrides)
    return BugCreate(**data)


@pytest.mark.asyncio
async def test_create_bug_stores_embedding_and_tags(bug_service, owner) -> None:
    created = await bug_service.create_bug(_payload(), owner)

    assert created.status == BugStatus.OPEN
    assert created.created_by == owner.id
    assert created.has_embedding is True
    assert created.embedding_updated_at is not None
    assert created.tags[0] == "customer"
    assert "frontend" in created.tags
    assert "authentication" in created.tags


@pytest.mark.asyncio
async def test_create_bug_succeeds_without_embedding(async_db_session, owner, failing_embedder) -> None:
    service = BugService(async_db_session, embedding_provider=failing_embedder)

    created = await service.create_bug(_payload(), owner)

    assert created.has_embedding is False
    assert created.embedding_updated_at is None
    assert failing_embedder.calls == 1


@pytest.mark.asyncio
async def test_create_bug_does_not_duplicate_tags(bug_service, owner) -> None:
    created = await bug_service.create_bug(_payload(tags=["frontend"]), owner)

    assert created.tags.count("frontend") == 1


@pytest.mark.asyncio
async def test_list_bugs_is_scoped_to_owner(bug_service, owner, other_user) -> None:
    await bug_service.create_bug(_payload(title="Mine"), owner)
    await bug_service.create_bug(_payload(title="Theirs"), other_user)

    mine = await bug_service.list_bugs(owner)

    assert [bug.title for bug in mine] == ["Mine"]


@pytest.mark.asyncio
async def test_list_bugs_filters_by_status(bug_service, owner) -> None:
    open_bug = await bug_service.create_bug(_payload(title="Open one"), owner)
    closed = await bug_service.create_bug(_payload(title="Done"), owner)
    await bug_service.update_bug(closed.id, BugUpdate(status=BugStatus.RESOLVED), owner)

    resolved = await bug_service.list_bugs(owner, status=BugStatus.RESOLVED)

    assert [bug.id for bug in resolved] == [closed.id]
    assert open_bug.id not in [bug.id for bug in resolved]


@pytest.mark.asyncio
async def test_get_bug_hidden_from_other_users(bug_service, owner, other_user) -> None:
    created = await bug_service.create_bug(_payload(), owner)

    with pytest.raises(RecordNotFoundError):
        await bug_service.get_bug(created.id, other_user)


@pytest.mark.asyncio
async def test_get_bug_visible_to_assignee(bug_service, owner, other_user) -> None:
    created = await bug_service.create_bug(_payload(assignee_id=other_user.id), owner)

    fetched = await bug_service.get_bug(created.id, other_user)

    assert fetched.id == created.id


@pytest.mark.asyncio
async def test_get_missing_bug_raises(bug_service, owner) -> None:
    with pytest.raises(RecordNotFoundError):
        await bug_service.get_bug(uuid4(), owner)


@pytest.mark.asyncio
async def test_update_bug_sets_and_clears_resolved_at(bug_service, owner) -> None:
    created = await bug_service.create_bug(_payload(), owner)

    resolved = await bug_service.update_bug(
        created.id,
        BugUpdate(status=BugStatus.RESOLVED, priority=BugPriority.HIGH),
        owner,
    )
    assert resolved.resolved_at is not None
    assert resolved.priority == BugPriority.HIGH
    assert resolved.title == created.title

    reopened = await bug_service.update_bug(created.id, BugUpdate(status=BugStatus.OPEN), owner)
    assert reopened.resolved_at is None


@pytest.mark.asyncio
async def test_assignee_cannot_modify_bug(bug_service, owner, other_user) -> None:
    created = await bug_service.create_bug(_payload(assignee_id=other_user.id), owner)

    with pytest.raises(AuthorizationError):
        await bug_service.update_bug(created.id, BugUpdate(title="Hijacked"), other_user)

    with pytest.raises(AuthorizationError):
        await bug_service.delete_bug(created.id, other_user)


@pytest.mark.asyncio
async def test_delete_bug(bug_service, owner) -> None:
    created = await bug_service.create_bug(_payload(), owner)
    await bug_service.add_comment(created.id, CommentCreate(text="Seen on staging too"), owner)

    await bug_service.delete_bug(created.id, owner)

    with pytest.raises(RecordNotFoundError):
        await bug_service.get_bug(created.id, owner)


@pytest.mark.asyncio
async def test_comments_round_trip_for_assignee(bug_service, owner, other_user) -> None:
    created = await bug_service.create_bug(_payload(assignee_id=other_user.id), owner)

    await bug_service.add_comment(created.id, CommentCreate(text="First"), owner)
    await bug_service.add_comment(created.id, CommentCreate(text="Second"), other_user)
    comments = await bug_service.list_comments(created.id, owner)

    assert sorted(comment.text for comment in comments) == ["First", "Second"]
    assert {comment.author_id for comment in comments} == {owner.id, other_user.id}


@pytest.mark.asyncio
async def test_regenerate_embedding_reports_failure(async_db_session, owner, failing_embedder) -> None:
    service = BugService(async_db_session, embedding_provider=failing_embedder)
    created = await service.create_bug(_payload(), owner)

    with pytest.raises(EmbeddingError):
        await service.regenerate_embedding(created.id, owner)


@pytest.mark.asyncio
async def test_regenerate_embedding_fills_missing_vector(
    async_db_session, owner, failing_embedder, static_embedder
) -> None:
    created = await BugService(async_db_session, embedding_provider=failing_embedder).create_bug(
        _payload(), owner
    )
    service = BugService(async_db_session, embedding_provider=static_embedder())

    regenerated = await service.regenerate_embedding(created.id, owner)

    assert regenerated.has_embedding is True
