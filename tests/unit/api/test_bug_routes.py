import pytest

from bugtracker.core.dependencies import get_embedding_provider_dependency
from bugtracker.core.exceptions import AuthorizationError, ValidationError
from bugtracker.models.user import User, UserRole
from bugtracker.routers.bugs import resolve_backfill_owner

BUGS_URL = "/api/v1/bugs"


def _bug_body(**overrides) -> dict:
    body = {
        "title": "Checkout crash",
        "description": "Payment page crashes after submitting the card",
        "component": "Checkout",
        "priority": "High",
    }
    body.update(overrides)
    return body


def test_resolve_backfill_owner_rules() -> None:
    developer = User(id=1, email="d@example.com", name="Dev", role=UserRole.DEVELOPER, password_hash="x")
    manager = User(id=2, email="m@example.com", name="Mgr", role=UserRole.TEAM_MANAGER, password_hash="x")

    assert resolve_backfill_owner(None, developer) == 1
    assert resolve_backfill_owner("1", developer) == 1
    assert resolve_backfill_owner("all", manager) is None
    assert resolve_backfill_owner(1, manager) == 1

    with pytest.raises(AuthorizationError):
        resolve_backfill_owner("all", developer)
    with pytest.raises(AuthorizationError):
        resolve_backfill_owner(2, developer)
    with pytest.raises(ValidationError):
        resolve_backfill_owner("someone", manager)


@pytest.mark.asyncio
async def test_requests_without_credentials_are_rejected(api_client) -> None:
    response = await api_client.get(BUGS_URL)

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "HTTP.401"


@pytest.mark.asyncio
async def test_create_and_fetch_bug(api_client, owner, auth_headers) -> None:
    created = await api_client.post(BUGS_URL, json=_bug_body(), headers=auth_headers(owner))

    assert created.status_code == 201
    body = created.json()
    assert body["success"] is True
    bug = body["data"]
    assert bug["title"] == "Checkout crash"
    assert bug["status"] == "Open"
    assert bug["has_embedding"] is True
    assert "embedding" not in bug

    fetched = await api_client.get(f"{BUGS_URL}/{bug['id']}", headers=auth_headers(owner))
    assert fetched.status_code == 200
    assert fetched.json()["data"]["id"] == bug["id"]


@pytest.mark.asyncio
async def test_create_bug_validation_error(api_client, owner, auth_headers) -> None:
    response = await api_client.post(BUGS_URL, json=_bug_body(title=""), headers=auth_headers(owner))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ValidationError"


@pytest.mark.asyncio
async def test_list_bugs_filters_by_status(api_client, owner, auth_headers) -> None:
    headers = auth_headers(owner)
    first = (await api_client.post(BUGS_URL, json=_bug_body(title="First"), headers=headers)).json()["data"]
    await api_client.post(BUGS_URL, json=_bug_body(title="Second"), headers=headers)
    await api_client.patch(f"{BUGS_URL}/{first['id']}", json={"status": "Resolved"}, headers=headers)

    everything = await api_client.get(BUGS_URL, headers=headers)
    resolved = await api_client.get(BUGS_URL, params={"status": "Resolved"}, headers=headers)

    assert len(everything.json()["data"]) == 2
    assert [bug["title"] for bug in resolved.json()["data"]] == ["First"]
    assert resolved.json()["data"][0]["resolved_at"] is not None


@pytest.mark.asyncio
async def test_other_users_cannot_see_or_change_bug(api_client, owner, other_user, auth_headers) -> None:
    bug = (await api_client.post(BUGS_URL, json=_bug_body(), headers=auth_headers(owner))).json()["data"]

    fetched = await api_client.get(f"{BUGS_URL}/{bug['id']}", headers=auth_headers(other_user))
    patched = await api_client.patch(
        f"{BUGS_URL}/{bug['id']}",
        json={"title": "Mine now"},
        headers=auth_headers(other_user),
    )

    assert fetched.status_code == 404
    assert patched.status_code == 404


@pytest.mark.asyncio
async def test_assignee_sees_but_cannot_delete(api_client, owner, other_user, auth_headers) -> None:
    bug = (
        await api_client.post(
            BUGS_URL,
            json=_bug_body(assignee_id=other_user.id),
            headers=auth_headers(owner),
        )
    ).json()["data"]

    fetched = await api_client.get(f"{BUGS_URL}/{bug['id']}", headers=auth_headers(other_user))
    deleted = await api_client.delete(f"{BUGS_URL}/{bug['id']}", headers=auth_headers(other_user))

    assert fetched.status_code == 200
    assert deleted.status_code == 403
    assert deleted.json()["error"]["code"] == "AuthorizationError"


@pytest.mark.asyncio
async def test_delete_bug(api_client, owner, auth_headers) -> None:
    bug = (await api_client.post(BUGS_URL, json=_bug_body(), headers=auth_headers(owner))).json()["data"]

    deleted = await api_client.delete(f"{BUGS_URL}/{bug['id']}", headers=auth_headers(owner))
    missing = await api_client.get(f"{BUGS_URL}/{bug['id']}", headers=auth_headers(owner))

    assert deleted.status_code == 204
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_comments(api_client, owner, auth_headers) -> None:
    headers = auth_headers(owner)
    bug = (await api_client.post(BUGS_URL, json=_bug_body(), headers=headers)).json()["data"]

    created = await api_client.post(
        f"{BUGS_URL}/{bug['id']}/comments",
        json={"text": "Reproduced on Safari"},
        headers=headers,
    )
    listed = await api_client.get(f"{BUGS_URL}/{bug['id']}/comments", headers=headers)

    assert created.status_code == 201
    assert [comment["text"] for comment in listed.json()["data"]] == ["Reproduced on Safari"]


@pytest.mark.asyncio
async def test_duplicates_endpoint(api_client, owner, other_user, auth_headers) -> None:
    await api_client.post(BUGS_URL, json=_bug_body(title="Mine"), headers=auth_headers(owner))
    await api_client.post(BUGS_URL, json=_bug_body(title="Theirs"), headers=auth_headers(other_user))

    response = await api_client.post(
        f"{BUGS_URL}/duplicates",
        json={"description": "Payment page crashes"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 200
    duplicates = response.json()["data"]
    assert [item["title"] for item in duplicates] == ["Mine"]
    assert duplicates[0]["similarity"] == pytest.approx(1.0)
    assert "descriptionSnippet" in duplicates[0]


@pytest.mark.asyncio
async def test_duplicates_are_empty_when_embedder_fails(
    api_app, api_client, owner, auth_headers, failing_embedder
) -> None:
    api_app.dependency_overrides[get_embedding_provider_dependency] = lambda: failing_embedder

    response = await api_client.post(
        f"{BUGS_URL}/duplicates",
        json={"description": "Payment page crashes"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 200
    assert response.json()["data"] == []


@pytest.mark.asyncio
async def test_regenerate_embedding_reports_provider_failure(
    api_app, api_client, owner, auth_headers, failing_embedder
) -> None:
    bug = (await api_client.post(BUGS_URL, json=_bug_body(), headers=auth_headers(owner))).json()["data"]
    api_app.dependency_overrides[get_embedding_provider_dependency] = lambda: failing_embedder

    response = await api_client.post(f"{BUGS_URL}/{bug['id']}/embedding", headers=auth_headers(owner))

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "EmbeddingError"


@pytest.mark.asyncio
async def test_backfill_and_status(
    api_app, api_client, owner, auth_headers, failing_embedder, embedding_provider
) -> None:
    headers = auth_headers(owner)
    api_app.dependency_overrides[get_embedding_provider_dependency] = lambda: failing_embedder
    await api_client.post(BUGS_URL, json=_bug_body(title="One"), headers=headers)
    await api_client.post(BUGS_URL, json=_bug_body(title="Two"), headers=headers)
    api_app.dependency_overrides[get_embedding_provider_dependency] = lambda: embedding_provider

    before = await api_client.get(f"{BUGS_URL}/generate-embeddings", headers=headers)
    assert before.json()["data"]["bugsWithoutEmbeddings"] == 2

    summary = await api_client.post(
        f"{BUGS_URL}/generate-embeddings",
        json={"batchSize": 1},
        headers=headers,
    )
    assert summary.status_code == 200
    assert summary.json()["data"]["processed"] == 2

    after = await api_client.get(f"{BUGS_URL}/generate-embeddings", headers=headers)
    assert after.json()["data"]["completionPercentage"] == 100


@pytest.mark.asyncio
async def test_backfill_for_all_owners_requires_manager(
    api_client, owner, manager, auth_headers
) -> None:
    denied = await api_client.post(
        f"{BUGS_URL}/generate-embeddings",
        json={"userId": "all"},
        headers=auth_headers(owner),
    )
    allowed = await api_client.post(
        f"{BUGS_URL}/generate-embeddings",
        json={"userId": "all"},
        headers=auth_headers(manager),
    )
    status_denied = await api_client.get(
        f"{BUGS_URL}/generate-embeddings",
        params={"userId": str(manager.id)},
        headers=auth_headers(owner),
    )

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()["data"]["message"] == "No bugs found that need embedding generation"
    assert status_denied.status_code == 403
