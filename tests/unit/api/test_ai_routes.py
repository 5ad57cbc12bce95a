import pytest

from bugtracker.core.dependencies import get_embedding_provider_dependency

API = "/api/v1"


async def _file_bug(api_client, headers, **overrides) -> dict:
    body = {
        "title": "Login timeout",
        "description": "Login request hangs with a timeout on the auth API",
        "component": "Backend",
        "tags": ["auth"],
    }
    body.update(overrides)
    response = await api_client.post(f"{API}/bugs", json=body, headers=headers)
    return response.json()["data"]


@pytest.mark.asyncio
async def test_analyze_returns_camel_case_analysis(api_client, owner, auth_headers) -> None:
    headers = auth_headers(owner)
    await _file_bug(api_client, headers)

    response = await api_client.post(
        f"{API}/ai-analyze",
        json={"description": "App crash when the API returns an error", "component": "Backend"},
        headers=headers,
    )

    assert response.status_code == 200
    analysis = response.json()["data"]
    assert analysis["severity"] == "high"
    assert analysis["priority"] == "Critical"
    assert analysis["assignee"] == "Backend Team"
    assert analysis["estimatedTime"] == "4-8 hours"
    assert len(analysis["duplicates"]) == 1
    assert len(analysis["relatedBugs"]) == 1
    assert analysis["metadata"]["embeddingAvailable"] is True
    assert 0 <= analysis["confidence"] <= 100


@pytest.mark.asyncio
async def test_analyze_rejects_empty_description(api_client, owner, auth_headers) -> None:
    response = await api_client.post(
        f"{API}/ai-analyze",
        json={"description": ""},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path, body",
    [
        ("ai-analyze", {"description": "Login button unresponsive"}),
        ("ai-search", {"query": "login"}),
    ],
)
async def test_pipeline_routes_require_session(api_client, path, body) -> None:
    response = await api_client.post(f"{API}/{path}", json=body)

    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path, body",
    [
        ("ai-analyze", {"description": ["a"]}),
        ("ai-analyze", {"description": "ok", "affectedUsers": "many"}),
        ("ai-search", {"query": 123}),
        ("ai-search", {}),
    ],
)
async def test_pipeline_routes_reject_wrong_typed_bodies(
    api_client, owner, auth_headers, embedding_provider, path, body
) -> None:
    response = await api_client.post(f"{API}/{path}", json=body, headers=auth_headers(owner))

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert embedding_provider.calls == []


@pytest.mark.asyncio
async def test_search_keyword_tier_keeps_own_envelope(api_client, owner, auth_headers) -> None:
    headers = auth_headers(owner)
    await _file_bug(api_client, headers)

    response = await api_client.post(f"{API}/ai-search", json={"query": "login timeout"}, headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert "meta" not in body
    assert [item["title"] for item in body["data"]] == ["Login timeout"]
    assert body["metadata"]["tier"] == "keyword"
    assert body["metadata"]["searchQuality"] == "High"
    assert body["searchInsights"]["confidence"] == 100


@pytest.mark.asyncio
async def test_search_semantic_tier(api_client, owner, auth_headers) -> None:
    headers = auth_headers(owner)
    await _file_bug(api_client, headers)

    response = await api_client.post(
        f"{API}/ai-search",
        json={"query": "frozen screen"},
        headers=headers,
    )

    body = response.json()
    assert body["metadata"]["tier"] == "semantic"
    assert body["data"][0]["similarity"] == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_search_degrades_when_embedder_fails(
    api_app, api_client, owner, auth_headers, failing_embedder
) -> None:
    api_app.dependency_overrides[get_embedding_provider_dependency] = lambda: failing_embedder

    response = await api_client.post(
        f"{API}/ai-search",
        json={"query": "nothing matches this"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == []
    assert body["metadata"]["searchQuality"] == "Failed"
    assert body["searchInsights"]["suggestions"][0] == "Show recent bugs"


@pytest.mark.asyncio
async def test_team_insights(api_client, owner, auth_headers) -> None:
    headers = auth_headers(owner)
    await _file_bug(api_client, headers)

    response = await api_client.get(f"{API}/ai-team-insights", params={"timeRange": "7d"}, headers=headers)

    assert response.status_code == 200
    insights = response.json()["data"]
    assert insights["dataPoints"] == 1
    assert insights["skillGaps"][0].startswith("Enhance skills in")
    assert insights["productivityTrends"][1] == "Total bugs assigned: 1"


@pytest.mark.asyncio
async def test_team_insights_rejects_bad_range(api_client, owner, auth_headers) -> None:
    response = await api_client.get(
        f"{API}/ai-team-insights",
        params={"timeRange": "soon"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("time_range", ["99999999d", "30000m"])
async def test_team_insights_rejects_out_of_bounds_range(api_client, owner, auth_headers, time_range) -> None:
    response = await api_client.get(
        f"{API}/ai-team-insights",
        params={"timeRange": time_range},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_report_rejects_out_of_bounds_range(api_client, owner, auth_headers) -> None:
    response = await api_client.post(
        f"{API}/ai-report",
        json={"timeRange": "99999999d"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_report(api_client, owner, auth_headers) -> None:
    headers = auth_headers(owner)
    await _file_bug(api_client, headers)

    response = await api_client.post(f"{API}/ai-report", json={"timeRange": "30d"}, headers=headers)

    assert response.status_code == 200
    report = response.json()["data"]
    assert report["fallback"] is False
    assert report["timeRange"] == "30d"
    assert "- Total Bugs: 1" in report["report"]
