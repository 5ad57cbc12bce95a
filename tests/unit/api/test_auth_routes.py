import pytest

AUTH = "/api/v1/auth"

CREDENTIALS = {"email": "Dev@Example.com", "password": "correct-horse"}


async def _register(api_client) -> dict:
    response = await api_client.post(
        f"{AUTH}/register",
        json={**CREDENTIALS, "name": "Dev", "role": "Developer"},
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.mark.asyncio
async def test_register_normalizes_email(api_client) -> None:
    user = await _register(api_client)

    assert user["email"] == "dev@example.com"
    assert user["role"] == "Developer"
    assert "password_hash" not in user


@pytest.mark.asyncio
async def test_register_duplicate_email(api_client) -> None:
    await _register(api_client)

    response = await api_client.post(
        f"{AUTH}/register",
        json={"email": "dev@example.com", "password": "another-pass", "name": "Again"},
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "DuplicateRecordError"


@pytest.mark.asyncio
async def test_login_sets_cookies_and_me_reads_them(api_client) -> None:
    await _register(api_client)

    login = await api_client.post(f"{AUTH}/login", json=CREDENTIALS)

    assert login.status_code == 200
    assert login.json()["data"]["token_type"] == "bearer"
    cookies = login.headers.get_list("set-cookie")
    assert any(cookie.startswith("accessToken=") and "HttpOnly" in cookie for cookie in cookies)
    assert any(cookie.startswith("refreshToken=") for cookie in cookies)

    me = await api_client.get(f"{AUTH}/me")
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "dev@example.com"


@pytest.mark.asyncio
async def test_login_with_wrong_password(api_client) -> None:
    await _register(api_client)

    response = await api_client.post(
        f"{AUTH}/login",
        json={"email": CREDENTIALS["email"], "password": "wrong-password"},
    )

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AuthenticationError"


@pytest.mark.asyncio
async def test_refresh_from_body(api_client) -> None:
    await _register(api_client)
    tokens = (await api_client.post(f"{AUTH}/login", json=CREDENTIALS)).json()["data"]
    api_client.cookies.clear()

    response = await api_client.post(f"{AUTH}/refresh", json={"refresh_token": tokens["refresh_token"]})

    assert response.status_code == 200
    assert response.json()["data"]["access_token"]


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(api_client) -> None:
    await _register(api_client)
    tokens = (await api_client.post(f"{AUTH}/login", json=CREDENTIALS)).json()["data"]
    api_client.cookies.clear()

    response = await api_client.post(f"{AUTH}/refresh", json={"refresh_token": tokens["access_token"]})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_refresh_without_token(api_client) -> None:
    response = await api_client.post(f"{AUTH}/refresh")

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Refresh token missing"


@pytest.mark.asyncio
async def test_logout_clears_cookies(api_client) -> None:
    await _register(api_client)
    await api_client.post(f"{AUTH}/login", json=CREDENTIALS)

    response = await api_client.post(f"{AUTH}/logout")
    me = await api_client.get(f"{AUTH}/me")

    assert response.status_code == 200
    assert response.json()["data"] == {"message": "Logged out"}
    assert me.status_code == 401


@pytest.mark.asyncio
async def test_health_is_public_and_enveloped(api_client) -> None:
    response = await api_client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["status"] == "ok"
