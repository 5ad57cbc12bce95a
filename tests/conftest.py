"""
Shared fixtures: in-memory database, users and deterministic embedders
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bugtracker.api.main import create_app
from bugtracker.core.db import get_session
from bugtracker.core.dependencies import get_embedding_provider_dependency
from bugtracker.core.exceptions import EmbeddingError
from bugtracker.core.jwt import create_access_token
from bugtracker.models import Base, Bug, BugPriority, BugStatus, User, UserRole


class StaticEmbeddingProvider:
    """Returns the vector registered for a text, or a default vector."""

    model_name = "static-test"

    def __init__(self, vectors: dict[str, list[float]] | None = None, default: list[float] | None = None):
        self.vectors = dict(vectors or {})
        self.default = default or [1.0, 0.0, 0.0]
        self.calls: list[str] = []

    async def warmup(self) -> None:
        return None

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return list(self.vectors.get(text, self.default))


class FailingEmbeddingProvider:
    model_name = "failing-test"

    def __init__(self) -> None:
        self.calls = 0

    async def warmup(self) -> None:
        return None

    async def embed(self, text: str) -> list[float]:
        self.calls += 1
        raise EmbeddingError("model unavailable")


def build_bug(
    *,
    owner_id: int = 1,
    title: str = "Login button broken",
    description: str = "Clicking login does nothing",
    status: BugStatus = BugStatus.OPEN,
    priority: BugPriority = BugPriority.MEDIUM,
    embedding: list[float] | None = None,
    created_at: datetime | None = None,
    tags: list[str] | None = None,
    component: str | None = None,
) -> Bug:
    """Detached bug for service tests that never touch a database."""
    embedded = bool(embedding)
    return Bug(
        id=uuid4(),
        title=title,
        description=description,
        status=status,
        priority=priority,
        tags=tags or [],
        component=component,
        affected_users=0,
        created_by=owner_id,
        embedding=embedding or [],
        embedding_updated_at=datetime.now(timezone.utc) if embedded else None,
        created_at=created_at or datetime.now(timezone.utc),
    )


@pytest.fixture
async def async_db_session():
    """
    Create in-memory SQLite database for testing
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session

    await engine.dispose()


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    name: str = "Tester",
    role: UserRole = UserRole.DEVELOPER,
) -> User:
    user = User(
        email=email,
        name=name,
        role=role,
        password_hash="pbkdf2_sha256$placeholder",
        is_active=True,
    )
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user


@pytest.fixture
async def owner(async_db_session) -> User:
    return await create_user(async_db_session, email="owner@example.com", name="Owner")


@pytest.fixture
async def other_user(async_db_session) -> User:
    return await create_user(async_db_session, email="other@example.com", name="Other")


@pytest.fixture
async def manager(async_db_session) -> User:
    return await create_user(
        async_db_session,
        email="manager@example.com",
        name="Manager",
        role=UserRole.TEAM_MANAGER,
    )


@pytest.fixture
def make_bug():
    return build_bug


@pytest.fixture
def static_embedder():
    """Factory: ``static_embedder({"text": [..]}, default=[..])``."""
    return StaticEmbeddingProvider


@pytest.fixture
def failing_embedder() -> FailingEmbeddingProvider:
    return FailingEmbeddingProvider()


@pytest.fixture
def embedding_provider() -> StaticEmbeddingProvider:
    return StaticEmbeddingProvider(default=[1.0, 0.0, 0.0])


@pytest.fixture
def api_app(async_db_session, embedding_provider):
    """App wired to the test session and embedder; lifespan is not run."""
    app = create_app()

    async def override_session():
        yield async_db_session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_embedding_provider_dependency] = lambda: embedding_provider
    return app


@pytest.fixture
async def api_client(api_app):
    transport = ASGITransport(app=api_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        token = create_access_token({"sub": str(user.id), "role": user.role.value})
        return {"Authorization": f"Bearer {token}"}

    return _headers
