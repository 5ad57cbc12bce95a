"""
Common FastAPI dependencies
"""

from typing import Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.config import settings
from bugtracker.core.db import get_session
from bugtracker.core.exceptions import AuthenticationError, JWTDecodeError
from bugtracker.core.jwt import decode_access_token
from bugtracker.embedding.factory import get_embedding_provider
from bugtracker.embedding.protocol import EmbeddingProviderProtocol
from bugtracker.models.user import User, UserRole
from bugtracker.repositories.bug_repository import BugRepository
from bugtracker.repositories.user_repository import UserRepository
from bugtracker.services.bug_service import BugService
from bugtracker.services.embedding_backfill import EmbeddingBackfillService
from bugtracker.services.insights import InsightsService
from bugtracker.services.intelligence import BugIntelligenceService


oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_v1_prefix}/auth/login",
    auto_error=False,
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    bearer_token: str | None = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    """
    Resolve the caller from the access-token cookie, falling back to a
    Bearer header.
    """

    token = request.cookies.get(settings.access_cookie_name) or bearer_token
    if not token:
        raise _unauthorized("Not authenticated")

    try:
        payload = decode_access_token(token)
    except (JWTDecodeError, AuthenticationError):
        raise _unauthorized("Could not validate credentials")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token subject")

    user = await UserRepository(session).get_by_id(user_id)
    if user is None:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )

    return user


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory rejecting callers outside ``roles`` with 403."""

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return checker


def get_embedding_provider_dependency() -> EmbeddingProviderProtocol:
    return get_embedding_provider()


def get_bug_service(
    session: AsyncSession = Depends(get_session),
    provider: EmbeddingProviderProtocol = Depends(get_embedding_provider_dependency),
) -> BugService:
    return BugService(session, embedding_provider=provider)


def get_intelligence_service(
    session: AsyncSession = Depends(get_session),
    provider: EmbeddingProviderProtocol = Depends(get_embedding_provider_dependency),
) -> BugIntelligenceService:
    return BugIntelligenceService(
        repository=BugRepository(session),
        embedding_provider=provider,
    )


def get_backfill_service(
    session: AsyncSession = Depends(get_session),
    provider: EmbeddingProviderProtocol = Depends(get_embedding_provider_dependency),
) -> EmbeddingBackfillService:
    return EmbeddingBackfillService(
        repository=BugRepository(session),
        embedding_provider=provider,
    )


def get_insights_service(session: AsyncSession = Depends(get_session)) -> InsightsService:
    return InsightsService(
        bug_repository=BugRepository(session),
        user_repository=UserRepository(session),
    )
