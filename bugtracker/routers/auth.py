"""Authentication routes"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.config import settings
from bugtracker.core.db import get_session
from bugtracker.core.dependencies import get_current_user
from bugtracker.models.user import User
from bugtracker.schemas.user import RefreshRequest, TokenPair, UserCreate, UserLogin, UserResponse
from bugtracker.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session=session)


def set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    """Store both tokens as HTTP-only cookies."""

    cookie_options = {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "lax",
        "path": "/",
    }
    response.set_cookie(
        settings.access_cookie_name,
        tokens.access_token,
        max_age=settings.access_token_expire_minutes * 60,
        **cookie_options,
    )
    response.set_cookie(
        settings.refresh_cookie_name,
        tokens.refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 3600,
        **cookie_options,
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
)
async def register(
    payload: UserCreate,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return await service.register(payload)


@router.post(
    "/login",
    response_model=TokenPair,
    summary="Log in and receive token cookies",
)
async def login(
    payload: UserLogin,
    response: Response,
    service: UserService = Depends(get_user_service),
) -> TokenPair:
    tokens = await service.login(payload)
    set_auth_cookies(response, tokens)
    return tokens


@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Rotate the token pair",
)
async def refresh(
    request: Request,
    response: Response,
    payload: RefreshRequest | None = None,
    service: UserService = Depends(get_user_service),
) -> TokenPair:
    refresh_token = (payload.refresh_token if payload else None) or request.cookies.get(
        settings.refresh_cookie_name
    )
    if not refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token missing",
        )

    tokens = await service.refresh(refresh_token)
    set_auth_cookies(response, tokens)
    return tokens


@router.post(
    "/logout",
    summary="Clear token cookies",
)
async def logout(response: Response) -> dict:
    response.delete_cookie(settings.access_cookie_name, path="/")
    response.delete_cookie(settings.refresh_cookie_name, path="/")
    return {"message": "Logged out"}


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
)
async def read_me(
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    return UserResponse.model_validate(current_user)
