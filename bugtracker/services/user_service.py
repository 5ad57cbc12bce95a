"""
User service

Registration, login and token refresh. Independent of FastAPI.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.exceptions import AuthenticationError, DuplicateRecordError
from bugtracker.core.jwt import create_access_token, create_refresh_token, decode_refresh_token
from bugtracker.core.logging import get_logger
from bugtracker.core.security import hash_password, verify_and_rehash
from bugtracker.models.user import User
from bugtracker.repositories.user_repository import UserRepository
from bugtracker.schemas.user import TokenPair, UserCreate, UserLogin, UserResponse

logger = get_logger(__name__)


def issue_tokens(user: User) -> TokenPair:
    claims = {"sub": str(user.id), "role": user.role.value}
    return TokenPair(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token({"sub": str(user.id)}),
    )


class UserService:
    def __init__(self, session: AsyncSession, repository: UserRepository | None = None):
        self.session = session
        self.repository = repository or UserRepository(session)

    async def register(self, payload: UserCreate) -> UserResponse:
        existing = await self.repository.get_by_email(payload.email)
        if existing is not None:
            raise DuplicateRecordError("Email already registered")

        user = await self.repository.create_user(
            email=payload.email,
            name=payload.name,
            role=payload.role,
            password_hash=hash_password(payload.password),
        )
        logger.info("user_registered", user_id=user.id, role=user.role.value)
        return UserResponse.model_validate(user)

    async def login(self, payload: UserLogin) -> TokenPair:
        user = await self.repository.get_by_email(payload.email)
        if user is None:
            raise AuthenticationError("Invalid credentials")
        valid, new_hash = verify_and_rehash(payload.password, user.password_hash)
        if not valid:
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            raise AuthenticationError("Inactive user")
        if new_hash is not None:
            await self.repository.update_password_hash(user, new_hash)
            logger.info("password_rehashed", user_id=user.id)

        logger.info("user_logged_in", user_id=user.id)
        return issue_tokens(user)

    async def refresh(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair.

        Raises:
            JWTDecodeError: If the refresh token is invalid or expired
            AuthenticationError: If the user is gone or inactive
        """
        payload = decode_refresh_token(refresh_token)
        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError) as exc:
            raise AuthenticationError("Invalid token payload") from exc

        user = await self.repository.get_by_id(user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive")
        return issue_tokens(user)
