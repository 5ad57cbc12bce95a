"""
User repository
"""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.models.user import User, UserRole


class UserRepository:
    """Account lookups and persistence."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> User | None:
        stmt = select(User).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_ids(self, user_ids: list[int]) -> Sequence[User]:
        if not user_ids:
            return []
        stmt = select(User).where(User.id.in_(user_ids))
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def create_user(
        self,
        *,
        email: str,
        name: str,
        role: UserRole,
        password_hash: str,
    ) -> User:
        user = User(
            email=email.lower(),
            name=name,
            role=role,
            password_hash=password_hash,
            is_active=True,
        )
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def update_password_hash(self, user: User, password_hash: str) -> User:
        user.password_hash = password_hash
        await self.session.flush()
        return user
