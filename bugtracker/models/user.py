"""
User domain model
"""

import enum

from sqlalchemy import Boolean, Enum as SQLEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bugtracker.models.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    """Roles a tracker account can hold"""

    DEVELOPER = "Developer"
    TESTER = "Tester"
    PROJECT_MANAGER = "Project Manager"
    TEAM_MANAGER = "Team Manager"


MANAGER_ROLES = (UserRole.PROJECT_MANAGER, UserRole.TEAM_MANAGER)


class User(Base, TimestampMixin):
    """User account"""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.DEVELOPER,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="true",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES
