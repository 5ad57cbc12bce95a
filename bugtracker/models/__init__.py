"""
SQLAlchemy 2.0 Models
"""

from bugtracker.models.base import Base, BaseModel  # noqa: F401
from bugtracker.models.bug import (  # noqa: F401
    Bug,
    BugComment,
    BugEnvironment,
    BugPriority,
    BugSeverity,
    BugStatus,
)
from bugtracker.models.user import MANAGER_ROLES, User, UserRole  # noqa: F401

__all__ = [
    "Base",
    "BaseModel",
    "Bug",
    "BugComment",
    "BugEnvironment",
    "BugPriority",
    "BugSeverity",
    "BugStatus",
    "MANAGER_ROLES",
    "User",
    "UserRole",
]
