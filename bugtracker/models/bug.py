"""
Bug domain model
"""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bugtracker.core.sqlalchemy_types import JSONB, FloatVector
from bugtracker.models.base import BaseModel


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class BugStatus(str, enum.Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class BugPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class BugSeverity(str, enum.Enum):
    MINOR = "Minor"
    MAJOR = "Major"
    CRITICAL = "Critical"


class BugEnvironment(str, enum.Enum):
    DEVELOPMENT = "Development"
    STAGING = "Staging"
    PRODUCTION = "Production"


class Bug(BaseModel):
    """Bug report owned by the user who filed it."""

    __tablename__ = "bugs"

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[BugStatus] = mapped_column(
        SQLEnum(BugStatus, name="bug_status", values_callable=_enum_values),
        nullable=False,
        default=BugStatus.OPEN,
        index=True,
    )
    priority: Mapped[BugPriority] = mapped_column(
        SQLEnum(BugPriority, name="bug_priority", values_callable=_enum_values),
        nullable=False,
        default=BugPriority.MEDIUM,
        index=True,
    )
    severity: Mapped[BugSeverity] = mapped_column(
        SQLEnum(BugSeverity, name="bug_severity", values_callable=_enum_values),
        nullable=False,
        default=BugSeverity.MAJOR,
    )
    environment: Mapped[BugEnvironment] = mapped_column(
        SQLEnum(BugEnvironment, name="bug_environment", values_callable=_enum_values),
        nullable=False,
        default=BugEnvironment.DEVELOPMENT,
    )
    component: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    affected_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assignee_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    embedding: Mapped[list[float]] = mapped_column(FloatVector(), nullable=True, default=list)
    embedding_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    comments: Mapped[list["BugComment"]] = relationship(
        "BugComment",
        back_populates="bug",
        cascade="all, delete-orphan",
        order_by="BugComment.created_at",
    )

    __table_args__ = (Index("ix_bugs_owner_status", "created_by", "status"),)

    def __repr__(self) -> str:
        return f"<Bug(id={self.id}, title={self.title!r}, status={self.status})>"

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    @property
    def embedding_text(self) -> str:
        """Text fed to the embedding provider."""
        return f"{self.title} {self.description}"


class BugComment(BaseModel):
    """Comment left on a bug."""

    __tablename__ = "bug_comments"

    bug_id: Mapped[UUID] = mapped_column(
        ForeignKey("bugs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)

    bug: Mapped[Bug] = relationship("Bug", back_populates="comments")
