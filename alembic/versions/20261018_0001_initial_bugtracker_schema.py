"""Initial bug tracker schema

Revision ID: 20261018_0001_initial_bugtracker_schema
Revises:
Create Date: 2026-10-18 00:01:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261018_0001_initial_bugtracker_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EMBEDDING_DIMENSION = 384


def upgrade() -> None:
    """Create users, bugs and bug_comments."""
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    user_role_enum = postgresql.ENUM(
        "Developer",
        "Tester",
        "Project Manager",
        "Team Manager",
        name="user_role",
    )
    bug_status_enum = postgresql.ENUM("Open", "In Progress", "Resolved", "Closed", name="bug_status")
    bug_priority_enum = postgresql.ENUM("Low", "Medium", "High", "Critical", name="bug_priority")
    bug_severity_enum = postgresql.ENUM("Minor", "Major", "Critical", name="bug_severity")
    bug_environment_enum = postgresql.ENUM(
        "Development",
        "Staging",
        "Production",
        name="bug_environment",
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "bugs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", bug_status_enum, nullable=False),
        sa.Column("priority", bug_priority_enum, nullable=False),
        sa.Column("severity", bug_severity_enum, nullable=False),
        sa.Column("environment", bug_environment_enum, nullable=False),
        sa.Column("component", sa.String(length=100), nullable=True),
        sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("affected_users", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("assignee_id", sa.Integer(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("embedding", Vector(EMBEDDING_DIMENSION), nullable=True),
        sa.Column("embedding_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["assignee_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bugs_status", "bugs", ["status"])
    op.create_index("ix_bugs_priority", "bugs", ["priority"])
    op.create_index("ix_bugs_created_by", "bugs", ["created_by"])
    op.create_index("ix_bugs_assignee_id", "bugs", ["assignee_id"])
    op.create_index("ix_bugs_owner_status", "bugs", ["created_by", "status"])

    op.create_table(
        "bug_comments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("bug_id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["bug_id"], ["bugs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bug_comments_bug_id", "bug_comments", ["bug_id"])


def downgrade() -> None:
    """Drop tables and enum types."""
    op.drop_index("ix_bug_comments_bug_id", table_name="bug_comments")
    op.drop_table("bug_comments")
    for index_name in (
        "ix_bugs_owner_status",
        "ix_bugs_assignee_id",
        "ix_bugs_created_by",
        "ix_bugs_priority",
        "ix_bugs_status",
    ):
        op.drop_index(index_name, table_name="bugs")
    op.drop_table("bugs")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_name in ("bug_environment", "bug_severity", "bug_priority", "bug_status", "user_role"):
        postgresql.ENUM(name=enum_name).drop(bind, checkfirst=True)
