from __future__ import annotations

from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.types import TypeDecorator

from bugtracker.core.config import settings


class JSONB(TypeDecorator):
    """
    Dialect-aware JSONB type that falls back to JSON on non-Postgres databases.
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_JSONB())
        return dialect.type_descriptor(JSON())


class FloatVector(TypeDecorator):
    """
    Embedding column: pgvector ``VECTOR(n)`` on Postgres, JSON list elsewhere.

    An empty embedding is stored as NULL and always read back as ``[]``.
    """

    impl = JSON
    cache_ok = True

    def __init__(self, dimension: int | None = None, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.dimension = dimension or settings.embedding_dimension

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Vector(self.dimension))
        return dialect.type_descriptor(JSON(none_as_null=True))

    def process_bind_param(self, value: Any, dialect) -> Any:
        if value is None or len(value) == 0:
            return None
        return [float(item) for item in value]

    def process_result_value(self, value: Any, dialect) -> Any:
        if value is None:
            return []
        return [float(item) for item in value]
