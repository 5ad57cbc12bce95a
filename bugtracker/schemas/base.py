"""
Base Pydantic schemas
"""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """
    Base schema with common configuration
    """

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode (SQLAlchemy compatibility)
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=False,  # Return enum objects, not string values
    )


class CamelSchema(BaseSchema):
    """
    Schema serialized with camelCase keys (``by_alias``) for the AI payloads
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        use_enum_values=False,
        alias_generator=to_camel,
    )


class TimestampSchema(BaseSchema):
    """
    Schema with timestamp fields
    """

    created_at: datetime
    updated_at: datetime


class IDSchema(BaseSchema):
    """
    Schema with UUID ID
    """

    id: UUID


class BaseResponseSchema(IDSchema, TimestampSchema):
    """
    Base response schema with ID and timestamps
    """

    pass
