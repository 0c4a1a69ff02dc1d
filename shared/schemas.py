"""
Base request/response model.

The frontend speaks camelCase JSON; models are declared in snake_case
and accept either spelling on input.

Timestamps are stored as naive UTC. On the wire they are emitted with
an explicit UTC offset so that clients do not read them as local time.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, field_serializer
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Pydantic model serialized with camelCase field names."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

    @field_serializer("*", mode="wrap", when_used="json")
    def _serialize_utc(self, value, handler):
        if isinstance(value, datetime) and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return handler(value)
