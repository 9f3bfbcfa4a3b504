"""
Column types that behave the same on PostgreSQL and SQLite.

Production runs on PostgreSQL (native UUID / JSONB); the test-suite runs on
in-memory SQLite where both are stored as text.
"""
import json
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CHAR, Text, TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB, UUID


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """DateTime columns hold naive UTC; convert offset-aware values to match."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class GUID(TypeDecorator):
    """
    UUID primary/foreign key column.

    Accepts either `uuid.UUID` or its string form on the way in and always
    hands back `uuid.UUID`, so ids can be compared with `==` regardless of
    where they came from (path params, cookies, ORM rows).
    """
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(str(value))
        if dialect.name == "postgresql":
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class JSON(TypeDecorator):
    """JSONB on PostgreSQL, serialized TEXT elsewhere."""
    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        return json.dumps(value, default=str, ensure_ascii=False)

    def process_result_value(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        return json.loads(value)
