from datetime import timezone

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

from utils.timezone_helpers import ensure_timezone_aware


class UTCDateTime(TypeDecorator):
    """
    Timestamp column that only ever stores and returns UTC.

    PostgreSQL keeps the offset itself; SQLite drops it, so values read back
    without tzinfo are re-tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = ensure_timezone_aware(value)
        if dialect.name == "sqlite":
            # Stored naive so string comparison in WHERE clauses stays ordered
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
