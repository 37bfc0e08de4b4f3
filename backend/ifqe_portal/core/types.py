"""Custom SQLAlchemy types for cross-database compatibility"""
import uuid
from typing import Optional

from sqlalchemy import TypeDecorator, String


def generate_uuid() -> str:
    """Generate a UUID string"""
    return str(uuid.uuid4())


def canonical_uuid(value) -> Optional[str]:
    """Lowercase hyphenated form of a UUID, or None if ``value`` is not one"""
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError):
        return None


class GUID(TypeDecorator):
    """Platform-independent GUID type that stores UUIDs as VARCHAR(36)"""
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value
