"""Custom SQLAlchemy types and column helpers shared by the models"""
from sqlalchemy import TypeDecorator, String, JSON
from sqlalchemy.ext.mutable import MutableList
import uuid


def generate_uuid():
    """Generate a UUID string"""
    return str(uuid.uuid4())


def enum_values(enum_cls) -> list:
    """Persist enum members by value ('pending') rather than by name ('PENDING')"""
    return [member.value for member in enum_cls]


def is_valid_uuid(value) -> bool:
    """True when value parses as a UUID (path ids are checked before any lookup)"""
    try:
        uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return False
    return True


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


# JSON array column that tracks in-place append/remove as a change
IdList = MutableList.as_mutable(JSON)
