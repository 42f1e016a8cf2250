"""Database layer - engine, base classes, types, and write guards."""

from marketplace_kernel.db.base import UUID, Base, TimestampedBase, UTCDateTime, UUIDString
from marketplace_kernel.db.engine import (
    create_engine_from_url,
    create_session_factory,
    create_tables,
    drop_tables,
    is_postgres,
)
from marketplace_kernel.db.types import Amount, status_enum

__all__ = [
    "create_engine_from_url",
    "create_session_factory",
    "create_tables",
    "drop_tables",
    "is_postgres",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
    "Amount",
    "status_enum",
]
