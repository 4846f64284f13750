"""Database layer - engine, base classes and column types."""

from bullion_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from bullion_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from bullion_kernel.db.types import CurrencyCode, Money, Purity, Weight

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Weight",
    "Purity",
    "CurrencyCode",
]
