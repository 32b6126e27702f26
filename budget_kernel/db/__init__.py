"""Database layer - engine, session scope and declarative base classes."""

from budget_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from budget_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
