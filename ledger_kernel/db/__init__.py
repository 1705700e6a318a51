"""Database layer - engine, base classes and session scope."""

from ledger_kernel.db.base import UUID, Base, TenantTrackedBase, TrackedBase, UUIDString
from ledger_kernel.db.engine import (
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
    "TenantTrackedBase",
    "UUIDString",
    "UUID",
]
