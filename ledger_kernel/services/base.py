"""
BaseService -- abstract base for all tenant-scoped kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write service in the kernel.  A service instance is bound to
    one SQLAlchemy ``Session`` and one tenant; it persists changes with
    ``session.flush()`` and never commits.

Invariants enforced:
    - Transaction boundaries belong to the caller (``session_scope()`` or
      the test harness).  Services never call ``commit()`` or
      ``rollback()`` on the session they were given.
    - Every query a service issues is filtered by ``tenant_id``.
"""

from abc import ABC

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import LogContext


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a ``Session``, a tenant id and an optional ``Clock`` from
        the caller.  No module-level store handle exists anywhere.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session, tenant_id: str, clock: Clock | None = None):
        if not tenant_id:
            raise ValueError("tenant_id is required")
        self.session = session
        self.tenant_id = tenant_id
        self.clock = clock or SystemClock()

    def log_scope(self, **fields):
        """Bind this service's tenant plus ``fields`` to every log line in a ``with`` block."""
        return LogContext.bind(tenant_id=self.tenant_id, **fields)
