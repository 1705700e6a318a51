"""
Module: ledger_kernel.selectors.base
Responsibility: Base class for read-only, tenant-scoped query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/.  MUST NOT import from services/.

Invariants enforced:
    - Selectors never add, delete, flush or commit.
    - Every query is filtered by tenant_id.
    - Results are DTOs, never ORM rows.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for selectors.

    Contract:
        Accepts a Session and a tenant id from the caller; the caller owns
        the transaction.
    """

    def __init__(self, session: Session, tenant_id: str):
        if not tenant_id:
            raise ValueError("tenant_id is required")
        self.session = session
        self.tenant_id = tenant_id
