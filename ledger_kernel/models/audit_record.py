"""
Module: ledger_kernel.models.audit_record
Responsibility: ORM persistence for the default database audit sink.
Architecture position: Kernel > Models.  Written only by
    ``DatabaseAuditSink``.

Invariants enforced:
    - (tenant_id, seq) unique; seq comes from the tenant's audit sequence.
    - hash = H(tenant, seq, action, entity, payload_hash, prev_hash), so
      the rows of one tenant form a tamper-evident chain.

Audit relevance:
    Rows are append-only.  ``DatabaseAuditSink.verify_chain`` recomputes
    every hash to detect edits or deletions.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, BigInteger, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUIDString


class AuditRecord(Base):
    """One audit log entry."""

    __tablename__ = "audit_records"

    __table_args__ = (
        UniqueConstraint("tenant_id", "seq", name="uq_audit_tenant_seq"),
        Index("idx_audit_entity", "tenant_id", "entity_type", "entity_id"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    action: Mapped[str] = mapped_column(String(80), nullable=False)

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)

    severity: Mapped[str] = mapped_column(String(10), nullable=False)

    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditRecord {self.tenant_id}#{self.seq} {self.action}>"
