"""
Audit logging -- the audit-log collaborator and its best-effort wrapper.

Responsibility:
    ``AuditSink`` is the protocol every audit destination implements.
    ``DatabaseAuditSink`` is the default: it appends hash-chained
    ``AuditRecord`` rows per tenant.  ``BestEffortAuditLog`` is what
    services hold; it runs the sink as a side effect so an audit failure
    is logged and counted but never undoes the business write.

Architecture position:
    Kernel > Services.  Used by PeriodService, JournalService and the
    tax filing service.

Invariants enforced:
    - Audit sequence numbers per tenant come from SequenceService (locked
      counter row), never from ``max(seq) + 1``.
    - Each record's hash covers the previous record's hash.

Failure modes:
    - ``DatabaseAuditSink.log`` propagates database errors;
      ``BestEffortAuditLog.record`` converts them to a FAILED outcome.

Audit relevance:
    ``verify_chain`` recomputes a tenant's chain and reports the first
    broken sequence number.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.audit_record import AuditRecord
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.side_effects import (
    SideEffectOutcome,
    SideEffectTelemetry,
    run_best_effort,
)
from ledger_kernel.utils.hashing import hash_audit_record, hash_payload, to_json_safe

logger = get_logger("services.audit")


class AuditSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class AuditEntry:
    """What happened, to which entity, by whom."""

    action: str
    entity_type: str
    entity_id: str
    actor_id: UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    severity: AuditSeverity = AuditSeverity.INFO


class AuditSink(Protocol):
    """Destination for audit entries."""

    def log(self, tenant_id: str, entry: AuditEntry) -> None: ...


class NullAuditSink:
    """Discards everything."""

    def log(self, tenant_id: str, entry: AuditEntry) -> None:
        return None


class InMemoryAuditSink:
    """Keeps ``(tenant_id, entry)`` pairs in a list; for tests and embedding."""

    def __init__(self) -> None:
        self.entries: list[tuple[str, AuditEntry]] = []

    def log(self, tenant_id: str, entry: AuditEntry) -> None:
        self.entries.append((tenant_id, entry))

    def actions(self, tenant_id: str | None = None) -> list[str]:
        return [e.action for t, e in self.entries if tenant_id is None or t == tenant_id]


def audit_sequence_name(tenant_id: str) -> str:
    return f"audit:{tenant_id}"


class DatabaseAuditSink:
    """
    Appends hash-chained ``AuditRecord`` rows in the caller's session.

    Contract:
        ``log`` flushes but never commits; the record becomes durable
        with the caller's transaction.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = SequenceService(session)

    def _last_hash(self, tenant_id: str) -> str | None:
        return self._session.execute(
            select(AuditRecord.hash)
            .where(AuditRecord.tenant_id == tenant_id)
            .order_by(AuditRecord.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

    def log(self, tenant_id: str, entry: AuditEntry) -> None:
        seq = self._sequences.next_value(audit_sequence_name(tenant_id))
        payload = to_json_safe(entry.metadata)
        payload_hash = hash_payload(payload)
        prev_hash = self._last_hash(tenant_id)

        record = AuditRecord(
            tenant_id=tenant_id,
            seq=seq,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            severity=entry.severity.value,
            actor_id=entry.actor_id,
            occurred_at=self._clock.now(),
            payload=payload,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=hash_audit_record(
                tenant_id,
                seq,
                entry.action,
                entry.entity_type,
                entry.entity_id,
                payload_hash,
                prev_hash,
            ),
        )
        self._session.add(record)
        self._session.flush()

    def list_records(
        self,
        tenant_id: str,
        entity_type: str | None = None,
        entity_id: str | None = None,
    ) -> list[AuditRecord]:
        stmt = select(AuditRecord).where(AuditRecord.tenant_id == tenant_id)
        if entity_type is not None:
            stmt = stmt.where(AuditRecord.entity_type == entity_type)
        if entity_id is not None:
            stmt = stmt.where(AuditRecord.entity_id == entity_id)
        return list(self._session.execute(stmt.order_by(AuditRecord.seq)).scalars())

    def verify_chain(self, tenant_id: str) -> int | None:
        """
        Recompute the tenant's chain.

        Returns:
            None when intact, else the seq of the first broken record.
        """
        prev_hash: str | None = None
        for record in self.list_records(tenant_id):
            expected = hash_audit_record(
                tenant_id,
                record.seq,
                record.action,
                record.entity_type,
                record.entity_id,
                hash_payload(record.payload),
                prev_hash,
            )
            if record.prev_hash != prev_hash or record.hash != expected:
                logger.error(
                    "audit_chain_broken",
                    extra={"tenant_id": tenant_id, "seq": record.seq},
                )
                return record.seq
            prev_hash = record.hash
        return None


class BestEffortAuditLog:
    """
    Audit writes that can fail without failing the caller.

    Contract:
        ``record`` always returns a ``SideEffectOutcome``.  When a
        session is bound, the sink runs in a SAVEPOINT so a failing
        insert does not poison the enclosing transaction.

    Non-goals:
        - Does NOT retry or queue failed entries; the ERROR log and the
          telemetry counter are the signal.
    """

    KIND = "audit"

    def __init__(
        self,
        sink: AuditSink,
        tenant_id: str,
        session: Session | None = None,
        telemetry: SideEffectTelemetry | None = None,
    ):
        self.sink = sink
        self.tenant_id = tenant_id
        self.session = session
        self.telemetry = telemetry

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: Any,
        actor_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
        severity: AuditSeverity = AuditSeverity.INFO,
    ) -> SideEffectOutcome:
        entry = AuditEntry(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_id=actor_id,
            metadata=metadata or {},
            severity=severity,
        )
        return run_best_effort(
            self.KIND,
            lambda: self.sink.log(self.tenant_id, entry),
            session=self.session,
            telemetry=self.telemetry,
            context={
                "tenant_id": self.tenant_id,
                "audit_action": action,
                "entity_id": entry.entity_id,
            },
        )


def default_audit_log(
    session: Session,
    tenant_id: str,
    clock: Clock | None = None,
) -> BestEffortAuditLog:
    """Database-backed best-effort audit log bound to ``session``."""
    return BestEffortAuditLog(DatabaseAuditSink(session, clock), tenant_id, session=session)
