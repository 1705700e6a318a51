"""Write services for the ledger kernel (flush-only, tenant-scoped)."""

from ledger_kernel.services.audit_service import (
    AuditEntry,
    AuditSeverity,
    AuditSink,
    BestEffortAuditLog,
    DatabaseAuditSink,
    InMemoryAuditSink,
    NullAuditSink,
    default_audit_log,
)
from ledger_kernel.services.chart_of_accounts_service import ChartOfAccountsService
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.side_effects import (
    SideEffectOutcome,
    SideEffectStatus,
    SideEffectTelemetry,
    run_best_effort,
)

__all__ = [
    "AuditEntry",
    "AuditSeverity",
    "AuditSink",
    "BestEffortAuditLog",
    "ChartOfAccountsService",
    "DatabaseAuditSink",
    "InMemoryAuditSink",
    "JournalService",
    "NullAuditSink",
    "PeriodService",
    "SequenceService",
    "SideEffectOutcome",
    "SideEffectStatus",
    "SideEffectTelemetry",
    "default_audit_log",
    "run_best_effort",
]
