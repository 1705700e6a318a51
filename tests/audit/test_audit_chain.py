"""
Database audit sink and its hash chain.

Verifies:
- Records are numbered per tenant and chained by hash
- Editing or deleting a record is detected by verify_chain
- A failing sink never fails the audited operation
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import delete

from ledger_kernel.domain.dtos import JournalEntryInput, JournalLineInput
from ledger_kernel.models.audit_record import AuditRecord
from ledger_kernel.services.audit_service import (
    AuditEntry,
    AuditSeverity,
    BestEffortAuditLog,
    DatabaseAuditSink,
    default_audit_log,
)
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.side_effects import SideEffectStatus, SideEffectTelemetry


def _log_three(sink, tenant_id):
    for n in range(3):
        sink.log(
            tenant_id,
            AuditEntry(
                action="journal.posted",
                entity_type="journal_entry",
                entity_id=f"entry-{n}",
                metadata={"n": n},
            ),
        )


class TestDatabaseAuditSink:

    def test_records_are_chained(self, session, tenant_id, deterministic_clock):
        sink = DatabaseAuditSink(session, deterministic_clock)
        _log_three(sink, tenant_id)

        records = sink.list_records(tenant_id)
        assert [r.seq for r in records] == [1, 2, 3]
        assert records[0].prev_hash is None
        assert records[1].prev_hash == records[0].hash
        assert records[2].prev_hash == records[1].hash
        assert sink.verify_chain(tenant_id) is None

    def test_tenants_have_separate_chains(
        self, session, tenant_id, other_tenant_id, deterministic_clock,
    ):
        sink = DatabaseAuditSink(session, deterministic_clock)
        _log_three(sink, tenant_id)
        _log_three(sink, other_tenant_id)

        assert [r.seq for r in sink.list_records(other_tenant_id)] == [1, 2, 3]
        assert sink.verify_chain(other_tenant_id) is None

    def test_edited_payload_detected(self, session, tenant_id, deterministic_clock):
        sink = DatabaseAuditSink(session, deterministic_clock)
        _log_three(sink, tenant_id)

        record = sink.list_records(tenant_id)[1]
        record.payload = {"n": 99}
        session.flush()

        assert sink.verify_chain(tenant_id) == 2

    def test_deleted_record_detected(self, session, tenant_id, deterministic_clock):
        sink = DatabaseAuditSink(session, deterministic_clock)
        _log_three(sink, tenant_id)

        session.execute(
            delete(AuditRecord).where(AuditRecord.tenant_id == tenant_id, AuditRecord.seq == 2)
        )
        session.expire_all()

        assert sink.verify_chain(tenant_id) == 3

    def test_filter_by_entity(self, session, tenant_id, deterministic_clock):
        sink = DatabaseAuditSink(session, deterministic_clock)
        _log_three(sink, tenant_id)

        records = sink.list_records(tenant_id, entity_type="journal_entry", entity_id="entry-1")
        assert [r.payload for r in records] == [{"n": 1}]


class TestServiceAudit:

    def test_ledger_operations_reach_the_chain(
        self, session, tenant_id, deterministic_clock, open_books, post, journal_service,
        test_actor_id,
    ):
        entry = post(date(2026, 1, 10), [("5200", "100", "0"), ("1110", "0", "100")])
        journal_service.void_entry(entry.id, "Wrong account", test_actor_id)

        sink = DatabaseAuditSink(session, deterministic_clock)
        actions = [r.action for r in sink.list_records(tenant_id)]
        assert actions.count("fiscal_year.created") == 2
        assert actions[-3:] == ["journal.posted", "journal.posted", "journal.voided"]
        assert sink.verify_chain(tenant_id) is None

    def test_default_log_is_database_backed(self, session, tenant_id, deterministic_clock):
        audit = default_audit_log(session, tenant_id, deterministic_clock)

        outcome = audit.record("period.closed", "fiscal_period", "p-1", severity=AuditSeverity.WARNING)

        assert outcome.succeeded
        record = DatabaseAuditSink(session).list_records(tenant_id)[0]
        assert record.severity == "warning"


class _BrokenSink:
    def log(self, tenant_id, entry):
        raise RuntimeError("audit store unavailable")


class TestBestEffortAudit:

    def test_sink_failure_is_contained(self, session, tenant_id, captured_logs):
        telemetry = SideEffectTelemetry()
        audit = BestEffortAuditLog(_BrokenSink(), tenant_id, session=session, telemetry=telemetry)

        outcome = audit.record("journal.posted", "journal_entry", "e-1")

        assert outcome.status == SideEffectStatus.FAILED
        assert outcome.error_type == "RuntimeError"
        assert telemetry.count("audit", SideEffectStatus.FAILED) == 1
        failures = [r for r in captured_logs() if r["message"] == "side_effect_failed"]
        assert failures[0]["audit_action"] == "journal.posted"
        assert failures[0]["level"] == "ERROR"

    def test_posting_survives_audit_failure(
        self, session, tenant_id, deterministic_clock, open_books, test_actor_id,
    ):
        audit = BestEffortAuditLog(_BrokenSink(), tenant_id, session=session)
        journal = JournalService(
            session, tenant_id, deterministic_clock,
            periods=PeriodService(session, tenant_id, deterministic_clock, audit),
            audit=audit,
        )

        entry = journal.create_entry(
            JournalEntryInput(
                entry_date=date(2026, 1, 10),
                description="Stationery",
                lines=(
                    JournalLineInput(account_code="5200", debit=Decimal("40")),
                    JournalLineInput(account_code="1110", credit=Decimal("40")),
                ),
            ),
            test_actor_id,
            post=True,
        )

        assert journal.get_entry(entry.id).is_posted
