"""
InvoiceLedgerBridge: best-effort postings from invoicing and payroll.

Verifies:
- Nothing is posted without a chart; the skip is recorded
- An invoice or payroll run is posted once; payments are not deduplicated
- A ledger failure comes back as FAILED and leaves the caller's work intact
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.dtos import (
    EntryFilter,
    EntrySource,
    InvoicePaymentPosting,
    InvoicePosting,
    PayrollPosting,
)
from ledger_kernel.services.side_effects import SideEffectStatus, SideEffectTelemetry
from ledger_modules.integrations import (
    INVOICE_KIND,
    PAYMENT_KIND,
    PAYROLL_KIND,
    InvoiceLedgerBridge,
)

INVOICE = InvoicePosting(
    invoice_id="inv-0107",
    invoice_number="INV-2026-0107",
    customer_name="Hotel Timor",
    issue_date=date(2026, 1, 12),
    total=Decimal("850.00"),
)

PAYROLL = PayrollPosting(
    payroll_run_id="run-2026-01",
    period_start=date(2026, 1, 1),
    period_end=date(2026, 1, 31),
    pay_date=date(2026, 1, 14),
    employee_count=2,
    total_gross=Decimal("2000.00"),
    total_net=Decimal("1770.00"),
    total_wit=Decimal("150.00"),
    total_inss_employee=Decimal("80.00"),
    total_inss_employer=Decimal("120.00"),
)


def _payment(amount, reference):
    return InvoicePaymentPosting(
        invoice_id="inv-0107",
        invoice_number="INV-2026-0107",
        customer_name="Hotel Timor",
        payment_date=date(2026, 1, 14),
        amount=Decimal(amount),
        method="bank_transfer",
        reference=reference,
    )


@pytest.fixture
def telemetry():
    return SideEffectTelemetry()


@pytest.fixture
def bridge(session, tenant_id, journal_service, chart_service, telemetry):
    return InvoiceLedgerBridge(
        session, tenant_id, journal=journal_service, chart=chart_service, telemetry=telemetry
    )


class TestWithoutChart:

    def test_skipped(self, bridge, telemetry, test_actor_id, captured_logs):
        outcome = bridge.on_invoice_sent(INVOICE, test_actor_id)

        assert outcome.status == SideEffectStatus.SKIPPED
        assert outcome.reason == "chart_not_initialized"
        assert telemetry.count(INVOICE_KIND, SideEffectStatus.SKIPPED) == 1
        record = next(r for r in captured_logs() if r["message"] == "side_effect_skipped")
        assert record["invoice_number"] == "INV-2026-0107"


class TestInvoices:

    def test_invoice_posted(self, open_books, bridge, test_actor_id):
        outcome = bridge.on_invoice_sent(INVOICE, test_actor_id)

        assert outcome.succeeded
        entry = outcome.result
        assert entry.is_posted
        assert entry.source == EntrySource.INVOICE
        assert entry.total_debit == Decimal("850.00")

    def test_invoice_posted_once(self, open_books, bridge, telemetry, test_actor_id):
        bridge.on_invoice_sent(INVOICE, test_actor_id)

        outcome = bridge.on_invoice_sent(INVOICE, test_actor_id)

        assert outcome.status == SideEffectStatus.SKIPPED
        assert outcome.reason == "already_posted"
        assert telemetry.snapshot()[INVOICE_KIND] == {"succeeded": 1, "skipped": 1}

    def test_voided_invoice_can_be_posted_again(
        self, open_books, bridge, journal_service, test_actor_id,
    ):
        first = bridge.on_invoice_sent(INVOICE, test_actor_id).result
        journal_service.void_entry(first.id, "Invoice reissued", test_actor_id)

        assert bridge.on_invoice_sent(INVOICE, test_actor_id).succeeded

    def test_partial_payments(self, open_books, bridge, journal_service, telemetry, test_actor_id):
        bridge.on_invoice_sent(INVOICE, test_actor_id)

        first = bridge.on_invoice_paid(_payment("500.00", "BNU-1"), test_actor_id)
        second = bridge.on_invoice_paid(_payment("350.00", "BNU-2"), test_actor_id)

        assert first.succeeded and second.succeeded
        assert telemetry.count(PAYMENT_KIND, SideEffectStatus.SUCCEEDED) == 2
        payments = journal_service.list_entries(EntryFilter(source=EntrySource.PAYMENT))
        assert len(payments) == 2


class TestFailures:

    def test_closed_period_fails_softly(
        self, open_books, bridge, period_service, chart_service, telemetry, test_actor_id,
        captured_logs,
    ):
        january = period_service.get_period_for_date(date(2026, 1, 12))
        period_service.close_period(january.id, test_actor_id)

        outcome = bridge.on_invoice_sent(INVOICE, test_actor_id)

        assert outcome.status == SideEffectStatus.FAILED
        assert outcome.error_type == "PeriodClosedError"
        assert telemetry.last_failure(INVOICE_KIND) == outcome
        assert period_service.get_period(january.id).status.value == "closed"
        assert chart_service.is_initialized()
        record = next(r for r in captured_logs() if r["message"] == "side_effect_failed")
        assert record["level"] == "ERROR"
        assert record["invoice_id"] == "inv-0107"

    def test_failure_does_not_block_next_post(
        self, open_books, bridge, period_service, test_actor_id,
    ):
        january = period_service.get_period_for_date(date(2026, 1, 12))
        period_service.close_period(january.id, test_actor_id)
        bridge.on_invoice_sent(INVOICE, test_actor_id)
        period_service.reopen_period(january.id, test_actor_id)

        assert bridge.on_invoice_sent(INVOICE, test_actor_id).succeeded


class TestPayroll:

    def test_payroll_posted(self, open_books, bridge, test_actor_id, captured_logs):
        outcome = bridge.on_payroll_paid(PAYROLL, test_actor_id)

        assert outcome.succeeded
        assert outcome.result.total_debit == Decimal("2120.00")
        record = next(r for r in captured_logs() if r["message"] == "payroll_posted_to_ledger")
        assert record["payroll_run_id"] == "run-2026-01"
        assert record["entry_number"] == outcome.result.entry_number

    def test_payroll_posted_once(self, open_books, bridge, telemetry, test_actor_id):
        bridge.on_payroll_paid(PAYROLL, test_actor_id)

        outcome = bridge.on_payroll_paid(PAYROLL, test_actor_id)

        assert outcome.reason == "already_posted"
        assert telemetry.count(PAYROLL_KIND, SideEffectStatus.SUCCEEDED) == 1
