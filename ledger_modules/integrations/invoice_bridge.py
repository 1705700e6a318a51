"""
Ledger postings triggered by invoicing and payroll.

Responsibility:
    Second phase of the invoice and payroll writes.  Once an invoice has
    been sent or paid, or a payroll run paid, the owning system calls
    the bridge, which posts the matching journal entry.

Architecture position:
    Modules layer.  Calls ``JournalService`` shortcuts through
    ``run_best_effort`` so a ledger failure never undoes the primary
    write.

Invariants enforced:
    - Nothing is posted for a tenant without a chart of accounts; the
      attempt is recorded as SKIPPED with reason ``chart_not_initialized``.
    - An invoice or payroll run is posted at most once.  A second call
      for the same source id while a posted entry exists is SKIPPED with
      reason ``already_posted``.  Payments are not deduplicated: one
      invoice may receive several.

Failure modes:
    - None propagate.  Failures come back as a FAILED
      ``SideEffectOutcome`` and are logged at ERROR.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import (
    EntryFilter,
    EntrySource,
    EntryStatus,
    InvoicePaymentPosting,
    InvoicePosting,
    PayrollPosting,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.chart_of_accounts_service import ChartOfAccountsService
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.side_effects import (
    SideEffectOutcome,
    SideEffectTelemetry,
    run_best_effort,
    skipped,
)

logger = get_logger("modules.integrations")

INVOICE_KIND = "ledger.invoice"
PAYMENT_KIND = "ledger.invoice_payment"
PAYROLL_KIND = "ledger.payroll"


class InvoiceLedgerBridge:
    """
    Best-effort journal posting for sent invoices, invoice payments and
    paid payroll runs.

    Contract:
        Each ``on_*`` method returns a ``SideEffectOutcome``.  On success
        ``outcome.result`` is the posted ``JournalEntryInfo``.

    Guarantees:
        - The journal write runs in a SAVEPOINT of ``session``; on failure
          only that savepoint is rolled back.

    Non-goals:
        - Does NOT retry.  Counters in ``telemetry`` expose the drift.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        journal: JournalService | None = None,
        chart: ChartOfAccountsService | None = None,
        telemetry: SideEffectTelemetry | None = None,
    ):
        self.session = session
        self.tenant_id = tenant_id
        self.journal = journal or JournalService(session, tenant_id)
        self.chart = chart or ChartOfAccountsService(session, tenant_id, self.journal.clock)
        self.telemetry = telemetry or SideEffectTelemetry()

    def _already_posted(self, source: EntrySource, source_id: str) -> bool:
        entries = self.journal.list_entries(
            EntryFilter(status=EntryStatus.POSTED, source=source, source_id=source_id),
            limit=1,
        )
        return bool(entries)

    def _post(
        self,
        kind: str,
        operation,
        context: dict,
        once_per: tuple[EntrySource, str] | None = None,
    ) -> SideEffectOutcome:
        context = {"tenant_id": self.tenant_id, **context}
        if not self.chart.is_initialized():
            return skipped(kind, "chart_not_initialized", self.telemetry, context)
        if once_per is not None and self._already_posted(*once_per):
            return skipped(kind, "already_posted", self.telemetry, context)
        return run_best_effort(
            kind,
            operation,
            session=self.session,
            telemetry=self.telemetry,
            context=context,
        )

    def on_invoice_sent(self, invoice: InvoicePosting, actor_id: UUID) -> SideEffectOutcome:
        """Dr trade receivables / Cr revenue for the invoice total."""
        return self._post(
            INVOICE_KIND,
            lambda: self.journal.create_from_invoice(invoice, actor_id),
            {"invoice_id": invoice.invoice_id, "invoice_number": invoice.invoice_number},
            once_per=(EntrySource.INVOICE, invoice.invoice_id),
        )

    def on_invoice_paid(
        self,
        payment: InvoicePaymentPosting,
        actor_id: UUID,
    ) -> SideEffectOutcome:
        """Dr cash (on hand or in bank) / Cr trade receivables."""
        return self._post(
            PAYMENT_KIND,
            lambda: self.journal.create_from_invoice_payment(payment, actor_id),
            {
                "invoice_id": payment.invoice_id,
                "invoice_number": payment.invoice_number,
                "payment_method": payment.method,
            },
        )

    def on_payroll_paid(self, payroll: PayrollPosting, actor_id: UUID) -> SideEffectOutcome:
        outcome = self._post(
            PAYROLL_KIND,
            lambda: self.journal.create_from_payroll(payroll, actor_id),
            {"payroll_run_id": payroll.payroll_run_id},
            once_per=(EntrySource.PAYROLL, payroll.payroll_run_id),
        )
        if outcome.succeeded:
            logger.info(
                "payroll_posted_to_ledger",
                extra={
                    "tenant_id": self.tenant_id,
                    "payroll_run_id": payroll.payroll_run_id,
                    "entry_number": outcome.result.entry_number,
                },
            )
        return outcome
