"""
JournalService -- the only writer of journal entries.

Responsibility:
    Validates and records double-entry journal entries, posts drafts,
    voids posted entries by generating a linked reversal, and provides
    the posting shortcuts used by invoicing and payroll.

Architecture position:
    Kernel > Services -- imperative shell.
    Depends on PeriodService (posting-date validation), SequenceService
    (entry numbers) and the audit log.  Read-side queries over posted
    lines live in ``ledger_kernel.selectors.ledger_selector``.

Invariants enforced:
    - An entry has at least two lines; each line is one-sided with a
      positive amount; debits equal credits to the cent.
    - Every line's account exists for the tenant and is active
      (reversals of historical entries excepted).
    - Entry numbers come from the tenant's per-year locked counter row
      (``JE-{year}-{seq:04d}``), never from ``max() + 1``.
    - Posting requires the covering period to be OPEN; the period row is
      locked for the rest of the transaction.
    - Posted entries are never edited or deleted.  Void flips status,
      records who and why, and links the reversal in both directions.

Failure modes:
    - InvalidJournalLineError, UnbalancedEntryError.
    - AccountNotFoundError, InactiveAccountError.
    - EntryNotFoundError, InvalidEntryStateError, AlreadyVoidError.
    - PeriodNotFoundError, PeriodClosedError, PeriodLockedError.
    - ChartNotInitializedError from the posting shortcuts.

Audit relevance:
    ``journal.posted`` and ``journal.voided`` audit records carry the
    entry number, totals and (for void) the reason and reversal number.
"""

from decimal import Decimal
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config import PostingAccounts, get_jurisdiction
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import (
    EntryFilter,
    EntrySource,
    EntryStatus,
    InvoicePaymentPosting,
    InvoicePosting,
    JournalEntryInfo,
    JournalEntryInput,
    JournalLineInput,
    PayrollPosting,
)
from ledger_kernel.domain.money import ZERO, round_money
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AlreadyVoidError,
    ChartNotInitializedError,
    EntryNotFoundError,
    InactiveAccountError,
    InvalidEntryStateError,
    InvalidJournalLineError,
    PeriodClosedError,
    UnbalancedEntryError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.services.audit_service import (
    AuditSeverity,
    BestEffortAuditLog,
    default_audit_log,
)
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal")


def validate_lines(lines: Sequence[JournalLineInput]) -> tuple[Decimal, Decimal]:
    """
    Check line count, one-sidedness and balance.

    Amounts are compared after rounding to cents.

    Returns:
        (total_debit, total_credit), equal.

    Raises:
        InvalidJournalLineError: Fewer than two lines, or a line with both
            or neither side set.
        UnbalancedEntryError: Debits differ from credits.
    """
    if len(lines) < 2:
        raise InvalidJournalLineError(len(lines), "an entry needs at least two lines")

    total_debit = ZERO
    total_credit = ZERO
    for number, line in enumerate(lines, start=1):
        debit = round_money(line.debit)
        credit = round_money(line.credit)
        if debit > 0 and credit > 0:
            raise InvalidJournalLineError(number, "line has both a debit and a credit")
        if debit == 0 and credit == 0:
            raise InvalidJournalLineError(number, "line has no amount")
        total_debit += debit
        total_credit += credit

    if total_debit != total_credit:
        logger.warning(
            "entry_unbalanced",
            extra={"total_debit": str(total_debit), "total_credit": str(total_credit)},
        )
        raise UnbalancedEntryError(str(total_debit), str(total_credit))
    return total_debit, total_credit


class JournalService(BaseService):
    """
    Service for recording, posting and voiding journal entries.

    Contract:
        Accepts ``JournalEntryInput`` and shortcut DTOs, returns
        ``JournalEntryInfo`` snapshots.  Flush-only.

    Guarantees:
        - A voided entry and its reversal net to zero on every account.
        - History dated before the void is unchanged: the reversal is
          dated in the current open period, not the original's.

    Non-goals:
        - Does NOT edit posted entries; corrections are void + re-enter.
        - Does NOT handle currencies; every amount is USD.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        clock: Clock | None = None,
        periods: PeriodService | None = None,
        audit: BestEffortAuditLog | None = None,
        posting_accounts: PostingAccounts | None = None,
    ):
        super().__init__(session, tenant_id, clock)
        self.audit = audit or default_audit_log(session, tenant_id, self.clock)
        self.periods = periods or PeriodService(session, tenant_id, self.clock, self.audit)
        self.sequences = SequenceService(session)
        self._posting_accounts = posting_accounts

    @property
    def posting_accounts(self) -> PostingAccounts:
        if self._posting_accounts is None:
            self._posting_accounts = get_jurisdiction().posting_accounts
        return self._posting_accounts

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_orm(self, entry_id: UUID, for_update: bool = False) -> JournalEntry:
        stmt = select(JournalEntry).where(
            JournalEntry.tenant_id == self.tenant_id,
            JournalEntry.id == entry_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        entry = self.session.execute(stmt).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        return entry

    def _resolve_accounts(
        self,
        codes: Iterable[str],
        require_active: bool = True,
    ) -> dict[str, Account]:
        wanted = set(codes)
        accounts = {
            a.code: a
            for a in self.session.execute(
                select(Account).where(
                    Account.tenant_id == self.tenant_id,
                    Account.code.in_(wanted),
                )
            ).scalars()
        }
        for code in sorted(wanted):
            account = accounts.get(code)
            if account is None:
                logger.warning(
                    "entry_account_not_found",
                    extra={"tenant_id": self.tenant_id, "account_code": code},
                )
                raise AccountNotFoundError(code)
            if require_active and not account.is_active:
                logger.warning(
                    "entry_account_inactive",
                    extra={"tenant_id": self.tenant_id, "account_code": code},
                )
                raise InactiveAccountError(code)
        return accounts

    def _require_chart(self) -> None:
        has_account = self.session.execute(
            select(Account.id).where(Account.tenant_id == self.tenant_id).limit(1)
        ).first()
        if has_account is None:
            raise ChartNotInitializedError(self.tenant_id)

    def _mark_posted(self, entry: JournalEntry, actor_id: UUID) -> None:
        entry.status = EntryStatus.POSTED.value
        entry.posted_at = self.clock.now()
        entry.posted_by_id = actor_id
        entry.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "entry_posted",
            extra={
                "tenant_id": self.tenant_id,
                "entry_id": str(entry.id),
                "entry_number": entry.entry_number,
                "source": entry.source,
                "total": str(entry.total_debit),
            },
        )
        self.audit.record(
            "journal.posted",
            "journal_entry",
            entry.id,
            actor_id,
            {
                "entry_number": entry.entry_number,
                "entry_date": entry.entry_date,
                "source": entry.source,
                "total_debit": entry.total_debit,
                "total_credit": entry.total_credit,
            },
        )

    def _create(
        self,
        entry_input: JournalEntryInput,
        actor_id: UUID,
        post: bool,
        reverses_entry_id: UUID | None = None,
    ) -> JournalEntry:
        total_debit, total_credit = validate_lines(entry_input.lines)
        accounts = self._resolve_accounts(
            (line.account_code for line in entry_input.lines),
            # A reversal must be able to hit an account deactivated since
            require_active=reverses_entry_id is None,
        )
        if post:
            self.periods.validate_posting_date(entry_input.entry_date)

        year = entry_input.entry_date.year
        sequence_number, entry_number = self.sequences.next_entry_number(self.tenant_id, year)
        entry = JournalEntry(
            tenant_id=self.tenant_id,
            entry_number=entry_number,
            sequence_number=sequence_number,
            entry_date=entry_input.entry_date,
            description=entry_input.description.strip(),
            source=entry_input.source.value,
            source_id=entry_input.source_id,
            source_ref=entry_input.source_ref,
            status=EntryStatus.DRAFT.value,
            fiscal_year=year,
            fiscal_period=entry_input.entry_date.month,
            total_debit=total_debit,
            total_credit=total_credit,
            reverses_entry_id=reverses_entry_id,
            created_by_id=actor_id,
        )
        for number, line in enumerate(entry_input.lines, start=1):
            account = accounts[line.account_code]
            entry.lines.append(
                JournalLine(
                    line_number=number,
                    account_id=account.id,
                    account_code=account.code,
                    account_name=account.name,
                    debit=round_money(line.debit),
                    credit=round_money(line.credit),
                    description=line.description,
                    department_id=line.department_id,
                    employee_id=line.employee_id,
                    project_id=line.project_id,
                )
            )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "entry_created",
            extra={
                "tenant_id": self.tenant_id,
                "entry_id": str(entry.id),
                "entry_number": entry.entry_number,
                "line_count": len(entry.lines),
                "actor_id": str(actor_id),
            },
        )
        if post:
            self._mark_posted(entry, actor_id)
        return entry

    # ------------------------------------------------------------------
    # Entry lifecycle
    # ------------------------------------------------------------------

    def create_entry(
        self,
        entry_input: JournalEntryInput,
        actor_id: UUID,
        post: bool = False,
    ) -> JournalEntryInfo:
        """
        Record a new entry as a draft, or post it immediately.

        Validation runs before an entry number is allocated, so a rejected
        entry never consumes a number.

        Raises:
            InvalidJournalLineError, UnbalancedEntryError,
            AccountNotFoundError, InactiveAccountError, and (with
            ``post=True``) the period errors of ``post_entry``.
        """
        return self._create(entry_input, actor_id, post).to_dto()

    def post_entry(self, entry_id: UUID, actor_id: UUID) -> JournalEntryInfo:
        """
        Draft -> posted.

        Raises:
            EntryNotFoundError: No such entry for the tenant.
            InvalidEntryStateError: Entry is not a draft.
            InactiveAccountError: An account was deactivated since drafting.
            PeriodNotFoundError / PeriodClosedError / PeriodLockedError.
        """
        entry = self._get_orm(entry_id, for_update=True)
        if entry.status != EntryStatus.DRAFT.value:
            raise InvalidEntryStateError(str(entry_id), entry.status, EntryStatus.DRAFT.value)

        self._resolve_accounts(line.account_code for line in entry.lines)
        self.periods.validate_posting_date(entry.entry_date)
        self._mark_posted(entry, actor_id)
        return entry.to_dto()

    def void_entry(self, entry_id: UUID, reason: str, actor_id: UUID) -> JournalEntryInfo:
        """
        Void a posted entry by posting a reversal with every line swapped.

        The reversal is dated today when today's period is open, otherwise
        on the first day of the earliest open period after today.

        Returns:
            Snapshot of the voided original (``state.reversal_entry_id``
            names the reversal).

        Raises:
            EntryNotFoundError: No such entry.
            AlreadyVoidError: Entry is already void.
            InvalidEntryStateError: Entry is a draft (delete it instead).
            PeriodLockedError: The original's period is locked.
            PeriodClosedError: No open period exists on or after today.
        """
        if not reason or not reason.strip():
            raise ValueError("A void reason is required")

        entry = self._get_orm(entry_id, for_update=True)
        if entry.status == EntryStatus.VOID.value:
            raise AlreadyVoidError(str(entry_id), entry.entry_number)
        if entry.status != EntryStatus.POSTED.value:
            raise InvalidEntryStateError(str(entry_id), entry.status, EntryStatus.POSTED.value)

        self.periods.lock_period_for_void(entry.entry_date)

        today = self.clock.today()
        target = self.periods.get_open_period_on_or_after(today)
        if target is None:
            todays = self.periods.get_period_for_date(today)
            raise PeriodClosedError(
                todays.period_code if todays else "none",
                str(today),
                f"No open period on or after {today} to receive the reversal",
            )
        reversal_date = today if target.contains_date(today) else target.start_date

        reversal = self._create(
            JournalEntryInput(
                entry_date=reversal_date,
                description=f"Reversal of {entry.entry_number}: {reason.strip()}",
                lines=tuple(
                    JournalLineInput(
                        account_code=line.account_code,
                        debit=line.credit,
                        credit=line.debit,
                        description=line.description,
                        department_id=line.department_id,
                        employee_id=line.employee_id,
                        project_id=line.project_id,
                    )
                    for line in entry.lines
                ),
                source=EntrySource.REVERSAL,
                source_id=str(entry.id),
                source_ref=entry.entry_number,
            ),
            actor_id,
            post=True,
            reverses_entry_id=entry.id,
        )

        entry.status = EntryStatus.VOID.value
        entry.voided_at = self.clock.now()
        entry.voided_by_id = actor_id
        entry.void_reason = reason.strip()
        entry.reversal_entry_id = reversal.id
        entry.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "entry_voided",
            extra={
                "tenant_id": self.tenant_id,
                "entry_id": str(entry.id),
                "entry_number": entry.entry_number,
                "reversal_entry_number": reversal.entry_number,
                "actor_id": str(actor_id),
            },
        )
        self.audit.record(
            "journal.voided",
            "journal_entry",
            entry.id,
            actor_id,
            {
                "entry_number": entry.entry_number,
                "reason": entry.void_reason,
                "reversal_entry_id": reversal.id,
                "reversal_entry_number": reversal.entry_number,
            },
            AuditSeverity.WARNING,
        )
        return entry.to_dto()

    def delete_draft(self, entry_id: UUID, actor_id: UUID) -> None:
        """
        Delete a draft.  Its entry number is not reused.

        Raises:
            EntryNotFoundError, InvalidEntryStateError (not a draft).
        """
        entry = self._get_orm(entry_id, for_update=True)
        if entry.status != EntryStatus.DRAFT.value:
            raise InvalidEntryStateError(str(entry_id), entry.status, EntryStatus.DRAFT.value)
        self.session.delete(entry)
        self.session.flush()
        logger.info(
            "draft_deleted",
            extra={
                "tenant_id": self.tenant_id,
                "entry_number": entry.entry_number,
                "actor_id": str(actor_id),
            },
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_entry(self, entry_id: UUID) -> JournalEntryInfo | None:
        entry = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.id == entry_id,
            )
        ).scalar_one_or_none()
        return entry.to_dto() if entry else None

    def get_entry_by_number(self, entry_number: str) -> JournalEntryInfo | None:
        entry = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.entry_number == entry_number,
            )
        ).scalar_one_or_none()
        return entry.to_dto() if entry else None

    def list_entries(
        self,
        entry_filter: EntryFilter | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[JournalEntryInfo]:
        """Entries newest first (entry date, then entry number)."""
        stmt = select(JournalEntry).where(JournalEntry.tenant_id == self.tenant_id)
        f = entry_filter or EntryFilter()
        if f.status is not None:
            stmt = stmt.where(JournalEntry.status == f.status.value)
        if f.source is not None:
            stmt = stmt.where(JournalEntry.source == f.source.value)
        if f.source_id is not None:
            stmt = stmt.where(JournalEntry.source_id == f.source_id)
        if f.start_date is not None:
            stmt = stmt.where(JournalEntry.entry_date >= f.start_date)
        if f.end_date is not None:
            stmt = stmt.where(JournalEntry.entry_date <= f.end_date)
        if f.fiscal_year is not None:
            stmt = stmt.where(JournalEntry.fiscal_year == f.fiscal_year)
        stmt = (
            stmt.order_by(JournalEntry.entry_date.desc(), JournalEntry.sequence_number.desc())
            .limit(limit)
            .offset(offset)
        )
        return [e.to_dto() for e in self.session.execute(stmt).scalars()]

    # ------------------------------------------------------------------
    # Posting shortcuts
    # ------------------------------------------------------------------

    def create_from_invoice(self, invoice: InvoicePosting, actor_id: UUID) -> JournalEntryInfo:
        """Dr trade receivables / Cr revenue for a sent invoice.  Posted."""
        self._require_chart()
        accounts = self.posting_accounts
        revenue_code = invoice.revenue_account_code or accounts.default_revenue
        return self.create_entry(
            JournalEntryInput(
                entry_date=invoice.issue_date,
                description=f"Invoice {invoice.invoice_number} - {invoice.customer_name}",
                lines=(
                    JournalLineInput(
                        account_code=accounts.trade_receivables,
                        debit=invoice.total,
                        description=f"AR - {invoice.invoice_number}",
                    ),
                    JournalLineInput(
                        account_code=revenue_code,
                        credit=invoice.total,
                        description=f"Revenue - {invoice.invoice_number}",
                    ),
                ),
                source=EntrySource.INVOICE,
                source_id=invoice.invoice_id,
                source_ref=invoice.invoice_number,
            ),
            actor_id,
            post=True,
        )

    def create_from_invoice_payment(
        self,
        payment: InvoicePaymentPosting,
        actor_id: UUID,
    ) -> JournalEntryInfo:
        """Dr cash on hand (cash) or cash in bank / Cr trade receivables.  Posted."""
        self._require_chart()
        accounts = self.posting_accounts
        cash_code = accounts.cash_on_hand if payment.is_cash else accounts.cash_in_bank
        return self.create_entry(
            JournalEntryInput(
                entry_date=payment.payment_date,
                description=(
                    f"Payment received for {payment.invoice_number} - {payment.customer_name}"
                ),
                lines=(
                    JournalLineInput(
                        account_code=cash_code,
                        debit=payment.amount,
                        description=f"Payment received - {payment.invoice_number}",
                    ),
                    JournalLineInput(
                        account_code=accounts.trade_receivables,
                        credit=payment.amount,
                        description=f"Clear AR - {payment.invoice_number}",
                    ),
                ),
                source=EntrySource.PAYMENT,
                source_id=payment.invoice_id,
                source_ref=payment.reference or payment.invoice_number,
            ),
            actor_id,
            post=True,
        )

    def create_from_payroll(self, payroll: PayrollPosting, actor_id: UUID) -> JournalEntryInfo:
        """
        Accrue a paid payroll run.  Posted, dated on the pay date.

        Dr salaries expense (gross) and INSS employer expense; Cr salaries
        payable (net), WIT payable, INSS employee and employer payables.
        Zero amounts produce no line.
        """
        self._require_chart()
        accounts = self.posting_accounts
        candidates = [
            (accounts.salaries_expense, payroll.total_gross, ZERO, "Gross salaries"),
            (accounts.inss_employer_expense, payroll.total_inss_employer, ZERO,
             "INSS employer contribution"),
            (accounts.salaries_payable, ZERO, payroll.total_net, "Net salaries payable"),
            (accounts.wit_payable, ZERO, payroll.total_wit, "Withholding Income Tax (WIT)"),
            (accounts.inss_employee_payable, ZERO, payroll.total_inss_employee,
             "INSS employee contribution"),
            (accounts.inss_employer_payable, ZERO, payroll.total_inss_employer,
             "INSS employer contribution"),
        ]
        lines = tuple(
            JournalLineInput(account_code=code, debit=debit, credit=credit, description=text)
            for code, debit, credit, text in candidates
            if debit > 0 or credit > 0
        )
        return self.create_entry(
            JournalEntryInput(
                entry_date=payroll.pay_date,
                description=f"Payroll for {payroll.period_start} to {payroll.period_end}",
                lines=lines,
                source=EntrySource.PAYROLL,
                source_id=payroll.payroll_run_id,
                source_ref=f"Payroll Run - {payroll.employee_count} employees",
            ),
            actor_id,
            post=True,
        )


def entries_net_to_zero(entries: Sequence[JournalEntryInfo]) -> bool:
    """True when the combined lines of ``entries`` net to zero on every account."""
    net: dict[str, Decimal] = {}
    for entry in entries:
        for line in entry.lines:
            net[line.account_code] = net.get(line.account_code, ZERO) + line.debit - line.credit
    return all(v == 0 for v in net.values())

