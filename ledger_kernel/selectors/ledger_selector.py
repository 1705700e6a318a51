"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: The general ledger -- per-account history with running
    balances and per-account aggregates, derived at query time from the
    lines of posted journal entries.  No balance is stored anywhere.
Architecture position: Kernel > Selectors.  Read by the reporting
    module and by callers that display account history.

Invariants enforced:
    - Entries that were ever posted contribute: status ``posted`` or
      ``void``.  Drafts are invisible.  A voided original keeps its lines
      on its own date and its reversal (posted, dated later) carries the
      neutralising lines, so balances as of any date before the reversal
      are unchanged and the pair nets to zero afterwards.
    - Running balances are signed by the account's normal side:
      debit - credit for debit-normal accounts, credit - debit otherwise.
    - Opening balance for a range = posted activity strictly before the
      range start.

Failure modes:
    - AccountNotFoundError when the account id is unknown for the tenant.

Audit relevance:
    This is the only read path the statements use, so a report can be
    reproduced from the journal alone.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterator
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import (
    AccountSubType,
    AccountType,
    EntryStatus,
    NormalBalance,
    normal_balance_for,
)
from ledger_kernel.domain.money import ZERO, to_decimal
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 500

# A voided entry stays in the ledger; its reversal offsets it
LEDGER_STATUSES = (EntryStatus.POSTED.value, EntryStatus.VOID.value)


@dataclass(frozen=True)
class LedgerLine:
    """One posted line of an account's history."""

    entry_date: date
    entry_id: UUID
    entry_number: str
    line_number: int
    description: str
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class AccountBalance:
    """Posted debit and credit totals of one account over a window."""

    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType
    sub_type: AccountSubType
    is_active: bool
    debit_total: Decimal
    credit_total: Decimal

    @property
    def normal_balance(self) -> NormalBalance:
        return normal_balance_for(self.account_type, self.sub_type)

    @property
    def net_debit(self) -> Decimal:
        """debit - credit, regardless of the normal side."""
        return self.debit_total - self.credit_total

    @property
    def balance(self) -> Decimal:
        """Balance signed by the normal side (positive = natural)."""
        if self.normal_balance == NormalBalance.DEBIT:
            return self.net_debit
        return -self.net_debit


def _signed(normal: NormalBalance, debit: Decimal, credit: Decimal) -> Decimal:
    return debit - credit if normal == NormalBalance.DEBIT else credit - debit


class LedgerSelector(BaseSelector):
    """
    General ledger queries.

    Contract:
        All methods filter by tenant and to entries in ``LEDGER_STATUSES``.

    Guarantees:
        - ``get_entries_for_account`` is lazy and finite: it fetches
          ``page_size`` rows at a time with a keyset on
          (entry_date, sequence_number, line_number).  Each call starts a new
          iteration from the beginning of the range.
        - Amounts are ``Decimal``.

    Non-goals:
        - Does NOT filter by dimension (department, employee, project).
    """

    def __init__(self, session: Session, tenant_id: str, page_size: int = DEFAULT_PAGE_SIZE):
        super().__init__(session, tenant_id)
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.page_size = page_size

    def _posted(self):
        return and_(
            JournalEntry.tenant_id == self.tenant_id,
            JournalEntry.status.in_(LEDGER_STATUSES),
        )

    def _account(self, account_id: UUID) -> Account:
        account = self.session.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.id == account_id,
            )
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def _totals(
        self,
        account_id: UUID,
        start: date | None = None,
        end: date | None = None,
        before: date | None = None,
    ) -> tuple[Decimal, Decimal]:
        stmt = (
            select(
                func.coalesce(func.sum(JournalLine.debit), ZERO),
                func.coalesce(func.sum(JournalLine.credit), ZERO),
            )
            .select_from(JournalLine)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(self._posted(), JournalLine.account_id == account_id)
        )
        if start is not None:
            stmt = stmt.where(JournalEntry.entry_date >= start)
        if end is not None:
            stmt = stmt.where(JournalEntry.entry_date <= end)
        if before is not None:
            stmt = stmt.where(JournalEntry.entry_date < before)
        debit, credit = self.session.execute(stmt).one()
        return to_decimal(debit), to_decimal(credit)

    def opening_balance(self, account_id: UUID, before: date) -> Decimal:
        """Posted balance of the account strictly before ``before``."""
        account = self._account(account_id)
        debit, credit = self._totals(account_id, before=before)
        return _signed(account.normal_balance, debit, credit)

    def current_balance(self, account_id: UUID, as_of: date | None = None) -> Decimal:
        """Posted balance of the account on or before ``as_of`` (all time if None)."""
        account = self._account(account_id)
        debit, credit = self._totals(account_id, end=as_of)
        return _signed(account.normal_balance, debit, credit)

    def get_entries_for_account(
        self,
        account_id: UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> Iterator[LedgerLine]:
        """
        Yield the account's posted lines in [start, end] with running balances.

        Raises:
            AccountNotFoundError: Unknown account.
            ValueError: ``start`` after ``end``.

        Both are raised on the first ``next()``, as for any generator.
        """
        if start is not None and end is not None and start > end:
            raise ValueError(f"start {start} is after end {end}")

        account = self._account(account_id)
        normal = account.normal_balance
        running = ZERO
        if start is not None:
            debit, credit = self._totals(account_id, before=start)
            running = _signed(normal, debit, credit)

        base = (
            select(
                JournalEntry.entry_date,
                JournalEntry.id,
                JournalEntry.entry_number,
                JournalEntry.sequence_number,
                JournalEntry.description,
                JournalLine.line_number,
                JournalLine.description,
                JournalLine.debit,
                JournalLine.credit,
            )
            .select_from(JournalLine)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(self._posted(), JournalLine.account_id == account_id)
        )
        if start is not None:
            base = base.where(JournalEntry.entry_date >= start)
        if end is not None:
            base = base.where(JournalEntry.entry_date <= end)
        base = base.order_by(
            JournalEntry.entry_date, JournalEntry.sequence_number, JournalLine.line_number
        )

        cursor: tuple[date, int, int] | None = None
        while True:
            stmt = base
            if cursor is not None:
                last_date, last_sequence, last_line = cursor
                stmt = stmt.where(
                    or_(
                        JournalEntry.entry_date > last_date,
                        and_(
                            JournalEntry.entry_date == last_date,
                            or_(
                                JournalEntry.sequence_number > last_sequence,
                                and_(
                                    JournalEntry.sequence_number == last_sequence,
                                    JournalLine.line_number > last_line,
                                ),
                            ),
                        ),
                    )
                )
            rows = self.session.execute(stmt.limit(self.page_size)).all()
            for (entry_date, entry_id, entry_number, sequence_number, entry_desc,
                 line_number, line_desc, debit, credit) in rows:
                running += _signed(normal, debit, credit)
                yield LedgerLine(
                    entry_date=entry_date,
                    entry_id=entry_id,
                    entry_number=entry_number,
                    line_number=line_number,
                    description=line_desc or entry_desc,
                    debit=debit,
                    credit=credit,
                    running_balance=running,
                )
            if len(rows) < self.page_size:
                return
            last = rows[-1]
            cursor = (last[0], last[3], last[5])

    def account_balances(
        self,
        as_of: date | None = None,
        since: date | None = None,
        before: date | None = None,
    ) -> list[AccountBalance]:
        """
        Posted debit/credit totals per account, ordered by account code.

        Args:
            as_of: Include entries dated on or before this date.
            since: Include entries dated on or after this date.
            before: Include entries dated strictly before this date.

        Only accounts with at least one posted line in the window appear.
        """
        debit_sum = func.sum(JournalLine.debit).label("debit_total")
        credit_sum = func.sum(JournalLine.credit).label("credit_total")
        stmt = (
            select(
                Account.id,
                Account.code,
                Account.name,
                Account.account_type,
                Account.sub_type,
                Account.is_active,
                debit_sum,
                credit_sum,
            )
            .select_from(JournalLine)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .join(Account, JournalLine.account_id == Account.id)
            .where(self._posted())
            .group_by(
                Account.id,
                Account.code,
                Account.name,
                Account.account_type,
                Account.sub_type,
                Account.is_active,
            )
            .order_by(Account.code)
        )
        if as_of is not None:
            stmt = stmt.where(JournalEntry.entry_date <= as_of)
        if since is not None:
            stmt = stmt.where(JournalEntry.entry_date >= since)
        if before is not None:
            stmt = stmt.where(JournalEntry.entry_date < before)

        return [
            AccountBalance(
                account_id=row.id,
                account_code=row.code,
                account_name=row.name,
                account_type=AccountType(row.account_type),
                sub_type=AccountSubType(row.sub_type),
                is_active=row.is_active,
                debit_total=to_decimal(row.debit_total),
                credit_total=to_decimal(row.credit_total),
            )
            for row in self.session.execute(stmt).all()
        ]

    def total_debits_credits(self, as_of: date | None = None) -> tuple[Decimal, Decimal]:
        """Sum of all posted debits and credits; equal in a healthy ledger."""
        stmt = (
            select(
                func.coalesce(func.sum(JournalLine.debit), ZERO),
                func.coalesce(func.sum(JournalLine.credit), ZERO),
            )
            .select_from(JournalLine)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(self._posted())
        )
        if as_of is not None:
            stmt = stmt.where(JournalEntry.entry_date <= as_of)
        debit, credit = self.session.execute(stmt).one()
        return to_decimal(debit), to_decimal(credit)
