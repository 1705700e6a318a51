"""
DTOs -- Pure domain data transfer objects for the ledger.

Responsibility:
    Defines the enums and immutable structures that cross the service
    boundary: account definitions and snapshots, journal entry inputs
    and snapshots (with their closed Draft / Posted / Void state
    variant), and fiscal year / period snapshots.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Services convert ORM rows to
    these DTOs before returning them; callers never receive ORM entities.

Invariants enforced:
    - Every sub-type belongs to exactly one account type
      (``SUB_TYPES_BY_TYPE``).
    - A ``VoidState`` always names the reversal entry that neutralised
      the original.  There is no way to construct a void snapshot
      without one.
    - ``JournalLineInput`` rejects negative amounts at construction.

Failure modes:
    - ValueError on a negative line amount or an empty description.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Union
from uuid import UUID

from ledger_kernel.domain.money import ZERO

# =============================================================================
# Chart of accounts
# =============================================================================


class AccountType(str, Enum):
    """Top-level account classification."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class AccountSubType(str, Enum):
    """Finer classification; each member belongs to one AccountType."""

    # Assets
    CASH = "cash"
    BANK = "bank"
    ACCOUNTS_RECEIVABLE = "accounts_receivable"
    INVENTORY = "inventory"
    PREPAID_EXPENSE = "prepaid_expense"
    FIXED_ASSET = "fixed_asset"
    ACCUMULATED_DEPRECIATION = "accumulated_depreciation"
    OTHER_ASSET = "other_asset"
    # Liabilities
    ACCOUNTS_PAYABLE = "accounts_payable"
    ACCRUED_EXPENSE = "accrued_expense"
    SALARIES_PAYABLE = "salaries_payable"
    TAX_PAYABLE = "tax_payable"
    INSS_PAYABLE = "inss_payable"
    LOANS_PAYABLE = "loans_payable"
    OTHER_LIABILITY = "other_liability"
    # Equity
    SHARE_CAPITAL = "share_capital"
    RETAINED_EARNINGS = "retained_earnings"
    OWNER_EQUITY = "owner_equity"
    DIVIDENDS = "dividends"
    # Revenue
    SERVICE_REVENUE = "service_revenue"
    SALES_REVENUE = "sales_revenue"
    INTEREST_INCOME = "interest_income"
    OTHER_INCOME = "other_income"
    # Expenses
    SALARY_EXPENSE = "salary_expense"
    INSS_EXPENSE = "inss_expense"
    RENT_EXPENSE = "rent_expense"
    UTILITIES_EXPENSE = "utilities_expense"
    OFFICE_SUPPLIES = "office_supplies"
    DEPRECIATION_EXPENSE = "depreciation_expense"
    TAX_EXPENSE = "tax_expense"
    OTHER_EXPENSE = "other_expense"


S = AccountSubType

SUB_TYPES_BY_TYPE: dict[AccountType, frozenset[AccountSubType]] = {
    AccountType.ASSET: frozenset({
        S.CASH, S.BANK, S.ACCOUNTS_RECEIVABLE, S.INVENTORY,
        S.PREPAID_EXPENSE, S.FIXED_ASSET, S.ACCUMULATED_DEPRECIATION,
        S.OTHER_ASSET,
    }),
    AccountType.LIABILITY: frozenset({
        S.ACCOUNTS_PAYABLE, S.ACCRUED_EXPENSE, S.SALARIES_PAYABLE,
        S.TAX_PAYABLE, S.INSS_PAYABLE, S.LOANS_PAYABLE, S.OTHER_LIABILITY,
    }),
    AccountType.EQUITY: frozenset({
        S.SHARE_CAPITAL, S.RETAINED_EARNINGS, S.OWNER_EQUITY, S.DIVIDENDS,
    }),
    AccountType.REVENUE: frozenset({
        S.SERVICE_REVENUE, S.SALES_REVENUE, S.INTEREST_INCOME, S.OTHER_INCOME,
    }),
    AccountType.EXPENSE: frozenset({
        S.SALARY_EXPENSE, S.INSS_EXPENSE, S.RENT_EXPENSE,
        S.UTILITIES_EXPENSE, S.OFFICE_SUPPLIES, S.DEPRECIATION_EXPENSE,
        S.TAX_EXPENSE, S.OTHER_EXPENSE,
    }),
}

del S


class NormalBalance(str, Enum):
    """Side on which an account's balance naturally increases."""

    DEBIT = "debit"
    CREDIT = "credit"


def normal_balance_for(
    account_type: AccountType,
    sub_type: AccountSubType | None = None,
) -> NormalBalance:
    """
    Natural side of an account.

    Assets and expenses are debit-normal, liabilities, equity and revenue
    credit-normal.  Contra accounts flip: accumulated depreciation is a
    credit-normal asset, dividends a debit-normal equity account.
    """
    if account_type == AccountType.ASSET:
        if sub_type == AccountSubType.ACCUMULATED_DEPRECIATION:
            return NormalBalance.CREDIT
        return NormalBalance.DEBIT
    if account_type == AccountType.EXPENSE:
        return NormalBalance.DEBIT
    if account_type == AccountType.EQUITY and sub_type == AccountSubType.DIVIDENDS:
        return NormalBalance.DEBIT
    return NormalBalance.CREDIT


def is_sub_type_valid(account_type: AccountType, sub_type: AccountSubType) -> bool:
    """Check that ``sub_type`` belongs to ``account_type``."""
    return sub_type in SUB_TYPES_BY_TYPE[account_type]


@dataclass(frozen=True)
class AccountDefinition:
    """Input for creating an account."""

    code: str
    name: str
    account_type: AccountType
    sub_type: AccountSubType
    parent_code: str | None = None
    name_tl: str | None = None
    description: str | None = None
    is_system: bool = False
    tax_code: str | None = None


@dataclass(frozen=True)
class AccountPatch:
    """Partial update for an account.  ``None`` means "leave unchanged"."""

    name: str | None = None
    name_tl: str | None = None
    description: str | None = None
    account_type: AccountType | None = None
    sub_type: AccountSubType | None = None
    is_active: bool | None = None
    tax_code: str | None = None


@dataclass(frozen=True)
class AccountFilter:
    """Criteria for listing accounts; unset fields match everything."""

    account_type: AccountType | None = None
    sub_type: AccountSubType | None = None
    is_active: bool | None = None
    parent_code: str | None = None


@dataclass(frozen=True)
class AccountInfo:
    """Immutable snapshot of an account."""

    id: UUID
    code: str
    name: str
    account_type: AccountType
    sub_type: AccountSubType
    normal_balance: NormalBalance
    level: int
    is_system: bool
    is_active: bool
    parent_code: str | None = None
    name_tl: str | None = None
    description: str | None = None
    tax_code: str | None = None


# =============================================================================
# Journal entries
# =============================================================================


class EntryStatus(str, Enum):
    """Lifecycle status of a journal entry."""

    DRAFT = "draft"
    POSTED = "posted"
    VOID = "void"


class EntrySource(str, Enum):
    """What produced the entry."""

    MANUAL = "manual"
    INVOICE = "invoice"
    PAYMENT = "payment"
    PAYROLL = "payroll"
    OPENING = "opening"
    REVERSAL = "reversal"
    ADJUSTMENT = "adjustment"
    CLOSING = "closing"


@dataclass(frozen=True)
class JournalLineInput:
    """One side of a proposed journal entry line."""

    account_code: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str | None = None
    department_id: str | None = None
    employee_id: str | None = None
    project_id: str | None = None

    def __post_init__(self) -> None:
        if self.debit < 0 or self.credit < 0:
            raise ValueError(
                f"Line amounts must be non-negative (account {self.account_code})"
            )


@dataclass(frozen=True)
class JournalEntryInput:
    """Input for ``JournalService.create_entry``."""

    entry_date: date
    description: str
    lines: tuple[JournalLineInput, ...]
    source: EntrySource = EntrySource.MANUAL
    source_id: str | None = None
    source_ref: str | None = None

    def __post_init__(self) -> None:
        if not self.description or not self.description.strip():
            raise ValueError("Journal entry description cannot be empty")
        # Accept any sequence from callers but store a tuple.
        object.__setattr__(self, "lines", tuple(self.lines))


@dataclass(frozen=True)
class JournalLineInfo:
    """Posted-shape snapshot of a journal line."""

    line_number: int
    account_id: UUID
    account_code: str
    account_name: str
    debit: Decimal
    credit: Decimal
    description: str | None = None
    department_id: str | None = None
    employee_id: str | None = None
    project_id: str | None = None


@dataclass(frozen=True)
class DraftState:
    """Entry is editable and invisible to the general ledger."""

    status: ClassVar[EntryStatus] = EntryStatus.DRAFT


@dataclass(frozen=True)
class PostedState:
    """Entry is part of the ledger and immutable."""

    posted_at: datetime
    posted_by_id: UUID

    status: ClassVar[EntryStatus] = EntryStatus.POSTED


@dataclass(frozen=True)
class VoidState:
    """Entry was neutralised by ``reversal_entry_id``."""

    posted_at: datetime
    posted_by_id: UUID
    voided_at: datetime
    voided_by_id: UUID
    reason: str
    reversal_entry_id: UUID

    status: ClassVar[EntryStatus] = EntryStatus.VOID


EntryState = Union[DraftState, PostedState, VoidState]


@dataclass(frozen=True)
class JournalEntryInfo:
    """Immutable snapshot of a journal entry and its lines."""

    id: UUID
    entry_number: str
    entry_date: date
    description: str
    source: EntrySource
    fiscal_year: int
    fiscal_period: int
    total_debit: Decimal
    total_credit: Decimal
    state: EntryState
    lines: tuple[JournalLineInfo, ...] = field(default_factory=tuple)
    source_id: str | None = None
    source_ref: str | None = None
    reverses_entry_id: UUID | None = None
    created_by_id: UUID | None = None

    @property
    def status(self) -> EntryStatus:
        return self.state.status

    @property
    def is_posted(self) -> bool:
        return self.state.status == EntryStatus.POSTED

    @property
    def is_void(self) -> bool:
        return self.state.status == EntryStatus.VOID


# =============================================================================
# Fiscal years and periods
# =============================================================================


class PeriodStatus(str, Enum):
    """Fiscal period lifecycle: OPEN <-> CLOSED -> LOCKED."""

    OPEN = "open"
    CLOSED = "closed"
    LOCKED = "locked"


class FiscalYearStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class FiscalPeriodInfo:
    """
    Immutable snapshot of a fiscal period.

    Non-goals:
        - Does NOT enforce period locks (PeriodService / JournalService do).
    """

    id: UUID
    fiscal_year_id: UUID
    year: int
    period_number: int
    start_date: date
    end_date: date
    status: PeriodStatus
    closed_at: datetime | None = None
    closed_by_id: UUID | None = None
    locked_at: datetime | None = None
    locked_by_id: UUID | None = None

    @property
    def period_code(self) -> str:
        return f"{self.year}-{self.period_number:02d}"

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN

    def contains_date(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date


@dataclass(frozen=True)
class FiscalYearInfo:
    """Immutable snapshot of a fiscal year with its periods in order."""

    id: UUID
    year: int
    status: FiscalYearStatus
    start_date: date
    end_date: date
    opening_balances_posted: bool
    opening_balance_entry_id: UUID | None = None
    periods: tuple[FiscalPeriodInfo, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EntryFilter:
    """Criteria for ``JournalService.list_entries``; unset fields match all."""

    status: EntryStatus | None = None
    source: EntrySource | None = None
    source_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    fiscal_year: int | None = None


# =============================================================================
# Posting shortcuts
# =============================================================================


@dataclass(frozen=True)
class InvoicePosting:
    """An invoice that has been sent and now becomes a receivable."""

    invoice_id: str
    invoice_number: str
    customer_name: str
    issue_date: date
    total: Decimal
    revenue_account_code: str | None = None


@dataclass(frozen=True)
class InvoicePaymentPosting:
    """Money received against an invoice."""

    invoice_id: str
    invoice_number: str
    customer_name: str
    payment_date: date
    amount: Decimal
    method: str
    reference: str | None = None

    @property
    def is_cash(self) -> bool:
        return self.method == "cash"


@dataclass(frozen=True)
class PayrollPosting:
    """
    Totals of one paid payroll run.

    ``total_net`` must equal gross minus WIT minus employee INSS for the
    resulting entry to balance.
    """

    payroll_run_id: str
    period_start: date
    period_end: date
    pay_date: date
    employee_count: int
    total_gross: Decimal
    total_net: Decimal
    total_wit: Decimal
    total_inss_employee: Decimal
    total_inss_employer: Decimal
