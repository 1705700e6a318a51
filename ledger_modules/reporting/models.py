"""
Financial Reporting Domain Models (``ledger_modules.reporting.models``).

Responsibility
--------------
Frozen value objects for the statements the reporting service returns:
trial balance, income statement and balance sheet.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields are ``Decimal`` rounded to cents.
* ``is_balanced`` is computed from the totals, never stored, so it
  cannot disagree with them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.money import within_tolerance


class ReportType(str, Enum):
    TRIAL_BALANCE = "trial_balance"
    INCOME_STATEMENT = "income_statement"
    BALANCE_SHEET = "balance_sheet"


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every financial report."""

    report_type: ReportType
    entity_name: str
    currency: str
    fiscal_year: int
    generated_at: datetime
    as_of_date: date | None = None
    period_start: date | None = None
    period_end: date | None = None


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceRow:
    """
    One account in the trial balance.

    Each pair (opening, period, closing) shows a net amount on one side
    only.  ``debit_balance`` / ``credit_balance`` are the closing pair.
    """

    account_id: UUID
    account_code: str
    account_name: str
    account_type: str
    opening_debit: Decimal
    opening_credit: Decimal
    period_debit: Decimal
    period_credit: Decimal
    debit_balance: Decimal
    credit_balance: Decimal


@dataclass(frozen=True)
class TrialBalanceReport:
    metadata: ReportMetadata
    as_of_date: date
    fiscal_year: int
    fiscal_period: int
    rows: tuple[TrialBalanceRow, ...]
    total_debit: Decimal
    total_credit: Decimal

    @property
    def is_balanced(self) -> bool:
        return within_tolerance(self.total_debit, self.total_credit)


# =========================================================================
# Income Statement and Balance Sheet
# =========================================================================


@dataclass(frozen=True)
class StatementRow:
    """
    One line of a statement, signed so its natural direction is positive.

    ``account_id`` is None for derived rows such as current year
    earnings.
    """

    account_id: UUID | None
    account_code: str
    account_name: str
    account_type: str
    amount: Decimal


@dataclass(frozen=True)
class IncomeStatementReport:
    metadata: ReportMetadata
    period_start: date
    period_end: date
    fiscal_year: int
    revenue_rows: tuple[StatementRow, ...]
    total_revenue: Decimal
    expense_rows: tuple[StatementRow, ...]
    total_expenses: Decimal
    net_income: Decimal

    @property
    def net_income_label(self) -> str:
        return "Net Profit" if self.net_income >= 0 else "Net Loss"


@dataclass(frozen=True)
class BalanceSheetReport:
    metadata: ReportMetadata
    as_of_date: date
    fiscal_year: int
    asset_rows: tuple[StatementRow, ...]
    total_assets: Decimal
    liability_rows: tuple[StatementRow, ...]
    total_liabilities: Decimal
    equity_rows: tuple[StatementRow, ...]
    total_equity: Decimal

    @property
    def total_liabilities_and_equity(self) -> Decimal:
        return self.total_liabilities + self.total_equity

    @property
    def is_balanced(self) -> bool:
        return within_tolerance(self.total_assets, self.total_liabilities_and_equity)
