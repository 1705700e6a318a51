"""
Jurisdiction configuration schema (``ledger_config.schema``).

Frozen dataclasses produced by ``ledger_config.loader`` from a YAML
jurisdiction pack.  Plain strings are used for account types so this
layer has no dependency on the kernel; the chart-of-accounts service
converts and validates them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class TaxRates:
    """Statutory WIT and INSS rates."""

    wit_rate: Decimal
    wit_resident_monthly_threshold: Decimal
    inss_employee_rate: Decimal
    inss_employer_rate: Decimal

    def __post_init__(self):
        for name in (
            "wit_rate",
            "inss_employee_rate",
            "inss_employer_rate",
        ):
            value = getattr(self, name)
            if not Decimal("0") <= value < Decimal("1"):
                raise ValueError(f"{name} must be in [0, 1), got {value}")
        if self.wit_resident_monthly_threshold < 0:
            raise ValueError("wit_resident_monthly_threshold cannot be negative")


@dataclass(frozen=True)
class DueDateRules:
    """Day-of-month rules for statutory deadlines."""

    monthly_wit_day: int = 15
    inss_statement_day: int = 10
    inss_payment_day: int = 20
    annual_wit_month: int = 3
    annual_wit_day: int = 31
    max_adjustment_days: int = 14

    def __post_init__(self):
        for name in ("monthly_wit_day", "inss_statement_day", "inss_payment_day"):
            if not 1 <= getattr(self, name) <= 28:
                raise ValueError(f"{name} must be between 1 and 28")
        if not 1 <= self.annual_wit_month <= 12:
            raise ValueError("annual_wit_month must be between 1 and 12")
        if self.max_adjustment_days < 1:
            raise ValueError("max_adjustment_days must be positive")


@dataclass(frozen=True)
class FixedHoliday:
    month: int
    day: int
    name: str
    name_tl: str | None = None


@dataclass(frozen=True)
class EasterRelativeHoliday:
    offset_days: int
    name: str
    name_tl: str | None = None


@dataclass(frozen=True)
class DefaultAccount:
    """One row of the jurisdiction's default chart of accounts."""

    code: str
    name: str
    account_type: str
    sub_type: str
    is_system: bool = False
    parent_code: str | None = None
    name_tl: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class PostingAccounts:
    """Account codes used by the built-in posting shortcuts."""

    trade_receivables: str = "1210"
    cash_on_hand: str = "1110"
    cash_in_bank: str = "1120"
    default_revenue: str = "4100"
    salaries_expense: str = "5110"
    inss_employer_expense: str = "5150"
    salaries_payable: str = "2210"
    wit_payable: str = "2220"
    inss_employee_payable: str = "2230"
    inss_employer_payable: str = "2240"
    opening_balance_equity: str = "3200"


@dataclass(frozen=True)
class JurisdictionPack:
    """Everything jurisdiction-specific the ledger and tax engine need."""

    code: str
    name: str
    currency: str
    utc_offset_hours: int
    tax: TaxRates
    due_dates: DueDateRules
    fixed_holidays: tuple[FixedHoliday, ...]
    easter_holidays: tuple[EasterRelativeHoliday, ...]
    posting_accounts: PostingAccounts
    chart_of_accounts: tuple[DefaultAccount, ...] = field(default_factory=tuple)
    checksum: str = ""
