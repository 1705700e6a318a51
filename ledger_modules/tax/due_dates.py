"""
Statutory due dates for WIT and INSS obligations.

Responsibility:
    Turns a reporting period (``"YYYY-MM"`` or ``"YYYY"``) into its
    statutory deadline: the rule date (``base_*``) and the rule date
    moved to the next business day by a ``HolidayCalendar``.

Invariants enforced:
    - Monthly WIT: the 15th of the month after the period.
    - INSS statement: the 10th; INSS payment: the 20th of the month
      after the period.
    - Annual WIT: 31 March of the year after the tax year.
    - Day numbers come from the jurisdiction pack's ``DueDateRules``.

Failure modes:
    - ``InvalidTaxPeriodError`` for a period string of the wrong shape.
"""

from __future__ import annotations

import calendar
import re
from datetime import date

from ledger_config import DueDateRules
from ledger_kernel.exceptions import InvalidTaxPeriodError
from ledger_modules.tax.holidays import HolidayCalendar
from ledger_modules.tax.models import TaxFilingType

_MONTH_PERIOD = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
_YEAR_PERIOD = re.compile(r"^\d{4}$")


def parse_month_period(period: str) -> tuple[int, int]:
    match = _MONTH_PERIOD.match(period or "")
    if match is None:
        raise InvalidTaxPeriodError(period, "YYYY-MM")
    return int(match.group(1)), int(match.group(2))


def parse_year_period(period: str) -> int:
    if _YEAR_PERIOD.match(period or "") is None:
        raise InvalidTaxPeriodError(period, "YYYY")
    return int(period)


def validate_period(filing_type: TaxFilingType, period: str) -> None:
    if filing_type == TaxFilingType.ANNUAL_WIT:
        parse_year_period(period)
    else:
        parse_month_period(period)


def format_period(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def shift_period(year: int, month: int, months: int) -> tuple[int, int]:
    """(year, month) moved by ``months``, which may be negative."""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def period_bounds(period: str) -> tuple[date, date]:
    """First and last day of a ``"YYYY-MM"`` period."""
    year, month = parse_month_period(period)
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def days_until_due(due: date, today: date) -> int:
    """Whole days from ``today`` to ``due``; negative once past due."""
    return (due - today).days


class DueDateCalculator:
    """
    Holiday-adjusted statutory deadlines.

    Contract:
        ``calendar`` supplies the tenant's holiday overrides; without one
        only weekends and national holidays move a date.
    """

    def __init__(self, calendar: HolidayCalendar, rules: DueDateRules | None = None):
        self.calendar = calendar
        self.rules = rules or calendar.jurisdiction.due_dates

    def _following_month(self, period: str, day: int) -> date:
        year, month = shift_period(*parse_month_period(period), 1)
        return date(year, month, day)

    def base_monthly_wit_due(self, period: str) -> date:
        return self._following_month(period, self.rules.monthly_wit_day)

    def base_inss_statement_due(self, period: str) -> date:
        return self._following_month(period, self.rules.inss_statement_day)

    def base_inss_payment_due(self, period: str) -> date:
        return self._following_month(period, self.rules.inss_payment_day)

    def base_annual_wit_due(self, tax_year: int) -> date:
        return date(tax_year + 1, self.rules.annual_wit_month, self.rules.annual_wit_day)

    def monthly_wit_due(self, period: str) -> date:
        return self.calendar.adjust(self.base_monthly_wit_due(period))

    def inss_statement_due(self, period: str) -> date:
        return self.calendar.adjust(self.base_inss_statement_due(period))

    def inss_payment_due(self, period: str) -> date:
        return self.calendar.adjust(self.base_inss_payment_due(period))

    def annual_wit_due(self, tax_year: int) -> date:
        return self.calendar.adjust(self.base_annual_wit_due(tax_year))

    def due_date_for(self, filing_type: TaxFilingType, period: str) -> date:
        """Deadline a stored filing is tracked against (INSS: the statement)."""
        if filing_type == TaxFilingType.MONTHLY_WIT:
            return self.monthly_wit_due(period)
        if filing_type == TaxFilingType.ANNUAL_WIT:
            return self.annual_wit_due(parse_year_period(period))
        return self.inss_statement_due(period)
