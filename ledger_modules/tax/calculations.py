"""
Pure WIT and INSS calculations.

Responsibility:
    Wage Income Tax and social security contribution arithmetic for
    Timor-Leste payroll.  Rates and the resident threshold come from the
    jurisdiction pack (``ledger_config``), never from literals here.

Architecture position:
    ledger_modules -- pure functions.  ZERO I/O.

Invariants enforced:
    - Decimal in, Decimal out; every result is rounded half-up to cents.
    - WIT for a resident is levied only on the part of monthly gross
      wages above the threshold, floored at zero.  Non-residents pay on
      the full gross.
    - INSS: employee and employer contributions are separate rates on
      the same contribution base.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

from ledger_config import TaxRates, get_jurisdiction
from ledger_kernel.domain.money import ZERO, round_money, to_decimal


@lru_cache(maxsize=1)
def default_rates() -> TaxRates:
    """Timor-Leste rates from the bundled jurisdiction pack."""
    return get_jurisdiction("TL").tax


@dataclass(frozen=True)
class WITResult:
    taxable_wages: Decimal
    wit: Decimal


@dataclass(frozen=True)
class INSSResult:
    contribution_base: Decimal
    employee_contribution: Decimal
    employer_contribution: Decimal

    @property
    def total_contribution(self) -> Decimal:
        return self.employee_contribution + self.employer_contribution


def calculate_wit(
    gross_wages: Decimal,
    is_resident: bool,
    rates: TaxRates | None = None,
) -> WITResult:
    """
    Monthly WIT on ``gross_wages``.

    >>> calculate_wit(Decimal("800"), True).wit
    Decimal('30.00')
    """
    rates = rates or default_rates()
    gross = to_decimal(gross_wages)
    if is_resident:
        taxable = max(ZERO, gross - rates.wit_resident_monthly_threshold)
    else:
        taxable = max(ZERO, gross)
    return WITResult(
        taxable_wages=round_money(taxable),
        wit=round_money(taxable * rates.wit_rate),
    )


def calculate_inss(
    contribution_base: Decimal,
    rates: TaxRates | None = None,
) -> INSSResult:
    rates = rates or default_rates()
    base = round_money(contribution_base)
    return INSSResult(
        contribution_base=base,
        employee_contribution=round_money(base * rates.inss_employee_rate),
        employer_contribution=round_money(base * rates.inss_employer_rate),
    )


def contribution_base_from_employee_inss(
    employee_contribution: Decimal,
    rates: TaxRates | None = None,
) -> Decimal:
    """
    Reconstruct the INSS base from the employee contribution.

    Lossy: the contribution was rounded to cents, so the base can be off
    by up to half a cent divided by the rate (12.5 cents at 4%).  Payroll
    systems that store the base should pass it on ``PayrollRecord``
    instead.
    """
    rates = rates or default_rates()
    if rates.inss_employee_rate == 0:
        return ZERO
    return round_money(to_decimal(employee_contribution) / rates.inss_employee_rate)
