"""
Money helpers -- Decimal rounding for a single-currency (USD) ledger.

Timor-Leste uses the US dollar, so every amount is a ``Decimal`` with
two fractional digits.  Rounding is half-up ("round half away from
zero" for positives), which matches how payroll figures are rounded
upstream.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0")

# Two totals are "equal" for trial-balance and balance-sheet checks when
# they differ by strictly less than one cent.
BALANCE_TOLERANCE = Decimal("0.01")


def to_decimal(value: Decimal | int | str | float | None) -> Decimal:
    """Coerce a numeric input to Decimal (floats go through ``str``)."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Decimal | int | str | float | None) -> Decimal:
    """Round to cents, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def within_tolerance(a: Decimal, b: Decimal) -> bool:
    """True when |a - b| < one cent."""
    return abs(a - b) < BALANCE_TOLERANCE
