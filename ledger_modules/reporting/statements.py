"""
Pure financial statement transformation functions.

These functions turn account snapshots and per-account net amounts
(debit minus credit, as produced from ``LedgerSelector.account_balances``)
into the report models.  ZERO I/O.  ZERO side effects.

Sign conventions:
    - Trial balance: a positive net shows on the debit side, a negative
      one on the credit side.
    - Income statement: revenue is shown negated (credit-natural),
      expenses as-is.
    - Balance sheet: assets as-is, liabilities and equity negated.
      Revenue and expense accounts do not appear individually; their
      unclosed balances become the derived earnings rows in equity.
"""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping, Sequence
from uuid import UUID

from ledger_kernel.domain.dtos import AccountInfo, AccountType
from ledger_kernel.domain.money import BALANCE_TOLERANCE, ZERO, round_money
from ledger_kernel.selectors.ledger_selector import AccountBalance
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    IncomeStatementReport,
    ReportMetadata,
    StatementRow,
    TrialBalanceReport,
    TrialBalanceRow,
)

# =========================================================================
# Helpers
# =========================================================================


def net_by_account(balances: Iterable[AccountBalance]) -> dict[UUID, Decimal]:
    """Map account id -> debit minus credit."""
    return {b.account_id: b.net_debit for b in balances}


def is_zero(amount: Decimal) -> bool:
    return abs(amount) < BALANCE_TOLERANCE


def split_net(net: Decimal) -> tuple[Decimal, Decimal]:
    """Net debit amount -> (debit, credit) with one side zero."""
    net = round_money(net)
    if net > 0:
        return net, ZERO
    return ZERO, -net if net < 0 else ZERO


def _visible(
    accounts: Sequence[AccountInfo],
    config: ReportingConfig,
    *nets: Mapping[UUID, Decimal],
) -> list[AccountInfo]:
    """Active accounts, plus inactive ones that still carry an amount in ``nets``."""
    def carries_amount(account: AccountInfo) -> bool:
        return any(not is_zero(n.get(account.id, ZERO)) for n in nets)

    return sorted(
        (
            a for a in accounts
            if a.is_active or config.include_inactive or carries_amount(a)
        ),
        key=lambda a: a.code,
    )


def _row(account: AccountInfo, amount: Decimal) -> StatementRow:
    return StatementRow(
        account_id=account.id,
        account_code=account.code,
        account_name=account.name,
        account_type=account.account_type.value,
        amount=round_money(amount),
    )


def _total(rows: Iterable[StatementRow]) -> Decimal:
    return round_money(sum((r.amount for r in rows), ZERO))


def _earnings(
    accounts: Sequence[AccountInfo],
    net: Mapping[UUID, Decimal],
) -> Decimal:
    """Revenue minus expenses from net debit amounts."""
    revenue = ZERO
    expenses = ZERO
    for account in accounts:
        amount = net.get(account.id, ZERO)
        if account.account_type == AccountType.REVENUE:
            revenue -= amount
        elif account.account_type == AccountType.EXPENSE:
            expenses += amount
    return round_money(revenue - expenses)


# =========================================================================
# Builders
# =========================================================================


def build_trial_balance(
    accounts: Sequence[AccountInfo],
    opening_net: Mapping[UUID, Decimal],
    period_net: Mapping[UUID, Decimal],
    metadata: ReportMetadata,
    as_of_date: date,
    fiscal_year: int,
    config: ReportingConfig,
) -> TrialBalanceReport:
    """
    Trial balance with opening, period and closing columns.

    An account is listed when any of its three nets is non-zero (or
    always, with ``include_zero_balances``).  Totals are over the closing
    columns.
    """
    rows: list[TrialBalanceRow] = []
    for account in _visible(accounts, config, opening_net, period_net):
        opening = round_money(opening_net.get(account.id, ZERO))
        period = round_money(period_net.get(account.id, ZERO))
        closing = opening + period
        if (
            not config.include_zero_balances
            and is_zero(opening) and is_zero(period) and is_zero(closing)
        ):
            continue

        opening_debit, opening_credit = split_net(opening)
        period_debit, period_credit = split_net(period)
        closing_debit, closing_credit = split_net(closing)
        rows.append(
            TrialBalanceRow(
                account_id=account.id,
                account_code=account.code,
                account_name=account.name,
                account_type=account.account_type.value,
                opening_debit=opening_debit,
                opening_credit=opening_credit,
                period_debit=period_debit,
                period_credit=period_credit,
                debit_balance=closing_debit,
                credit_balance=closing_credit,
            )
        )

    return TrialBalanceReport(
        metadata=metadata,
        as_of_date=as_of_date,
        fiscal_year=fiscal_year,
        fiscal_period=as_of_date.month,
        rows=tuple(rows),
        total_debit=round_money(sum((r.debit_balance for r in rows), ZERO)),
        total_credit=round_money(sum((r.credit_balance for r in rows), ZERO)),
    )


def build_income_statement(
    accounts: Sequence[AccountInfo],
    period_net: Mapping[UUID, Decimal],
    metadata: ReportMetadata,
    period_start: date,
    period_end: date,
    fiscal_year: int,
    config: ReportingConfig,
) -> IncomeStatementReport:
    """Revenue and expense activity over [period_start, period_end]."""
    revenue_rows: list[StatementRow] = []
    expense_rows: list[StatementRow] = []
    for account in _visible(accounts, config, period_net):
        if account.account_type not in (AccountType.REVENUE, AccountType.EXPENSE):
            continue
        net = period_net.get(account.id, ZERO)
        if is_zero(net) and not config.include_zero_balances:
            continue
        if account.account_type == AccountType.REVENUE:
            revenue_rows.append(_row(account, -net))
        else:
            expense_rows.append(_row(account, net))

    total_revenue = _total(revenue_rows)
    total_expenses = _total(expense_rows)
    return IncomeStatementReport(
        metadata=metadata,
        period_start=period_start,
        period_end=period_end,
        fiscal_year=fiscal_year,
        revenue_rows=tuple(revenue_rows),
        total_revenue=total_revenue,
        expense_rows=tuple(expense_rows),
        total_expenses=total_expenses,
        net_income=total_revenue - total_expenses,
    )


def build_balance_sheet(
    accounts: Sequence[AccountInfo],
    cumulative_net: Mapping[UUID, Decimal],
    fiscal_year_net: Mapping[UUID, Decimal],
    prior_years_net: Mapping[UUID, Decimal],
    metadata: ReportMetadata,
    as_of_date: date,
    fiscal_year: int,
    config: ReportingConfig,
) -> BalanceSheetReport:
    """
    Balance sheet as of a date.

    Args:
        cumulative_net: All posted activity up to ``as_of_date``.
        fiscal_year_net: Activity from the fiscal year start to
            ``as_of_date``; its revenue and expense become current year
            earnings.
        prior_years_net: Activity before the fiscal year start; its
            revenue and expense (anything not yet closed to retained
            earnings) become prior years earnings.
    """
    asset_rows: list[StatementRow] = []
    liability_rows: list[StatementRow] = []
    equity_rows: list[StatementRow] = []
    visible = _visible(
        accounts, config, cumulative_net, fiscal_year_net, prior_years_net
    )

    for account in visible:
        if account.account_type in (AccountType.REVENUE, AccountType.EXPENSE):
            continue
        net = cumulative_net.get(account.id, ZERO)
        if is_zero(net) and not config.include_zero_balances:
            continue
        if account.account_type == AccountType.ASSET:
            asset_rows.append(_row(account, net))
        elif account.account_type == AccountType.LIABILITY:
            liability_rows.append(_row(account, -net))
        else:
            equity_rows.append(_row(account, -net))

    for label, amount in (
        (config.prior_years_earnings_label, _earnings(visible, prior_years_net)),
        (config.current_year_earnings_label, _earnings(visible, fiscal_year_net)),
    ):
        if not is_zero(amount):
            equity_rows.append(
                StatementRow(
                    account_id=None,
                    account_code="",
                    account_name=label,
                    account_type=AccountType.EQUITY.value,
                    amount=amount,
                )
            )

    return BalanceSheetReport(
        metadata=metadata,
        as_of_date=as_of_date,
        fiscal_year=fiscal_year,
        asset_rows=tuple(asset_rows),
        total_assets=_total(asset_rows),
        liability_rows=tuple(liability_rows),
        total_liabilities=_total(liability_rows),
        equity_rows=tuple(equity_rows),
        total_equity=_total(equity_rows),
    )


# =========================================================================
# Serialization
# =========================================================================

# Computed properties worth exporting alongside the dataclass fields
_DERIVED_FIELDS = ("is_balanced", "net_income_label", "total_liabilities_and_equity")


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to a plain dict for JSON serialization.

    Handles:
    - Decimal -> str (preserving precision)
    - UUID -> str
    - date / datetime -> ISO format string
    - Enum -> .value
    - Nested frozen dataclasses -> nested dicts, plus computed
      properties such as ``is_balanced``
    - Tuples -> lists
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        out = {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
        for name in _DERIVED_FIELDS:
            if isinstance(getattr(type(obj), name, None), property):
                out[name] = render_to_dict(getattr(obj, name))
        return out
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
