"""
Reporting Module Service (``ledger_modules.reporting.service``).

Responsibility
--------------
Orchestrates financial statement generation -- trial balance, income
statement and balance sheet -- by bridging the ledger selector and the
chart of accounts to the pure transformation functions in
``statements.py``.  This is a **read-only** service.

Architecture position
---------------------
**Modules layer** -- thin glue.  Constructor: ``session`` + ``tenant_id``
+ ``clock`` + ``config``.

Invariants enforced
-------------------
* Read-only -- no mutations to the journal.
* Only posted entries contribute (via ``LedgerSelector``).
* All monetary amounts use ``Decimal`` -- NEVER ``float``.

Failure modes
-------------
* Inverted windows (``period_start`` after ``as_of_date`` /
  ``period_end``) -> ``ValueError`` raised before any query.
* Selector query failure -> exception propagates.

Audit relevance
---------------
A structured log event is emitted for every generated report, carrying
the report window and the totals.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.chart_of_accounts_service import ChartOfAccountsService
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    IncomeStatementReport,
    ReportMetadata,
    ReportType,
    TrialBalanceReport,
)
from ledger_modules.reporting.statements import (
    build_balance_sheet,
    build_income_statement,
    build_trial_balance,
    net_by_account,
    render_to_dict,
)

logger = get_logger("modules.reporting.service")


def fiscal_year_start(fiscal_year: int) -> date:
    return date(fiscal_year, 1, 1)


class ReportingService:
    """
    Financial statement generation service.

    Contract
    --------
    * Every public method returns a typed, frozen report DTO.
    * All methods are read-only.

    Guarantees
    ----------
    * No financial logic lives in this class; it loads account snapshots
      and per-account nets and hands them to ``statements.py``.
    * Clock is injectable; it only stamps ``generated_at``.

    Non-goals
    ---------
    * Does NOT enforce fiscal-period status; reports over closed or
      locked periods are allowed.
    * Does NOT produce cash flow or equity change statements.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
    ):
        if not tenant_id:
            raise ValueError("tenant_id is required")
        self._session = session
        self._tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._ledger = LedgerSelector(session, tenant_id)
        self._chart = ChartOfAccountsService(session, tenant_id, clock=self._clock)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _load_accounts(self) -> list[AccountInfo]:
        accounts = self._chart.list_accounts()
        logger.debug(
            "accounts_loaded_for_reporting",
            extra={"tenant_id": self._tenant_id, "account_count": len(accounts)},
        )
        return accounts

    def _build_metadata(
        self,
        report_type: ReportType,
        fiscal_year: int,
        as_of_date: date | None = None,
        period_start: date | None = None,
        period_end: date | None = None,
    ) -> ReportMetadata:
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=self._config.currency,
            fiscal_year=fiscal_year,
            generated_at=self._clock.now(),
            as_of_date=as_of_date,
            period_start=period_start,
            period_end=period_end,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def generate_trial_balance(
        self,
        as_of_date: date,
        fiscal_year: int,
        period_start: date | None = None,
    ) -> TrialBalanceReport:
        """
        Trial balance as of a date.

        Args:
            as_of_date: Last day included.
            fiscal_year: Fiscal year the report belongs to.
            period_start: Start of the movement column.  Defaults to
                1 January of ``fiscal_year``; everything before it is
                the opening column.

        Raises:
            ValueError: ``period_start`` is after ``as_of_date``.
        """
        period_start = period_start or fiscal_year_start(fiscal_year)
        if period_start > as_of_date:
            raise ValueError(
                f"period_start {period_start} is after as_of_date {as_of_date}"
            )

        accounts = self._load_accounts()
        opening = net_by_account(self._ledger.account_balances(before=period_start))
        movement = net_by_account(
            self._ledger.account_balances(since=period_start, as_of=as_of_date)
        )
        report = build_trial_balance(
            accounts,
            opening,
            movement,
            self._build_metadata(
                ReportType.TRIAL_BALANCE,
                fiscal_year,
                as_of_date=as_of_date,
                period_start=period_start,
                period_end=as_of_date,
            ),
            as_of_date,
            fiscal_year,
            self._config,
        )

        log = logger.info if report.is_balanced else logger.warning
        log(
            "trial_balance_generated",
            extra={
                "tenant_id": self._tenant_id,
                "as_of_date": as_of_date.isoformat(),
                "fiscal_year": fiscal_year,
                "row_count": len(report.rows),
                "total_debit": str(report.total_debit),
                "total_credit": str(report.total_credit),
                "is_balanced": report.is_balanced,
            },
        )
        return report

    def generate_income_statement(
        self,
        period_start: date,
        period_end: date,
        fiscal_year: int,
    ) -> IncomeStatementReport:
        """
        Revenue and expense activity over [period_start, period_end].

        Raises:
            ValueError: ``period_start`` is after ``period_end``.
        """
        if period_start > period_end:
            raise ValueError(
                f"period_start {period_start} is after period_end {period_end}"
            )

        accounts = self._load_accounts()
        movement = net_by_account(
            self._ledger.account_balances(since=period_start, as_of=period_end)
        )
        report = build_income_statement(
            accounts,
            movement,
            self._build_metadata(
                ReportType.INCOME_STATEMENT,
                fiscal_year,
                period_start=period_start,
                period_end=period_end,
            ),
            period_start,
            period_end,
            fiscal_year,
            self._config,
        )

        logger.info(
            "income_statement_generated",
            extra={
                "tenant_id": self._tenant_id,
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
                "total_revenue": str(report.total_revenue),
                "total_expenses": str(report.total_expenses),
                "net_income": str(report.net_income),
            },
        )
        return report

    def generate_balance_sheet(
        self,
        as_of_date: date,
        fiscal_year: int,
    ) -> BalanceSheetReport:
        """
        Balance sheet as of a date.

        Raises:
            ValueError: ``as_of_date`` is before the fiscal year start.
        """
        fy_start = fiscal_year_start(fiscal_year)
        if as_of_date < fy_start:
            raise ValueError(
                f"as_of_date {as_of_date} is before fiscal year {fiscal_year}"
            )

        accounts = self._load_accounts()
        cumulative = net_by_account(self._ledger.account_balances(as_of=as_of_date))
        year_to_date = net_by_account(
            self._ledger.account_balances(since=fy_start, as_of=as_of_date)
        )
        prior_years = net_by_account(self._ledger.account_balances(before=fy_start))
        report = build_balance_sheet(
            accounts,
            cumulative,
            year_to_date,
            prior_years,
            self._build_metadata(
                ReportType.BALANCE_SHEET,
                fiscal_year,
                as_of_date=as_of_date,
            ),
            as_of_date,
            fiscal_year,
            self._config,
        )

        log = logger.info if report.is_balanced else logger.warning
        log(
            "balance_sheet_generated",
            extra={
                "tenant_id": self._tenant_id,
                "as_of_date": as_of_date.isoformat(),
                "total_assets": str(report.total_assets),
                "total_liabilities": str(report.total_liabilities),
                "total_equity": str(report.total_equity),
                "is_balanced": report.is_balanced,
            },
        )
        return report

    @staticmethod
    def to_dict(report: object) -> dict:
        """Convert any report to a JSON-serializable dict."""
        return render_to_dict(report)
