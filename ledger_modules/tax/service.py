"""
Tax Filing Service (``ledger_modules.tax.service``).

Responsibility
--------------
The filing tracker: stores generated WIT/INSS returns as ``TaxFiling``
rows, marks them filed, and lists statutory deadlines around the current
month with their holiday-adjusted due dates and status.

Architecture position
---------------------
**Modules layer** -- sole writer of ``tax_filings``.  Reads due dates
from ``DueDateCalculator`` and writes audit entries through
``BestEffortAuditLog``.  Constructor: ``session`` + ``tenant_id`` +
``clock`` + collaborators.

Invariants enforced
-------------------
* One filing per (tenant, filing type, period); ``save_filing`` updates
  the existing row instead of adding a second one.
* A filing already marked ``filed`` is never silently overwritten:
  ``save_filing`` raises ``FilingAlreadyFiledError`` unless the caller
  passes ``allow_refile=True``, which replaces the snapshot and keeps
  the filed status and submission details.
* Holiday overrides are fetched at most once per tenant and year within
  one call.
* Flush-only: never commits or rolls back the session.

Failure modes
-------------
* ``InvalidTaxPeriodError`` -- malformed period for the filing type.
* ``ValueError`` -- snapshot does not match the filing type or period.
* ``FilingAlreadyFiledError`` -- see above.
* ``FilingNotFoundError`` -- ``mark_as_filed`` on an unknown id.

Audit relevance
---------------
``tax.wit_generated`` / ``tax.inss_generated`` on save and
``tax.wit_filed`` / ``tax.inss_filed`` / ``tax.annual_filed`` on filing
are written best effort; an audit failure is logged and counted but
never undoes the filing.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config import JurisdictionPack, get_jurisdiction
from ledger_kernel.domain.clock import Clock
from ledger_kernel.exceptions import FilingAlreadyFiledError, FilingNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.audit_service import (
    AuditSeverity,
    BestEffortAuditLog,
    default_audit_log,
)
from ledger_kernel.services.base import BaseService
from ledger_modules.tax.config import TaxFilingConfig
from ledger_modules.tax.due_dates import (
    DueDateCalculator,
    days_until_due,
    format_period,
    parse_year_period,
    shift_period,
    validate_period,
)
from ledger_modules.tax.holidays import HolidayCalendar
from ledger_modules.tax.models import (
    AnnualWITReturn,
    FilingDueDate,
    FilingStatusSummary,
    FilingTask,
    MonthlyINSSReturn,
    MonthlyWITReturn,
    SubmissionMethod,
    TaxFiling,
    TaxFilingStatus,
    TaxFilingType,
    TaxReturn,
    snapshot_of,
)
from ledger_modules.tax.orm import TaxFilingModel
from ledger_modules.tax.sources import HolidayOverrideSource

logger = get_logger("modules.tax.service")

_SNAPSHOT_TYPES: dict[TaxFilingType, type] = {
    TaxFilingType.MONTHLY_WIT: MonthlyWITReturn,
    TaxFilingType.ANNUAL_WIT: AnnualWITReturn,
    TaxFilingType.INSS_MONTHLY: MonthlyINSSReturn,
}

_GENERATED_ACTIONS = {
    TaxFilingType.MONTHLY_WIT: "tax.wit_generated",
    TaxFilingType.ANNUAL_WIT: "tax.wit_generated",
    TaxFilingType.INSS_MONTHLY: "tax.inss_generated",
}

_FILED_ACTIONS = {
    TaxFilingType.MONTHLY_WIT: "tax.wit_filed",
    TaxFilingType.ANNUAL_WIT: "tax.annual_filed",
    TaxFilingType.INSS_MONTHLY: "tax.inss_filed",
}


def _snapshot_period(snapshot: TaxReturn) -> str:
    if isinstance(snapshot, AnnualWITReturn):
        return str(snapshot.tax_year)
    return snapshot.reporting_period


def _totals(snapshot: TaxReturn) -> dict:
    """Quick-display totals stored beside the snapshot."""
    if isinstance(snapshot, MonthlyWITReturn):
        return {
            "total_wages": snapshot.total_gross_wages,
            "total_wit_withheld": snapshot.total_wit_withheld,
            "employee_count": snapshot.total_employees,
            "total_inss_employee": None,
            "total_inss_employer": None,
        }
    if isinstance(snapshot, AnnualWITReturn):
        return {
            "total_wages": snapshot.total_gross_wages_paid,
            "total_wit_withheld": snapshot.total_wit_withheld,
            "employee_count": snapshot.total_employees_in_year,
            "total_inss_employee": None,
            "total_inss_employer": None,
        }
    return {
        "total_wages": snapshot.total_contribution_base,
        "total_wit_withheld": Decimal("0"),
        "employee_count": snapshot.total_employees,
        "total_inss_employee": snapshot.total_employee_contributions,
        "total_inss_employer": snapshot.total_employer_contributions,
    }


def deadline_status(filing: TaxFiling | None, days: int) -> TaxFilingStatus:
    if filing is not None and filing.is_filed:
        return TaxFilingStatus.FILED
    if days < 0:
        return TaxFilingStatus.OVERDUE
    return TaxFilingStatus.PENDING


class TaxFilingService(BaseService):
    """
    Statutory filing tracker for one tenant.

    Contract
    --------
    * Every public method returns frozen DTOs from ``models.py``.
    * ``today`` is the clock's date in Timor-Leste time.

    Guarantees
    ----------
    * Due dates are holiday-adjusted with the tenant's overrides.
    * Deadline status is computed at call time; a stored ``pending``
      filing past its due date is reported ``overdue``.

    Non-goals
    ---------
    * Does NOT submit returns to the tax authority.
    * Does NOT regenerate stored snapshots when payroll is corrected.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        clock: Clock | None = None,
        holiday_source: HolidayOverrideSource | None = None,
        audit: BestEffortAuditLog | None = None,
        config: TaxFilingConfig | None = None,
        jurisdiction: JurisdictionPack | None = None,
    ):
        super().__init__(session, tenant_id, clock)
        self.config = config or TaxFilingConfig.with_defaults()
        self.jurisdiction = jurisdiction or get_jurisdiction(self.config.jurisdiction_code)
        self.holiday_source = holiday_source
        self.audit = audit or default_audit_log(session, tenant_id, self.clock)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def due_date_calculator(self) -> DueDateCalculator:
        """Fresh calculator; its calendar caches overrides for one batch."""
        return DueDateCalculator(
            HolidayCalendar(self.holiday_source, self.tenant_id, self.jurisdiction)
        )

    def _get_orm(self, filing_id: UUID, for_update: bool = False) -> TaxFilingModel | None:
        stmt = select(TaxFilingModel).where(
            TaxFilingModel.tenant_id == self.tenant_id,
            TaxFilingModel.id == filing_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def _get_by_period_orm(
        self,
        filing_type: TaxFilingType,
        period: str,
        for_update: bool = False,
    ) -> TaxFilingModel | None:
        stmt = select(TaxFilingModel).where(
            TaxFilingModel.tenant_id == self.tenant_id,
            TaxFilingModel.filing_type == filing_type.value,
            TaxFilingModel.period == period,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def _filings_for_periods(self, periods: set[str]) -> dict[tuple[TaxFilingType, str], TaxFiling]:
        rows = self.session.execute(
            select(TaxFilingModel).where(
                TaxFilingModel.tenant_id == self.tenant_id,
                TaxFilingModel.period.in_(sorted(periods)),
            )
        ).scalars()
        return {(TaxFilingType(r.filing_type), r.period): r.to_dto() for r in rows}

    # =========================================================================
    # Queries
    # =========================================================================

    def get_filing(self, filing_id: UUID) -> TaxFiling | None:
        orm = self._get_orm(filing_id)
        return orm.to_dto() if orm else None

    def get_filing_by_period(self, filing_type: TaxFilingType, period: str) -> TaxFiling | None:
        orm = self._get_by_period_orm(TaxFilingType(filing_type), period)
        return orm.to_dto() if orm else None

    def list_filings(self, filing_type: TaxFilingType | None = None) -> list[TaxFiling]:
        """Filings of the tenant, most recent period first."""
        stmt = select(TaxFilingModel).where(TaxFilingModel.tenant_id == self.tenant_id)
        if filing_type is not None:
            stmt = stmt.where(TaxFilingModel.filing_type == TaxFilingType(filing_type).value)
        stmt = stmt.order_by(TaxFilingModel.period.desc(), TaxFilingModel.filing_type)
        return [r.to_dto() for r in self.session.execute(stmt).scalars()]

    # =========================================================================
    # Commands
    # =========================================================================

    def save_filing(
        self,
        filing_type: TaxFilingType,
        period: str,
        snapshot: TaxReturn,
        actor_id: UUID,
        allow_refile: bool = False,
    ) -> TaxFiling:
        """
        Store a generated return for (filing_type, period).

        Args:
            snapshot: The return from ``TaxReturnGenerator`` matching
                ``filing_type``.
            allow_refile: Replace the snapshot of a filing already
                marked filed.  Its filed status and submission details
                are kept.

        Raises:
            InvalidTaxPeriodError: Malformed period.
            ValueError: Snapshot of the wrong kind or for another period.
            FilingAlreadyFiledError: Filing is filed and ``allow_refile``
                is False.
        """
        filing_type = TaxFilingType(filing_type)
        validate_period(filing_type, period)
        expected = _SNAPSHOT_TYPES[filing_type]
        if not isinstance(snapshot, expected):
            raise ValueError(
                f"{filing_type.value} filing needs a {expected.__name__}, "
                f"got {type(snapshot).__name__}"
            )
        if _snapshot_period(snapshot) != period:
            raise ValueError(
                f"Snapshot is for {_snapshot_period(snapshot)}, not {period}"
            )

        due = self.due_date_calculator().due_date_for(filing_type, period)
        days = days_until_due(due, self.clock.today())
        status = TaxFilingStatus.OVERDUE if days < 0 else TaxFilingStatus.PENDING
        totals = _totals(snapshot)
        data = snapshot_of(snapshot)

        filing = self._get_by_period_orm(filing_type, period, for_update=True)
        if filing is not None and filing.status == TaxFilingStatus.FILED.value:
            if not allow_refile:
                logger.warning(
                    "filing_refile_rejected",
                    extra={
                        "tenant_id": self.tenant_id,
                        "filing_type": filing_type.value,
                        "period": period,
                    },
                )
                raise FilingAlreadyFiledError(filing_type.value, period)
            logger.warning(
                "filing_refiled",
                extra={
                    "tenant_id": self.tenant_id,
                    "filing_id": str(filing.id),
                    "filing_type": filing_type.value,
                    "period": period,
                },
            )
            status = TaxFilingStatus.FILED

        if filing is None:
            filing = TaxFilingModel(
                tenant_id=self.tenant_id,
                filing_type=filing_type.value,
                period=period,
                created_by_id=actor_id,
            )
            self.session.add(filing)
        else:
            filing.updated_by_id = actor_id

        filing.status = status.value
        filing.due_date = due
        filing.data_snapshot = data
        for name, value in totals.items():
            setattr(filing, name, value)
        self.session.flush()

        with self.log_scope(filing_id=filing.id, actor_id=actor_id):
            logger.info(
                "filing_saved",
                extra={
                    "filing_type": filing_type.value,
                    "period": period,
                    "status": status.value,
                    "due_date": due.isoformat(),
                },
            )
            self.audit.record(
                _GENERATED_ACTIONS[filing_type],
                "tax_filing",
                filing.id,
                actor_id=actor_id,
                metadata={
                    "filing_type": filing_type.value,
                    "period": period,
                    "total_wages": str(totals["total_wages"]),
                    "total_wit": str(totals["total_wit_withheld"]),
                    "employee_count": totals["employee_count"],
                },
            )
            return filing.to_dto()

    def mark_as_filed(
        self,
        filing_id: UUID,
        method: SubmissionMethod,
        actor_id: UUID,
        receipt_number: str | None = None,
        notes: str | None = None,
    ) -> TaxFiling:
        """
        Record that a filing was submitted today.

        Raises:
            FilingNotFoundError: Unknown filing id for this tenant.
        """
        method = SubmissionMethod(method)
        filing = self._get_orm(filing_id, for_update=True)
        if filing is None:
            raise FilingNotFoundError(str(filing_id))

        with self.log_scope(filing_id=filing.id, actor_id=actor_id):
            filing.status = TaxFilingStatus.FILED.value
            filing.filed_date = self.clock.today()
            filing.submission_method = method.value
            filing.receipt_number = receipt_number
            filing.notes = notes
            filing.filed_by = actor_id
            filing.updated_by_id = actor_id
            self.session.flush()

            filing_type = TaxFilingType(filing.filing_type)
            logger.info(
                "filing_marked_filed",
                extra={
                    "filing_type": filing_type.value,
                    "period": filing.period,
                    "submission_method": method.value,
                },
            )
            self.audit.record(
                _FILED_ACTIONS[filing_type],
                "tax_filing",
                filing.id,
                actor_id=actor_id,
                metadata={
                    "period": filing.period,
                    "submission_method": method.value,
                    "receipt_number": receipt_number,
                    "total_wit": str(filing.total_wit_withheld),
                    "total_inss_employee": (
                        str(filing.total_inss_employee)
                        if filing.total_inss_employee is not None else None
                    ),
                    "total_inss_employer": (
                        str(filing.total_inss_employer)
                        if filing.total_inss_employer is not None else None
                    ),
                },
                severity=AuditSeverity.WARNING,
            )
            return filing.to_dto()

    # =========================================================================
    # Tracker
    # =========================================================================

    def get_filings_due_soon(self, months_window: int | None = None) -> list[FilingDueDate]:
        """
        Statutory deadlines around the current month, sorted by due date.

        For each reporting month from ``look_back_months`` before the
        previous month up to ``months_window`` months after it: monthly
        WIT, INSS statement and INSS payment.  During the annual tracking
        months (January to March) the prior year's annual WIT return is
        added.  Both INSS deadlines take their status from the single
        INSS filing of the period.
        """
        window = self.config.due_soon_window_months if months_window is None else months_window
        if window < 0:
            raise ValueError("months_window cannot be negative")

        today = self.clock.today()
        calculator = self.due_date_calculator()

        periods = [
            format_period(*shift_period(today.year, today.month, offset - 1))
            for offset in range(-self.config.look_back_months, window + 1)
        ]
        annual_period = None
        if today.month in self.config.annual_tracking_months:
            annual_period = str(today.year - 1)
        filings = self._filings_for_periods(
            set(periods) | ({annual_period} if annual_period else set())
        )

        def deadline(
            filing_type: TaxFilingType,
            period: str,
            due: date,
            task: FilingTask | None = None,
        ) -> FilingDueDate:
            filing = filings.get((filing_type, period))
            days = days_until_due(due, today)
            status = deadline_status(filing, days)
            return FilingDueDate(
                filing_type=filing_type,
                period=period,
                due_date=due,
                status=status,
                days_until_due=days,
                is_overdue=days < 0 and status != TaxFilingStatus.FILED,
                task=task,
                filing=filing,
            )

        deadlines: list[FilingDueDate] = []
        for period in periods:
            deadlines.append(
                deadline(TaxFilingType.MONTHLY_WIT, period, calculator.monthly_wit_due(period))
            )
            deadlines.append(
                deadline(
                    TaxFilingType.INSS_MONTHLY,
                    period,
                    calculator.inss_statement_due(period),
                    FilingTask.STATEMENT,
                )
            )
            deadlines.append(
                deadline(
                    TaxFilingType.INSS_MONTHLY,
                    period,
                    calculator.inss_payment_due(period),
                    FilingTask.PAYMENT,
                )
            )
        if annual_period is not None:
            deadlines.append(
                deadline(
                    TaxFilingType.ANNUAL_WIT,
                    annual_period,
                    calculator.annual_wit_due(parse_year_period(annual_period)),
                )
            )

        deadlines.sort(key=lambda d: d.due_date)
        logger.debug(
            "filings_due_soon_computed",
            extra={
                "tenant_id": self.tenant_id,
                "deadline_count": len(deadlines),
                "overdue_count": sum(1 for d in deadlines if d.is_overdue),
            },
        )
        return deadlines

    def get_filing_status_summary(self) -> FilingStatusSummary:
        """Dashboard counts over the summary window."""
        today = self.clock.today()
        deadlines = self.get_filings_due_soon(self.config.summary_window_months)

        pending = sum(1 for d in deadlines if d.status == TaxFilingStatus.PENDING)
        overdue = sum(1 for d in deadlines if d.is_overdue)
        filed_this_month = sum(
            1
            for d in deadlines
            if d.status == TaxFilingStatus.FILED
            and d.filing is not None
            and d.filing.filed_date is not None
            and (d.filing.filed_date.year, d.filing.filed_date.month)
            == (today.year, today.month)
        )
        next_due = next(
            (
                d for d in deadlines
                if d.status == TaxFilingStatus.PENDING and d.days_until_due >= 0
            ),
            None,
        )
        return FilingStatusSummary(
            pending=pending,
            overdue=overdue,
            filed_this_month=filed_this_month,
            next_due=next_due,
            deadlines=tuple(deadlines),
        )
