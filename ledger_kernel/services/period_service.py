"""
PeriodService -- fiscal years, monthly periods and their state machine.

Responsibility:
    Creates calendar fiscal years with twelve monthly periods, moves
    periods through OPEN <-> CLOSED -> LOCKED, posts a year's opening
    balances, closes a fiscal year, and answers "which period covers
    this date" for the journal service.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by JournalService before every post and void.

Invariants enforced:
    - A fiscal year has exactly twelve contiguous, non-overlapping
      periods; period n covers calendar month n.
    - Legal moves are open -> closed, closed -> open and
      closed -> locked.  LOCKED is terminal.
    - Transitions and posting-date checks hold the period row with
      ``SELECT ... FOR UPDATE`` so a concurrent close cannot slip
      between the check and the post.
    - Opening balances are posted at most once per fiscal year.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - FiscalYearExistsError, FiscalYearNotFoundError,
      FiscalYearNotClosableError.
    - PeriodNotFoundError: no period with that id / covering that date.
    - InvalidPeriodTransitionError: move not allowed from the current
      status.
    - PeriodClosedError / PeriodLockedError from
      ``validate_posting_date``.
    - OpeningBalancesAlreadyPostedError.

Audit relevance:
    Every transition is logged and written to the audit log: WARNING
    severity for close and reopen, CRITICAL for lock.
"""

import calendar
from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import (
    EntrySource,
    FiscalPeriodInfo,
    FiscalYearInfo,
    FiscalYearStatus,
    JournalEntryInfo,
    JournalEntryInput,
    JournalLineInput,
    PeriodStatus,
)
from ledger_kernel.exceptions import (
    FiscalYearExistsError,
    FiscalYearNotClosableError,
    FiscalYearNotFoundError,
    InvalidPeriodTransitionError,
    OpeningBalancesAlreadyPostedError,
    PeriodClosedError,
    PeriodLockedError,
    PeriodNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.fiscal_period import FiscalPeriod, FiscalYear
from ledger_kernel.services.audit_service import (
    AuditSeverity,
    BestEffortAuditLog,
    default_audit_log,
)
from ledger_kernel.services.base import BaseService

logger = get_logger("services.period")

# (from, to) -> (log event, audit action, audit severity)
_TRANSITIONS: dict[
    tuple[PeriodStatus, PeriodStatus], tuple[str, str, AuditSeverity]
] = {
    (PeriodStatus.OPEN, PeriodStatus.CLOSED): (
        "period_closed", "period.closed", AuditSeverity.WARNING,
    ),
    (PeriodStatus.CLOSED, PeriodStatus.OPEN): (
        "period_reopened", "period.reopened", AuditSeverity.WARNING,
    ),
    (PeriodStatus.CLOSED, PeriodStatus.LOCKED): (
        "period_locked", "period.locked", AuditSeverity.CRITICAL,
    ),
}


class PeriodService(BaseService):
    """
    Service for the fiscal period lifecycle.

    Contract:
        Accepts period ids, years or dates and returns frozen
        ``FiscalPeriodInfo`` / ``FiscalYearInfo`` DTOs.

    Guarantees:
        - ``validate_posting_date`` returns only for a date inside an
          OPEN period, and leaves that period row locked for the rest of
          the transaction.

    Non-goals:
        - Does NOT support non-calendar fiscal years.
        - Does NOT generate closing entries into retained earnings; the
          balance sheet derives prior-year earnings instead.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        clock: Clock | None = None,
        audit: BestEffortAuditLog | None = None,
    ):
        super().__init__(session, tenant_id, clock)
        self.audit = audit or default_audit_log(session, tenant_id, self.clock)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _get_year_orm(self, year: int, for_update: bool = False) -> FiscalYear | None:
        stmt = select(FiscalYear).where(
            FiscalYear.tenant_id == self.tenant_id,
            FiscalYear.year == year,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def _get_period_for_update(self, period_id: UUID) -> FiscalPeriod | None:
        return self.session.execute(
            select(FiscalPeriod)
            .where(
                FiscalPeriod.tenant_id == self.tenant_id,
                FiscalPeriod.id == period_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _get_period_for_date_orm(
        self, check_date: date, for_update: bool = False
    ) -> FiscalPeriod | None:
        stmt = select(FiscalPeriod).where(
            FiscalPeriod.tenant_id == self.tenant_id,
            FiscalPeriod.start_date <= check_date,
            FiscalPeriod.end_date >= check_date,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_fiscal_year(self, year: int) -> FiscalYearInfo | None:
        fy = self._get_year_orm(year)
        return fy.to_dto() if fy else None

    def get_period(self, period_id: UUID) -> FiscalPeriodInfo | None:
        period = self.session.execute(
            select(FiscalPeriod).where(
                FiscalPeriod.tenant_id == self.tenant_id,
                FiscalPeriod.id == period_id,
            )
        ).scalar_one_or_none()
        return period.to_dto() if period else None

    def get_period_for_date(self, check_date: date) -> FiscalPeriodInfo | None:
        period = self._get_period_for_date_orm(check_date)
        return period.to_dto() if period else None

    def list_periods(self, year: int | None = None) -> list[FiscalPeriodInfo]:
        """Periods in date order, optionally restricted to one fiscal year."""
        stmt = select(FiscalPeriod).where(FiscalPeriod.tenant_id == self.tenant_id)
        if year is not None:
            stmt = stmt.where(FiscalPeriod.year == year)
        stmt = stmt.order_by(FiscalPeriod.start_date)
        return [p.to_dto() for p in self.session.execute(stmt).scalars()]

    def get_open_period_on_or_after(self, check_date: date) -> FiscalPeriodInfo | None:
        """
        The period covering ``check_date`` if it is open, else the earliest
        open period starting after it.
        """
        period = self.session.execute(
            select(FiscalPeriod)
            .where(
                FiscalPeriod.tenant_id == self.tenant_id,
                FiscalPeriod.status == PeriodStatus.OPEN.value,
                FiscalPeriod.end_date >= check_date,
            )
            .order_by(FiscalPeriod.start_date)
            .limit(1)
        ).scalar_one_or_none()
        return period.to_dto() if period else None

    def validate_posting_date(self, entry_date: date) -> FiscalPeriodInfo:
        """
        Lock and return the open period covering ``entry_date``.

        Raises:
            PeriodNotFoundError: No period covers the date.
            PeriodLockedError: The period is locked.
            PeriodClosedError: The period is closed.
        """
        period = self._get_period_for_date_orm(entry_date, for_update=True)
        if period is None:
            raise PeriodNotFoundError(str(entry_date))
        if period.is_locked:
            logger.warning(
                "period_locked_violation",
                extra={"period_code": period.period_code, "entry_date": str(entry_date)},
            )
            raise PeriodLockedError(period.period_code, str(entry_date))
        if not period.is_open:
            logger.warning(
                "period_closed_violation",
                extra={"period_code": period.period_code, "entry_date": str(entry_date)},
            )
            raise PeriodClosedError(period.period_code, str(entry_date))
        return period.to_dto()

    def lock_period_for_void(self, entry_date: date) -> FiscalPeriodInfo | None:
        """
        Lock the period covering a voided entry's date and check it is not locked.

        The row stays held until the caller's transaction ends, so a
        concurrent ``lock_period`` waits for the void to commit.

        Raises:
            PeriodLockedError: The period is locked.
        """
        period = self._get_period_for_date_orm(entry_date, for_update=True)
        if period is None:
            return None
        if period.is_locked:
            logger.warning(
                "void_rejected_period_locked",
                extra={"period_code": period.period_code, "entry_date": str(entry_date)},
            )
            raise PeriodLockedError(period.period_code, str(entry_date))
        return period.to_dto()

    # ------------------------------------------------------------------
    # Fiscal years
    # ------------------------------------------------------------------

    def create_fiscal_year(self, year: int, actor_id: UUID) -> FiscalYearInfo:
        """
        Create a calendar fiscal year with twelve open monthly periods.

        Raises:
            FiscalYearExistsError: The tenant already has this year.
        """
        if self._get_year_orm(year) is not None:
            raise FiscalYearExistsError(year)

        fy = FiscalYear(
            tenant_id=self.tenant_id,
            year=year,
            start_date=date(year, 1, 1),
            end_date=date(year, 12, 31),
            status=FiscalYearStatus.OPEN.value,
            opening_balances_posted=False,
            created_by_id=actor_id,
        )
        for month in range(1, 13):
            last_day = calendar.monthrange(year, month)[1]
            fy.periods.append(
                FiscalPeriod(
                    tenant_id=self.tenant_id,
                    year=year,
                    period_number=month,
                    start_date=date(year, month, 1),
                    end_date=date(year, month, last_day),
                    status=PeriodStatus.OPEN.value,
                    created_by_id=actor_id,
                )
            )
        self.session.add(fy)
        self.session.flush()

        logger.info(
            "fiscal_year_created",
            extra={"tenant_id": self.tenant_id, "year": year, "actor_id": str(actor_id)},
        )
        self.audit.record(
            "fiscal_year.created", "fiscal_year", fy.id, actor_id, {"year": year}
        )
        return fy.to_dto()

    def close_fiscal_year(self, year: int, actor_id: UUID) -> FiscalYearInfo:
        """
        Mark a fiscal year closed once none of its periods is open.

        Raises:
            FiscalYearNotFoundError: No such year.
            FiscalYearNotClosableError: At least one period is still open.
        """
        fy = self._get_year_orm(year, for_update=True)
        if fy is None:
            raise FiscalYearNotFoundError(year)

        open_periods = [p.period_number for p in fy.periods if p.is_open]
        if open_periods:
            raise FiscalYearNotClosableError(year, open_periods)

        if fy.status != FiscalYearStatus.CLOSED.value:
            fy.status = FiscalYearStatus.CLOSED.value
            fy.updated_by_id = actor_id
            self.session.flush()
            logger.info(
                "fiscal_year_closed",
                extra={"tenant_id": self.tenant_id, "year": year, "actor_id": str(actor_id)},
            )
            self.audit.record(
                "fiscal_year.closed",
                "fiscal_year",
                fy.id,
                actor_id,
                {"year": year},
                AuditSeverity.WARNING,
            )
        return fy.to_dto()

    def post_opening_balances(
        self,
        year: int,
        lines: Sequence[JournalLineInput],
        actor_id: UUID,
    ) -> JournalEntryInfo:
        """
        Post a balanced opening-balance entry dated 1 January of ``year``.

        Raises:
            FiscalYearNotFoundError: The year has not been created.
            OpeningBalancesAlreadyPostedError: Already posted for the year.
            UnbalancedEntryError / AccountNotFoundError / PeriodClosedError:
                from the journal service.
        """
        # Deferred: JournalService itself depends on PeriodService
        from ledger_kernel.services.journal_service import JournalService

        fy = self._get_year_orm(year, for_update=True)
        if fy is None:
            raise FiscalYearNotFoundError(year)
        if fy.opening_balances_posted:
            raise OpeningBalancesAlreadyPostedError(
                year,
                str(fy.opening_balance_entry_id) if fy.opening_balance_entry_id else None,
            )

        journal = JournalService(
            self.session, self.tenant_id, self.clock, periods=self, audit=self.audit
        )
        entry = journal.create_entry(
            JournalEntryInput(
                entry_date=fy.start_date,
                description=f"Opening balances {year}",
                lines=tuple(lines),
                source=EntrySource.OPENING,
            ),
            actor_id,
            post=True,
        )

        fy.opening_balances_posted = True
        fy.opening_balance_entry_id = entry.id
        fy.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "opening_balances_posted",
            extra={
                "tenant_id": self.tenant_id,
                "year": year,
                "entry_id": str(entry.id),
                "total": str(entry.total_debit),
            },
        )
        self.audit.record(
            "fiscal_year.opening_balances_posted",
            "fiscal_year",
            fy.id,
            actor_id,
            {"year": year, "entry_number": entry.entry_number, "total": entry.total_debit},
        )
        return entry

    # ------------------------------------------------------------------
    # Period transitions
    # ------------------------------------------------------------------

    def _transition(
        self,
        period_id: UUID,
        target: PeriodStatus,
        actor_id: UUID,
    ) -> FiscalPeriodInfo:
        period = self._get_period_for_update(period_id)
        if period is None:
            raise PeriodNotFoundError(str(period_id))

        current = PeriodStatus(period.status)
        rule = _TRANSITIONS.get((current, target))
        if rule is None:
            logger.warning(
                "period_transition_rejected",
                extra={
                    "period_code": period.period_code,
                    "current_status": current.value,
                    "target_status": target.value,
                },
            )
            raise InvalidPeriodTransitionError(period.period_code, current.value, target.value)
        event, action, severity = rule

        now = self.clock.now()
        period.status = target.value
        period.updated_by_id = actor_id
        if target == PeriodStatus.CLOSED:
            period.closed_at = now
            period.closed_by_id = actor_id
        elif target == PeriodStatus.OPEN:
            period.reopened_at = now
            period.reopened_by_id = actor_id
        else:
            period.locked_at = now
            period.locked_by_id = actor_id
        self.session.flush()

        logger.info(
            event,
            extra={
                "tenant_id": self.tenant_id,
                "period_code": period.period_code,
                "actor_id": str(actor_id),
            },
        )
        self.audit.record(
            action,
            "fiscal_period",
            period.id,
            actor_id,
            {"period_code": period.period_code, "from": current.value, "to": target.value},
            severity,
        )
        return period.to_dto()

    def close_period(self, period_id: UUID, actor_id: UUID) -> FiscalPeriodInfo:
        """OPEN -> CLOSED.  Postings into the period are refused afterwards."""
        return self._transition(period_id, PeriodStatus.CLOSED, actor_id)

    def reopen_period(self, period_id: UUID, actor_id: UUID) -> FiscalPeriodInfo:
        """CLOSED -> OPEN.  A locked period can never be reopened."""
        return self._transition(period_id, PeriodStatus.OPEN, actor_id)

    def lock_period(self, period_id: UUID, actor_id: UUID) -> FiscalPeriodInfo:
        """CLOSED -> LOCKED (terminal).  Entries in the period can no longer be voided."""
        return self._transition(period_id, PeriodStatus.LOCKED, actor_id)
