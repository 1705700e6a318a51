"""
Fiscal year and period lifecycle.

Verifies:
- A fiscal year is created with twelve open calendar-month periods
- Only OPEN -> CLOSED, CLOSED -> OPEN and CLOSED -> LOCKED are allowed;
  LOCKED is terminal
- Opening balances post once per year
- A fiscal year closes only when none of its periods is open
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import (
    EntrySource,
    FiscalYearStatus,
    JournalLineInput,
    PeriodStatus,
)
from ledger_kernel.exceptions import (
    FiscalYearExistsError,
    FiscalYearNotClosableError,
    FiscalYearNotFoundError,
    InvalidPeriodTransitionError,
    OpeningBalancesAlreadyPostedError,
    PeriodLockedError,
    PeriodNotFoundError,
    UnbalancedEntryError,
)
from ledger_kernel.services.audit_service import (
    AuditSeverity,
    BestEffortAuditLog,
    InMemoryAuditSink,
)
from ledger_kernel.services.period_service import PeriodService


@pytest.fixture
def audited_periods(session, tenant_id, deterministic_clock):
    sink = InMemoryAuditSink()
    service = PeriodService(
        session, tenant_id, deterministic_clock, BestEffortAuditLog(sink, tenant_id)
    )
    return service, sink


class TestFiscalYear:

    def test_twelve_monthly_periods(self, period_service, test_actor_id):
        fy = period_service.create_fiscal_year(2024, test_actor_id)

        assert fy.status == FiscalYearStatus.OPEN
        assert (fy.start_date, fy.end_date) == (date(2024, 1, 1), date(2024, 12, 31))
        assert len(fy.periods) == 12
        assert fy.periods[1].end_date == date(2024, 2, 29)
        assert fy.periods[11].period_code == "2024-12"
        assert all(p.status == PeriodStatus.OPEN for p in fy.periods)
        assert not fy.opening_balances_posted

    def test_duplicate_year(self, period_service, test_actor_id):
        period_service.create_fiscal_year(2026, test_actor_id)
        with pytest.raises(FiscalYearExistsError):
            period_service.create_fiscal_year(2026, test_actor_id)

    def test_same_year_other_tenant(
        self, session, period_service, other_tenant_id, deterministic_clock, test_actor_id,
    ):
        period_service.create_fiscal_year(2026, test_actor_id)
        other = PeriodService(session, other_tenant_id, deterministic_clock)

        assert other.get_fiscal_year(2026) is None
        other.create_fiscal_year(2026, test_actor_id)
        assert len(other.list_periods(2026)) == 12

    def test_period_lookup(self, period_service, test_actor_id):
        period_service.create_fiscal_year(2026, test_actor_id)

        period = period_service.get_period_for_date(date(2026, 3, 31))
        assert period.period_code == "2026-03"
        assert period.contains_date(date(2026, 3, 1))
        assert period_service.get_period_for_date(date(2027, 1, 1)) is None
        assert period_service.get_period(period.id) == period

    def test_close_year_requires_no_open_periods(self, period_service, test_actor_id):
        period_service.create_fiscal_year(2025, test_actor_id)
        periods = period_service.list_periods(2025)
        for period in periods[:-1]:
            period_service.close_period(period.id, test_actor_id)

        with pytest.raises(FiscalYearNotClosableError):
            period_service.close_fiscal_year(2025, test_actor_id)

        period_service.close_period(periods[-1].id, test_actor_id)
        fy = period_service.close_fiscal_year(2025, test_actor_id)
        assert fy.status == FiscalYearStatus.CLOSED

    def test_close_unknown_year(self, period_service, test_actor_id):
        with pytest.raises(FiscalYearNotFoundError):
            period_service.close_fiscal_year(1999, test_actor_id)


class TestPeriodTransitions:

    @pytest.fixture
    def january(self, period_service, test_actor_id):
        period_service.create_fiscal_year(2026, test_actor_id)
        return period_service.get_period_for_date(date(2026, 1, 1))

    def test_close_then_reopen(self, period_service, january, test_actor_id):
        closed = period_service.close_period(january.id, test_actor_id)
        assert closed.status == PeriodStatus.CLOSED
        assert closed.closed_by_id == test_actor_id

        reopened = period_service.reopen_period(january.id, test_actor_id)
        assert reopened.status == PeriodStatus.OPEN

    def test_lock_after_close(self, period_service, january, test_actor_id):
        period_service.close_period(january.id, test_actor_id)
        locked = period_service.lock_period(january.id, test_actor_id)

        assert locked.status == PeriodStatus.LOCKED
        assert locked.locked_by_id == test_actor_id

    @pytest.mark.parametrize(
        "setup, move",
        [
            ([], "reopen_period"),
            ([], "lock_period"),
            (["close_period"], "close_period"),
            (["close_period", "lock_period"], "reopen_period"),
            (["close_period", "lock_period"], "close_period"),
            (["close_period", "lock_period"], "lock_period"),
        ],
    )
    def test_invalid_moves(self, period_service, january, test_actor_id, setup, move):
        for step in setup:
            getattr(period_service, step)(january.id, test_actor_id)

        with pytest.raises(InvalidPeriodTransitionError):
            getattr(period_service, move)(january.id, test_actor_id)

    def test_unknown_period(self, period_service, test_actor_id):
        with pytest.raises(PeriodNotFoundError):
            period_service.close_period(uuid4(), test_actor_id)

    def test_locked_period_refuses_postings(self, period_service, january, test_actor_id):
        period_service.close_period(january.id, test_actor_id)
        period_service.lock_period(january.id, test_actor_id)

        with pytest.raises(PeriodLockedError):
            period_service.validate_posting_date(date(2026, 1, 20))

    def test_open_period_on_or_after(self, period_service, january, test_actor_id):
        period_service.close_period(january.id, test_actor_id)

        target = period_service.get_open_period_on_or_after(date(2026, 1, 15))
        assert target.period_code == "2026-02"

    def test_transitions_audited(self, audited_periods, test_actor_id):
        service, sink = audited_periods
        service.create_fiscal_year(2026, test_actor_id)
        january = service.get_period_for_date(date(2026, 1, 1))

        service.close_period(january.id, test_actor_id)
        service.reopen_period(january.id, test_actor_id)
        service.close_period(january.id, test_actor_id)
        service.lock_period(january.id, test_actor_id)

        assert sink.actions() == [
            "fiscal_year.created",
            "period.closed",
            "period.reopened",
            "period.closed",
            "period.locked",
        ]
        _, lock_record = sink.entries[-1]
        assert lock_record.severity == AuditSeverity.CRITICAL
        assert lock_record.metadata == {"period_code": "2026-01", "from": "closed", "to": "locked"}


class TestOpeningBalances:

    LINES = (
        JournalLineInput(account_code="1120", debit=Decimal("15000.00")),
        JournalLineInput(account_code="3200", credit=Decimal("15000.00")),
    )

    def test_posted_on_first_day(self, seeded_chart, period_service, test_actor_id):
        period_service.create_fiscal_year(2026, test_actor_id)

        entry = period_service.post_opening_balances(2026, self.LINES, test_actor_id)

        assert entry.entry_date == date(2026, 1, 1)
        assert entry.source == EntrySource.OPENING
        assert entry.is_posted
        fy = period_service.get_fiscal_year(2026)
        assert fy.opening_balances_posted
        assert fy.opening_balance_entry_id == entry.id

    def test_only_once(self, seeded_chart, period_service, test_actor_id):
        period_service.create_fiscal_year(2026, test_actor_id)
        period_service.post_opening_balances(2026, self.LINES, test_actor_id)

        with pytest.raises(OpeningBalancesAlreadyPostedError):
            period_service.post_opening_balances(2026, self.LINES, test_actor_id)

    def test_must_balance(self, seeded_chart, period_service, test_actor_id):
        period_service.create_fiscal_year(2026, test_actor_id)
        lines = (
            JournalLineInput(account_code="1120", debit=Decimal("15000.00")),
            JournalLineInput(account_code="3200", credit=Decimal("14000.00")),
        )
        with pytest.raises(UnbalancedEntryError):
            period_service.post_opening_balances(2026, lines, test_actor_id)
        assert not period_service.get_fiscal_year(2026).opening_balances_posted

    def test_unknown_year(self, seeded_chart, period_service, test_actor_id):
        with pytest.raises(FiscalYearNotFoundError):
            period_service.post_opening_balances(2030, self.LINES, test_actor_id)
