"""
ReportingService against a posted ledger.

Verifies:
- The trial balance is balanced, including on an empty ledger
- The balance sheet balances with prior and current year earnings
- A void removes the entry's effect from statements after the reversal
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import ReportType
from ledger_modules.reporting.service import ReportingService


@pytest.fixture
def two_years(open_books, post):
    """A trading year in 2025 and the first weeks of 2026."""
    post(date(2025, 3, 1), [("1120", "10000", "0"), ("3100", "0", "10000")], "Share capital paid in")
    post(date(2025, 6, 1), [("1210", "3000", "0"), ("4100", "0", "3000")], "Consulting invoice")
    post(date(2025, 7, 1), [("5200", "1000", "0"), ("1120", "0", "1000")], "Office rent")
    post(date(2026, 1, 5), [("1120", "500", "0"), ("4100", "0", "500")], "Cash sale")
    return post(date(2026, 1, 10), [("5200", "2550", "0"), ("2110", "0", "2550")], "Rent bill")


class TestTrialBalance:

    def test_empty_ledger(self, seeded_chart, reporting_service):
        report = reporting_service.generate_trial_balance(date(2026, 1, 31), 2026)

        assert report.rows == ()
        assert report.total_debit == report.total_credit == Decimal("0")
        assert report.is_balanced

    def test_opening_and_movement(self, two_years, reporting_service):
        report = reporting_service.generate_trial_balance(date(2026, 1, 31), 2026)

        rows = {r.account_code: r for r in report.rows}
        assert rows["1120"].opening_debit == Decimal("9000.00")
        assert rows["1120"].period_debit == Decimal("500.00")
        assert rows["1120"].debit_balance == Decimal("9500.00")
        assert rows["4100"].opening_credit == Decimal("3000.00")
        assert rows["4100"].credit_balance == Decimal("3500.00")
        assert rows["2110"].opening_credit == Decimal("0")
        assert report.total_debit == report.total_credit == Decimal("16050.00")
        assert report.is_balanced
        assert report.metadata.report_type == ReportType.TRIAL_BALANCE

    def test_custom_period_start(self, two_years, reporting_service):
        report = reporting_service.generate_trial_balance(
            date(2026, 1, 31), 2026, period_start=date(2026, 1, 6)
        )
        rows = {r.account_code: r for r in report.rows}
        assert rows["1120"].opening_debit == Decimal("9500.00")
        assert rows["1120"].period_debit == Decimal("0")

    def test_period_start_after_as_of(self, reporting_service):
        with pytest.raises(ValueError):
            reporting_service.generate_trial_balance(
                date(2026, 1, 31), 2026, period_start=date(2026, 2, 1)
            )

    def test_generation_logged(self, two_years, reporting_service, captured_logs):
        reporting_service.generate_trial_balance(date(2026, 1, 31), 2026)

        record = next(r for r in captured_logs() if r["message"] == "trial_balance_generated")
        assert record["is_balanced"] is True
        assert record["level"] == "INFO"


class TestIncomeStatement:

    def test_month(self, two_years, reporting_service):
        report = reporting_service.generate_income_statement(
            date(2026, 1, 1), date(2026, 1, 31), 2026
        )

        assert report.total_revenue == Decimal("500.00")
        assert report.total_expenses == Decimal("2550.00")
        assert report.net_income == Decimal("-2050.00")
        assert report.net_income_label == "Net Loss"

    def test_void_removes_expense(self, two_years, reporting_service, journal_service, test_actor_id):
        journal_service.void_entry(two_years.id, "Duplicate bill", test_actor_id)

        report = reporting_service.generate_income_statement(
            date(2026, 1, 1), date(2026, 1, 31), 2026
        )

        assert report.expense_rows == ()
        assert report.net_income == Decimal("500.00")

    def test_void_keeps_earlier_window(self, two_years, reporting_service, journal_service, test_actor_id):
        journal_service.void_entry(two_years.id, "Duplicate bill", test_actor_id)

        report = reporting_service.generate_income_statement(
            date(2026, 1, 1), date(2026, 1, 14), 2026
        )

        assert report.total_expenses == Decimal("2550.00")

    def test_inverted_range(self, reporting_service):
        with pytest.raises(ValueError):
            reporting_service.generate_income_statement(date(2026, 2, 1), date(2026, 1, 1), 2026)


class TestBalanceSheet:

    def test_balances_with_earnings_rows(self, two_years, reporting_service):
        report = reporting_service.generate_balance_sheet(date(2026, 1, 31), 2026)

        assets = {r.account_code: r.amount for r in report.asset_rows}
        assert assets == {"1120": Decimal("9500.00"), "1210": Decimal("3000.00")}
        assert [r.amount for r in report.liability_rows] == [Decimal("2550.00")]
        equity = {r.account_name: r.amount for r in report.equity_rows}
        assert equity == {
            "Share Capital": Decimal("10000.00"),
            "Prior Years Earnings": Decimal("2000.00"),
            "Current Year Earnings": Decimal("-2050.00"),
        }
        assert report.total_assets == Decimal("12500.00")
        assert report.total_liabilities_and_equity == Decimal("12500.00")
        assert report.is_balanced

    def test_before_fiscal_year(self, reporting_service):
        with pytest.raises(ValueError):
            reporting_service.generate_balance_sheet(date(2025, 12, 31), 2026)

    def test_to_dict(self, two_years, reporting_service):
        data = ReportingService.to_dict(
            reporting_service.generate_balance_sheet(date(2026, 1, 31), 2026)
        )

        assert data["is_balanced"] is True
        assert data["total_assets"] == "12500.00"
        assert data["metadata"]["currency"] == "USD"


class TestConfiguration:

    def test_entity_name_on_metadata(self, session, tenant_id, deterministic_clock, two_years):
        service = ReportingService(
            session, tenant_id, deterministic_clock,
            ReportingConfig(entity_name="Loja Dili Lda", current_year_earnings_label="Lucro Tinan Ida-ne'e"),
        )

        report = service.generate_balance_sheet(date(2026, 1, 31), 2026)

        assert report.metadata.entity_name == "Loja Dili Lda"
        assert report.metadata.generated_at == deterministic_clock.now()
        assert "Lucro Tinan Ida-ne'e" in {r.account_name for r in report.equity_rows}

    def test_inactive_account_without_activity_hidden(
        self, session, tenant_id, two_years, chart_service, test_actor_id,
    ):
        chart_service.deactivate_account("1110", test_actor_id)
        service = ReportingService(
            session, tenant_id, config=ReportingConfig(include_zero_balances=True)
        )

        report = service.generate_trial_balance(date(2026, 1, 31), 2026)

        codes = {r.account_code for r in report.rows}
        assert "1110" not in codes
        assert "1120" in codes

    def test_inactive_account_with_history_keeps_reports_balanced(
        self, two_years, post, reporting_service, chart_service, test_actor_id,
    ):
        post(date(2026, 1, 12), [("1110", "100", "0"), ("4100", "0", "100")], "Petty cash float")
        post(date(2026, 1, 20), [("1120", "100", "0"), ("1110", "0", "100")], "Float banked")
        chart_service.deactivate_account("1110", test_actor_id)

        trial_balance = reporting_service.generate_trial_balance(date(2026, 1, 15), 2026)
        balance_sheet = reporting_service.generate_balance_sheet(date(2026, 1, 15), 2026)

        rows = {r.account_code: r for r in trial_balance.rows}
        assert rows["1110"].debit_balance == Decimal("100.00")
        assert trial_balance.is_balanced
        assert trial_balance.total_debit == trial_balance.total_credit
        assert "1110" in {r.account_code for r in balance_sheet.asset_rows}
        assert balance_sheet.is_balanced

    def test_tenant_required(self, session):
        with pytest.raises(ValueError):
            ReportingService(session, "")

    def test_other_tenant_sees_nothing(self, session, two_years, other_tenant_id):
        report = ReportingService(session, other_tenant_id).generate_trial_balance(
            date(2026, 1, 31), 2026
        )
        assert report.rows == ()
