"""
General ledger queries (LedgerSelector).

Verifies:
- Running balances are signed by the account's normal side
- Paging returns every line exactly once, in order, for any page size
- Same-day entries keep allocation order once numbers pass four digits
- Opening balance for a range is the activity strictly before it
- Tenants never see each other's lines
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.sequence_service import SequenceCounter, journal_sequence_name


@pytest.fixture
def cash_history(open_books, post):
    """Five movements on 1120 (Cash in Bank - Operating) across two years."""
    post(date(2025, 12, 20), [("1120", "1000", "0"), ("3100", "0", "1000")], "Capital injection")
    post(date(2026, 1, 3), [("5200", "300", "0"), ("1120", "0", "300")], "Rent")
    post(date(2026, 1, 3), [("1120", "450", "0"), ("4100", "0", "450")], "Consulting fee")
    post(date(2026, 1, 8), [("5310", "25.50", "0"), ("1120", "0", "25.50")], "Power bill")
    post(date(2026, 1, 12), [("1120", "200", "0"), ("4100", "0", "200")], "Consulting fee")


class TestAccountHistory:

    def test_running_balance_debit_normal(self, cash_history, ledger_selector, chart_service):
        bank = chart_service.get_account("1120")

        lines = list(ledger_selector.get_entries_for_account(bank.id))

        assert [l.running_balance for l in lines] == [
            Decimal("1000.00"),
            Decimal("700.00"),
            Decimal("1150.00"),
            Decimal("1124.50"),
            Decimal("1324.50"),
        ]
        assert [l.entry_number for l in lines[:3]] == ["JE-2025-0001", "JE-2026-0001", "JE-2026-0002"]
        assert lines[1].description == "Rent"

    def test_running_balance_credit_normal(self, cash_history, ledger_selector, chart_service):
        revenue = chart_service.get_account("4100")

        lines = list(ledger_selector.get_entries_for_account(revenue.id))

        assert [l.running_balance for l in lines] == [Decimal("450.00"), Decimal("650.00")]

    def test_range_starts_from_opening_balance(self, cash_history, ledger_selector, chart_service):
        bank = chart_service.get_account("1120")

        lines = list(
            ledger_selector.get_entries_for_account(
                bank.id, start=date(2026, 1, 1), end=date(2026, 1, 8)
            )
        )

        assert len(lines) == 3
        assert lines[0].running_balance == Decimal("700.00")
        assert lines[-1].running_balance == Decimal("1124.50")
        assert ledger_selector.opening_balance(bank.id, date(2026, 1, 1)) == Decimal("1000.00")

    @pytest.mark.parametrize("page_size", [1, 2, 3, 500])
    def test_paging_is_complete_and_ordered(
        self, session, tenant_id, cash_history, chart_service, page_size,
    ):
        bank = chart_service.get_account("1120")
        selector = LedgerSelector(session, tenant_id, page_size=page_size)

        lines = list(selector.get_entries_for_account(bank.id))

        keys = [(l.entry_date, l.entry_number, l.line_number) for l in lines]
        assert len(keys) == 5
        assert keys == sorted(keys)
        assert len(set(keys)) == 5

    def test_restartable(self, cash_history, ledger_selector, chart_service):
        bank = chart_service.get_account("1120")
        first = list(ledger_selector.get_entries_for_account(bank.id))
        second = list(ledger_selector.get_entries_for_account(bank.id))
        assert first == second

    @pytest.mark.parametrize("page_size", [1, 500])
    def test_same_day_order_past_four_digit_numbers(
        self, session, tenant_id, open_books, post, chart_service, page_size,
    ):
        session.add(SequenceCounter(name=journal_sequence_name(tenant_id, 2026), current_value=9998))
        session.flush()
        post(date(2026, 1, 9), [("1120", "100", "0"), ("4100", "0", "100")])
        post(date(2026, 1, 9), [("1120", "50", "0"), ("4100", "0", "50")])
        bank = chart_service.get_account("1120")
        selector = LedgerSelector(session, tenant_id, page_size=page_size)

        lines = list(selector.get_entries_for_account(bank.id))

        assert [l.entry_number for l in lines] == ["JE-2026-9999", "JE-2026-10000"]
        assert [l.running_balance for l in lines] == [Decimal("100.00"), Decimal("150.00")]

    def test_unknown_account(self, ledger_selector):
        with pytest.raises(AccountNotFoundError):
            next(ledger_selector.get_entries_for_account(uuid4()))

    def test_inverted_range(self, cash_history, ledger_selector, chart_service):
        bank = chart_service.get_account("1120")
        with pytest.raises(ValueError):
            next(ledger_selector.get_entries_for_account(
                bank.id, start=date(2026, 2, 1), end=date(2026, 1, 1)
            ))

    def test_page_size_must_be_positive(self, session, tenant_id):
        with pytest.raises(ValueError):
            LedgerSelector(session, tenant_id, page_size=0)


class TestAggregates:

    def test_account_balances(self, cash_history, ledger_selector):
        balances = {b.account_code: b for b in ledger_selector.account_balances()}

        assert list(balances) == sorted(balances)
        assert balances["1120"].balance == Decimal("1324.50")
        assert balances["1120"].net_debit == Decimal("1324.50")
        assert balances["4100"].balance == Decimal("650.00")
        assert balances["4100"].net_debit == Decimal("-650.00")

    def test_window(self, cash_history, ledger_selector):
        january = {
            b.account_code: b
            for b in ledger_selector.account_balances(
                as_of=date(2026, 1, 31), since=date(2026, 1, 1)
            )
        }
        assert "3100" not in january
        assert january["1120"].balance == Decimal("324.50")

        prior = {b.account_code for b in ledger_selector.account_balances(before=date(2026, 1, 1))}
        assert prior == {"1120", "3100"}

    def test_totals_balance(self, cash_history, ledger_selector):
        debits, credits = ledger_selector.total_debits_credits()
        assert debits == credits == Decimal("1975.50")

        debits, _ = ledger_selector.total_debits_credits(as_of=date(2025, 12, 31))
        assert debits == Decimal("1000.00")

    def test_tenant_isolation(self, session, cash_history, other_tenant_id):
        other = LedgerSelector(session, other_tenant_id)
        assert other.account_balances() == []
        assert other.total_debits_credits() == (Decimal("0"), Decimal("0"))
