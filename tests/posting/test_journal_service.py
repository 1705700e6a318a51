"""
Journal entry creation and posting.

Verifies:
- Debits equal credits to the cent; malformed lines are rejected before
  any entry number is consumed
- Entry numbers are sequential per tenant and fiscal year
- Drafts are invisible to the general ledger until posted
- Postings into closed or missing periods are refused
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.dtos import (
    EntryFilter,
    EntrySource,
    EntryStatus,
    JournalEntryInput,
    JournalLineInput,
)
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    EntryNotFoundError,
    InactiveAccountError,
    InvalidEntryStateError,
    InvalidJournalLineError,
    PeriodClosedError,
    PeriodNotFoundError,
    UnbalancedEntryError,
)
from ledger_kernel.services.audit_service import BestEffortAuditLog, InMemoryAuditSink
from ledger_kernel.services.journal_service import JournalService, validate_lines
from ledger_kernel.services.period_service import PeriodService


def _lines(*rows):
    return tuple(
        JournalLineInput(account_code=code, debit=Decimal(debit), credit=Decimal(credit))
        for code, debit, credit in rows
    )


class TestValidateLines:
    """Pure validation, no database."""

    def test_balanced(self):
        assert validate_lines(_lines(("5200", "100", "0"), ("1120", "0", "100"))) == (
            Decimal("100.00"),
            Decimal("100.00"),
        )

    def test_single_line(self):
        with pytest.raises(InvalidJournalLineError):
            validate_lines(_lines(("5200", "100", "0")))

    def test_both_sides_on_one_line(self):
        with pytest.raises(InvalidJournalLineError, match="both"):
            validate_lines(_lines(("5200", "100", "100"), ("1120", "0", "100")))

    def test_empty_line(self):
        with pytest.raises(InvalidJournalLineError, match="no amount"):
            validate_lines(_lines(("5200", "100", "0"), ("1120", "0", "100"), ("1110", "0", "0")))

    def test_unbalanced(self):
        with pytest.raises(UnbalancedEntryError):
            validate_lines(_lines(("5200", "100.00", "0"), ("1120", "0", "99.99")))

    def test_compared_at_cent_precision(self):
        debit, credit = validate_lines(_lines(("5200", "100.001", "0"), ("1120", "0", "100")))
        assert debit == credit == Decimal("100.00")


class TestCreateEntry:

    def test_post_immediately(self, open_books, post):
        entry = post(date(2026, 1, 10), [("5200", "2550", "0"), ("2110", "0", "2550")])

        assert entry.entry_number == "JE-2026-0001"
        assert entry.status == EntryStatus.POSTED
        assert entry.total_debit == entry.total_credit == Decimal("2550.00")
        assert (entry.fiscal_year, entry.fiscal_period) == (2026, 1)
        assert [line.line_number for line in entry.lines] == [1, 2]
        assert entry.lines[0].account_name == "Rent Expense"

    def test_numbers_sequential_per_year(self, open_books, post):
        first = post(date(2026, 1, 5), [("5200", "10", "0"), ("1110", "0", "10")])
        second = post(date(2026, 1, 6), [("5200", "20", "0"), ("1110", "0", "20")])
        prior_year = post(date(2025, 12, 31), [("5200", "30", "0"), ("1110", "0", "30")])

        assert first.entry_number == "JE-2026-0001"
        assert second.entry_number == "JE-2026-0002"
        assert prior_year.entry_number == "JE-2025-0001"

    def test_rejected_entry_consumes_no_number(self, open_books, post):
        with pytest.raises(UnbalancedEntryError):
            post(date(2026, 1, 5), [("5200", "10", "0"), ("1110", "0", "9")])

        entry = post(date(2026, 1, 5), [("5200", "10", "0"), ("1110", "0", "10")])
        assert entry.entry_number == "JE-2026-0001"

    def test_unknown_account(self, open_books, post):
        with pytest.raises(AccountNotFoundError):
            post(date(2026, 1, 5), [("9999", "10", "0"), ("1110", "0", "10")])

    def test_inactive_account(self, open_books, post, chart_service, test_actor_id):
        chart_service.deactivate_account("5200", test_actor_id)
        with pytest.raises(InactiveAccountError):
            post(date(2026, 1, 5), [("5200", "10", "0"), ("1110", "0", "10")])

    def test_no_period_for_date(self, open_books, post):
        with pytest.raises(PeriodNotFoundError):
            post(date(2024, 6, 1), [("5200", "10", "0"), ("1110", "0", "10")])

    def test_closed_period(self, open_books, post, period_service, test_actor_id):
        december = period_service.get_period_for_date(date(2025, 12, 1))
        period_service.close_period(december.id, test_actor_id)

        with pytest.raises(PeriodClosedError):
            post(date(2025, 12, 15), [("5200", "10", "0"), ("1110", "0", "10")])

    def test_draft_may_be_dated_in_closed_period(
        self, open_books, post, period_service, test_actor_id,
    ):
        december = period_service.get_period_for_date(date(2025, 12, 1))
        period_service.close_period(december.id, test_actor_id)

        draft = post(date(2025, 12, 15), [("5200", "10", "0"), ("1110", "0", "10")], draft=True)
        assert draft.status == EntryStatus.DRAFT


class TestDrafts:

    def test_draft_invisible_to_ledger(self, open_books, post, ledger_selector):
        post(date(2026, 1, 5), [("5200", "75", "0"), ("1110", "0", "75")], draft=True)

        assert ledger_selector.account_balances() == []
        assert ledger_selector.total_debits_credits() == (Decimal("0"), Decimal("0"))

    def test_post_draft(self, open_books, post, journal_service, ledger_selector, test_actor_id):
        draft = post(date(2026, 1, 5), [("5200", "75", "0"), ("1110", "0", "75")], draft=True)

        posted = journal_service.post_entry(draft.id, test_actor_id)

        assert posted.status == EntryStatus.POSTED
        assert posted.state.posted_by_id == test_actor_id
        assert ledger_selector.total_debits_credits() == (Decimal("75.00"), Decimal("75.00"))

    def test_post_twice(self, open_books, post, journal_service, test_actor_id):
        entry = post(date(2026, 1, 5), [("5200", "75", "0"), ("1110", "0", "75")])
        with pytest.raises(InvalidEntryStateError):
            journal_service.post_entry(entry.id, test_actor_id)

    def test_post_draft_into_closed_period(
        self, open_books, post, journal_service, period_service, test_actor_id,
    ):
        draft = post(date(2026, 1, 5), [("5200", "75", "0"), ("1110", "0", "75")], draft=True)
        january = period_service.get_period_for_date(date(2026, 1, 5))
        period_service.close_period(january.id, test_actor_id)

        with pytest.raises(PeriodClosedError):
            journal_service.post_entry(draft.id, test_actor_id)
        assert journal_service.get_entry(draft.id).status == EntryStatus.DRAFT

    def test_delete_draft(self, open_books, post, journal_service, test_actor_id):
        draft = post(date(2026, 1, 5), [("5200", "75", "0"), ("1110", "0", "75")], draft=True)
        journal_service.delete_draft(draft.id, test_actor_id)

        assert journal_service.get_entry(draft.id) is None
        with pytest.raises(EntryNotFoundError):
            journal_service.post_entry(draft.id, test_actor_id)

    def test_posted_entry_cannot_be_deleted(self, open_books, post, journal_service, test_actor_id):
        entry = post(date(2026, 1, 5), [("5200", "75", "0"), ("1110", "0", "75")])
        with pytest.raises(InvalidEntryStateError):
            journal_service.delete_draft(entry.id, test_actor_id)


class TestQueries:

    def test_list_entries_filters(self, open_books, post, journal_service):
        post(date(2026, 1, 5), [("5200", "10", "0"), ("1110", "0", "10")])
        post(date(2026, 1, 9), [("5200", "20", "0"), ("1110", "0", "20")], draft=True)
        post(date(2025, 12, 9), [("5200", "30", "0"), ("1110", "0", "30")])

        newest_first = journal_service.list_entries()
        assert [e.entry_date for e in newest_first] == [
            date(2026, 1, 9), date(2026, 1, 5), date(2025, 12, 9),
        ]
        posted_2026 = journal_service.list_entries(
            EntryFilter(status=EntryStatus.POSTED, fiscal_year=2026)
        )
        assert [e.total_debit for e in posted_2026] == [Decimal("10.00")]
        manual = journal_service.list_entries(EntryFilter(source=EntrySource.MANUAL), limit=1)
        assert len(manual) == 1

    def test_get_by_number(self, open_books, post, journal_service):
        entry = post(date(2026, 1, 5), [("5200", "10", "0"), ("1110", "0", "10")])
        assert journal_service.get_entry_by_number("JE-2026-0001").id == entry.id
        assert journal_service.get_entry_by_number("JE-2026-0099") is None

    def test_tenant_isolation(
        self, session, open_books, post, other_tenant_id, deterministic_clock,
    ):
        entry = post(date(2026, 1, 5), [("5200", "10", "0"), ("1110", "0", "10")])

        other = JournalService(session, other_tenant_id, deterministic_clock)
        assert other.get_entry(entry.id) is None
        assert other.list_entries() == []


class TestAuditTrail:

    def test_posting_is_audited(
        self, session, tenant_id, deterministic_clock, open_books, test_actor_id,
    ):
        sink = InMemoryAuditSink()
        audit = BestEffortAuditLog(sink, tenant_id)
        journal = JournalService(
            session, tenant_id, deterministic_clock,
            periods=PeriodService(session, tenant_id, deterministic_clock, audit),
            audit=audit,
        )

        journal.create_entry(
            JournalEntryInput(
                entry_date=date(2026, 1, 5),
                description="Office rent",
                lines=_lines(("5200", "500", "0"), ("1120", "0", "500")),
            ),
            test_actor_id,
            post=True,
        )

        assert sink.actions(tenant_id) == ["journal.posted"]
        _, record = sink.entries[0]
        assert record.actor_id == test_actor_id
        assert record.metadata["entry_number"] == "JE-2026-0001"

    def test_entry_logged(self, open_books, post, captured_logs):
        post(date(2026, 1, 5), [("5200", "10", "0"), ("1110", "0", "10")])

        messages = [r["message"] for r in captured_logs()]
        assert "entry_created" in messages
        assert "entry_posted" in messages
