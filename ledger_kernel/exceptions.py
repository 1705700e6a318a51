"""
Typed exception hierarchy for the ledger kernel and its modules.

Every error a caller can act on has its own class, a machine-readable
``code`` class attribute, and structured attributes carrying the data
needed to render an actionable message or API response.  Callers catch
by type, never by message text:

    try:
        journal.post_entry(entry_id, actor_id)
    except PeriodClosedError as e:
        api_response(code=e.code, period=e.period_code)

Hierarchy:

    LedgerError (base)
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- InactiveAccountError
    |   +-- DuplicateAccountCodeError
    |   +-- InvalidAccountDefinitionError
    |   +-- SystemAccountError
    |   +-- AccountHasBalanceError
    |   +-- ChartNotInitializedError
    |
    +-- PostingError
    |   +-- UnbalancedEntryError
    |   +-- InvalidJournalLineError
    |   +-- EntryNotFoundError
    |   +-- InvalidEntryStateError
    |   +-- AlreadyVoidError
    |
    +-- PeriodError
    |   +-- PeriodNotFoundError
    |   +-- PeriodClosedError
    |   |   +-- PeriodLockedError
    |   +-- InvalidPeriodTransitionError
    |   +-- FiscalYearExistsError
    |   +-- FiscalYearNotFoundError
    |   +-- FiscalYearNotClosableError
    |   +-- OpeningBalancesAlreadyPostedError
    |
    +-- TaxError
        +-- InvalidTaxPeriodError
        +-- FilingNotFoundError
        +-- FilingAlreadyFiledError
        +-- EmployeeNotFoundError
        +-- NoPayrollRecordsError

All of these are business-rule violations raised synchronously to the
immediate caller.  None is retried automatically.

PeriodLockedError subclasses PeriodClosedError: a locked period is a
closed period that can no longer be reopened, so code that only cares
about "not open" can catch the parent.
"""


class LedgerError(Exception):
    """
    Base exception for all ledger errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "LEDGER_ERROR"


# Chart of accounts


class AccountError(LedgerError):
    """Base exception for chart-of-accounts errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account does not exist for this tenant."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Account not found: {account_ref}")


class InactiveAccountError(AccountError):
    """Account exists but is deactivated."""

    code: str = "INACTIVE_ACCOUNT"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account {account_code} is inactive")


class DuplicateAccountCodeError(AccountError):
    """An account with this code already exists for the tenant."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code {account_code} already exists")


class InvalidAccountDefinitionError(AccountError):
    """Account definition violates a chart rule (sub-type, parent, code)."""

    code: str = "INVALID_ACCOUNT_DEFINITION"

    def __init__(self, account_code: str, reason: str):
        self.account_code = account_code
        self.reason = reason
        super().__init__(f"Invalid account {account_code}: {reason}")


class SystemAccountError(AccountError):
    """Operation not permitted on a system account."""

    code: str = "SYSTEM_ACCOUNT"

    def __init__(self, account_code: str, operation: str):
        self.account_code = account_code
        self.operation = operation
        super().__init__(
            f"Cannot {operation} system account {account_code}"
        )


class AccountHasBalanceError(AccountError):
    """Account still carries a posted balance and cannot be deactivated."""

    code: str = "ACCOUNT_HAS_BALANCE"

    def __init__(self, account_code: str, balance: str):
        self.account_code = account_code
        self.balance = balance
        super().__init__(
            f"Account {account_code} has posted balance {balance}; "
            "zero it before deactivating"
        )


class ChartNotInitializedError(AccountError):
    """Tenant has no chart of accounts yet."""

    code: str = "CHART_NOT_INITIALIZED"

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"Chart of accounts not initialized for tenant {tenant_id}")


# Journal posting


class PostingError(LedgerError):
    """Base exception for journal entry errors."""

    code: str = "POSTING_ERROR"


class UnbalancedEntryError(PostingError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str):
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Entry is not balanced: debits={debits}, credits={credits}"
        )


class InvalidJournalLineError(PostingError):
    """Line amounts or line count violate the double-entry rules."""

    code: str = "INVALID_JOURNAL_LINE"

    def __init__(self, line_number: int, reason: str):
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Invalid journal line {line_number}: {reason}")


class EntryNotFoundError(PostingError):
    """Journal entry does not exist for this tenant."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class InvalidEntryStateError(PostingError):
    """Entry is not in the status the operation requires."""

    code: str = "INVALID_ENTRY_STATE"

    def __init__(self, entry_id: str, status: str, required: str):
        self.entry_id = entry_id
        self.status = status
        self.required = required
        super().__init__(
            f"Journal entry {entry_id} is {status}; operation requires {required}"
        )


class AlreadyVoidError(PostingError):
    """Entry has already been voided."""

    code: str = "ALREADY_VOID"

    def __init__(self, entry_id: str, entry_number: str):
        self.entry_id = entry_id
        self.entry_number = entry_number
        super().__init__(f"Journal entry {entry_number} is already void")


# Fiscal periods


class PeriodError(LedgerError):
    """Base exception for fiscal period errors."""

    code: str = "PERIOD_ERROR"


class PeriodNotFoundError(PeriodError):
    """No fiscal period covers the date, or the id is unknown."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"No fiscal period found for {reference}")


class PeriodClosedError(PeriodError):
    """Attempted to post into a period that is not open."""

    code: str = "PERIOD_CLOSED"

    def __init__(self, period_code: str, entry_date: str, message: str | None = None):
        self.period_code = period_code
        self.entry_date = entry_date
        super().__init__(
            message
            or f"Cannot post to closed period {period_code} (date: {entry_date})"
        )


class PeriodLockedError(PeriodClosedError):
    """Attempted to post or void against a locked period."""

    code: str = "PERIOD_LOCKED"

    def __init__(self, period_code: str, entry_date: str):
        super().__init__(
            period_code,
            entry_date,
            f"Period {period_code} is locked (date: {entry_date})",
        )


class InvalidPeriodTransitionError(PeriodError):
    """Fiscal period state machine does not allow this move."""

    code: str = "INVALID_PERIOD_TRANSITION"

    def __init__(self, period_code: str, current_status: str, target_status: str):
        self.period_code = period_code
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Period {period_code} cannot move from {current_status} "
            f"to {target_status}"
        )


class FiscalYearExistsError(PeriodError):
    """Fiscal year already exists for the tenant."""

    code: str = "FISCAL_YEAR_EXISTS"

    def __init__(self, year: int):
        self.year = year
        super().__init__(f"Fiscal year {year} already exists")


class FiscalYearNotFoundError(PeriodError):
    """Fiscal year does not exist for the tenant."""

    code: str = "FISCAL_YEAR_NOT_FOUND"

    def __init__(self, year: int):
        self.year = year
        super().__init__(f"Fiscal year {year} not found")


class FiscalYearNotClosableError(PeriodError):
    """Fiscal year still has open periods."""

    code: str = "FISCAL_YEAR_NOT_CLOSABLE"

    def __init__(self, year: int, open_periods: list[int]):
        self.year = year
        self.open_periods = open_periods
        super().__init__(
            f"Fiscal year {year} has open periods: {open_periods}"
        )


class OpeningBalancesAlreadyPostedError(PeriodError):
    """Opening balances were already posted for the fiscal year."""

    code: str = "OPENING_BALANCES_ALREADY_POSTED"

    def __init__(self, year: int, entry_id: str | None):
        self.year = year
        self.entry_id = entry_id
        super().__init__(f"Opening balances already posted for {year}")


# Tax filing


class TaxError(LedgerError):
    """Base exception for statutory tax errors."""

    code: str = "TAX_ERROR"


class InvalidTaxPeriodError(TaxError):
    """Reporting period string is malformed for the filing type."""

    code: str = "INVALID_TAX_PERIOD"

    def __init__(self, period: str, expected: str):
        self.period = period
        self.expected = expected
        super().__init__(f"Invalid tax period {period!r}, expected {expected}")


class FilingNotFoundError(TaxError):
    """Tax filing does not exist for this tenant."""

    code: str = "FILING_NOT_FOUND"

    def __init__(self, filing_id: str):
        self.filing_id = filing_id
        super().__init__(f"Tax filing not found: {filing_id}")


class FilingAlreadyFiledError(TaxError):
    """Regeneration would overwrite a filing that was already submitted."""

    code: str = "FILING_ALREADY_FILED"

    def __init__(self, filing_type: str, period: str):
        self.filing_type = filing_type
        self.period = period
        super().__init__(
            f"{filing_type} filing for {period} is already filed"
        )


class EmployeeNotFoundError(TaxError):
    """Employee directory has no such employee."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


class NoPayrollRecordsError(TaxError):
    """Employee has no paid payroll records in the tax year."""

    code: str = "NO_PAYROLL_RECORDS"

    def __init__(self, employee_id: str, tax_year: int):
        self.employee_id = employee_id
        self.tax_year = tax_year
        super().__init__(
            f"No payroll records found for employee {employee_id} in {tax_year}"
        )
