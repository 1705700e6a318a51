"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import Account
from ledger_kernel.models.audit_record import AuditRecord
from ledger_kernel.models.fiscal_period import FiscalPeriod, FiscalYear
from ledger_kernel.models.journal import JournalEntry, JournalLine

__all__ = [
    "Account",
    "AuditRecord",
    "FiscalYear",
    "FiscalPeriod",
    "JournalEntry",
    "JournalLine",
]
