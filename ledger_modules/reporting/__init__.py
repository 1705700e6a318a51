"""
Financial Reporting Module (``ledger_modules.reporting``).

Responsibility
--------------
Read-only module that generates the trial balance, income statement and
balance sheet from the posted journal.

Architecture position
---------------------
**Modules layer** -- reporting never posts journal entries.  Statement
computation is implemented as pure functions in ``statements.py``;
``ReportingService`` only loads data.

Invariants enforced
-------------------
* No stored balances: every figure derives from posted journal lines.
* Revenue and expense balances reach the balance sheet only through the
  derived earnings rows.

Audit relevance
---------------
Statements are deterministic and reproducible from the journal.  Report
metadata carries the generation timestamp and the report window.
"""

from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    IncomeStatementReport,
    ReportMetadata,
    ReportType,
    StatementRow,
    TrialBalanceReport,
    TrialBalanceRow,
)
from ledger_modules.reporting.service import ReportingService
from ledger_modules.reporting.statements import render_to_dict

__all__ = [
    "BalanceSheetReport",
    "IncomeStatementReport",
    "ReportMetadata",
    "ReportType",
    "ReportingConfig",
    "ReportingService",
    "StatementRow",
    "TrialBalanceReport",
    "TrialBalanceRow",
    "render_to_dict",
]
