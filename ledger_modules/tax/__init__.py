"""
Statutory Tax Module (``ledger_modules.tax``).

Responsibility
--------------
Timor-Leste payroll taxes: WIT (Wage Income Tax) and INSS (social
security) computation, monthly and annual returns, holiday-adjusted
statutory due dates, and the filing tracker.

Architecture position
---------------------
**Modules layer**.  Payroll, employees, company settings and holiday
overrides are read through the protocols in ``sources.py``; only the
filing tracker writes to the database.

Audit relevance
---------------
Stored filings freeze the return as generated.  Generation and filing
are written to the audit log.
"""

from ledger_modules.tax.calculations import (
    INSSResult,
    WITResult,
    calculate_inss,
    calculate_wit,
    contribution_base_from_employee_inss,
)
from ledger_modules.tax.config import TaxFilingConfig
from ledger_modules.tax.due_dates import DueDateCalculator, days_until_due
from ledger_modules.tax.holidays import (
    HolidayCalendar,
    HolidayOverrides,
    adjust_to_next_business_day,
    easter_sunday,
    timor_leste_holidays,
)
from ledger_modules.tax.models import (
    AnnualWITReturn,
    CompanyDetails,
    Deduction,
    DeductionType,
    Employee,
    EmployeeStatus,
    EmployeeWITCertificate,
    EmployerTax,
    FilingDueDate,
    FilingStatusSummary,
    FilingTask,
    HolidayOverride,
    MonthlyINSSReturn,
    MonthlyWITReturn,
    PayrollRecord,
    PayrollRun,
    PayrollRunStatus,
    Signatory,
    SubmissionMethod,
    TaxFiling,
    TaxFilingStatus,
    TaxFilingType,
)
from ledger_modules.tax.returns import TaxReturnGenerator
from ledger_modules.tax.service import TaxFilingService

__all__ = [
    "AnnualWITReturn",
    "CompanyDetails",
    "Deduction",
    "DeductionType",
    "DueDateCalculator",
    "Employee",
    "EmployeeStatus",
    "EmployeeWITCertificate",
    "EmployerTax",
    "FilingDueDate",
    "FilingStatusSummary",
    "FilingTask",
    "HolidayCalendar",
    "HolidayOverride",
    "HolidayOverrides",
    "INSSResult",
    "MonthlyINSSReturn",
    "MonthlyWITReturn",
    "PayrollRecord",
    "PayrollRun",
    "PayrollRunStatus",
    "Signatory",
    "SubmissionMethod",
    "TaxFiling",
    "TaxFilingConfig",
    "TaxFilingService",
    "TaxFilingStatus",
    "TaxFilingType",
    "TaxReturnGenerator",
    "WITResult",
    "adjust_to_next_business_day",
    "calculate_inss",
    "calculate_wit",
    "contribution_base_from_employee_inss",
    "days_until_due",
    "easter_sunday",
    "timor_leste_holidays",
]
