"""
Tax Domain Models.

Responsibility:
    Frozen dataclass DTOs for statutory payroll taxation in Timor-Leste:
    the payroll and employee contracts consumed from collaborators, the
    WIT/INSS return snapshots produced from them, and the filing tracker
    records.

Architecture:
    ledger_modules -- thin glue (this layer).
    Pure data containers with no I/O and no ORM coupling.

Invariants:
    - All models are ``frozen=True``.
    - All monetary fields use ``Decimal`` -- NEVER ``float``.
    - A ``PayrollRecord`` carries typed deductions and employer taxes;
      WIT and INSS amounts are found by ``type``, never by matching
      free-text descriptions.

Failure modes:
    - Construction with invalid enum values raises ``ValueError`` from
      the ``Enum`` constructor.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from ledger_kernel.domain.money import ZERO


# =========================================================================
# Collaborator contracts
# =========================================================================


class PayrollRunStatus(str, Enum):
    DRAFT = "draft"
    PROCESSING = "processing"
    APPROVED = "approved"
    PAID = "paid"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PayrollRun:
    """A payroll run; only ``paid`` runs count for statutory returns."""

    id: str
    pay_date: date
    status: PayrollRunStatus
    period_start: date | None = None
    period_end: date | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == PayrollRunStatus.PAID


class DeductionType(str, Enum):
    """Deduction and employer-tax categories the returns care about."""

    INCOME_TAX = "income_tax"
    SOCIAL_SECURITY = "social_security"
    OTHER = "other"


@dataclass(frozen=True)
class Deduction:
    type: DeductionType
    amount: Decimal
    description: str = ""


@dataclass(frozen=True)
class EmployerTax:
    type: DeductionType
    amount: Decimal
    description: str = ""


def _sum_of(items: tuple[Deduction, ...] | tuple[EmployerTax, ...], kind: DeductionType) -> Decimal:
    return sum((i.amount for i in items if i.type == kind), ZERO)


@dataclass(frozen=True)
class PayrollRecord:
    """
    One employee's pay in one payroll run.

    ``contribution_base`` is the INSS base when payroll stored it; when
    absent, the INSS return reconstructs it from the employee
    contribution.
    """

    employee_id: str
    payroll_run_id: str
    gross_pay: Decimal
    deductions: tuple[Deduction, ...] = ()
    employer_taxes: tuple[EmployerTax, ...] = ()
    contribution_base: Decimal | None = None

    @property
    def wit_withheld(self) -> Decimal:
        return _sum_of(self.deductions, DeductionType.INCOME_TAX)

    @property
    def inss_employee(self) -> Decimal:
        return _sum_of(self.deductions, DeductionType.SOCIAL_SECURITY)

    @property
    def inss_employer(self) -> Decimal:
        return _sum_of(self.employer_taxes, DeductionType.SOCIAL_SECURITY)


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class Employee:
    id: str
    first_name: str
    last_name: str
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    hire_date: date | None = None
    termination_date: date | None = None
    is_resident: bool = True
    inss_number: str | None = None
    tin_number: str | None = None
    address: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE


@dataclass(frozen=True)
class CompanyDetails:
    legal_name: str = ""
    trading_name: str = ""
    tin_number: str = ""
    registered_address: str = ""

    @property
    def employer_name(self) -> str:
        return self.legal_name or self.trading_name


@dataclass(frozen=True)
class Signatory:
    name: str
    position: str


@dataclass(frozen=True)
class HolidayOverride:
    """A tenant's change to the public holiday list for one date."""

    date: date
    is_holiday: bool
    name: str | None = None


# =========================================================================
# Returns
# =========================================================================


@dataclass(frozen=True)
class MonthlyWITEmployeeRecord:
    employee_id: str
    full_name: str
    is_resident: bool
    gross_wages: Decimal
    taxable_wages: Decimal
    wit_withheld: Decimal
    tin_number: str | None = None


@dataclass(frozen=True)
class MonthlyWITReturn:
    employer_tin: str
    employer_name: str
    employer_address: str
    reporting_period: str
    period_start_date: date
    period_end_date: date
    total_employees: int
    total_resident_employees: int
    total_non_resident_employees: int
    total_gross_wages: Decimal
    total_taxable_wages: Decimal
    total_wit_withheld: Decimal
    employees: tuple[MonthlyWITEmployeeRecord, ...] = ()


@dataclass(frozen=True)
class MonthlyINSSEmployeeRecord:
    employee_id: str
    full_name: str
    contribution_base: Decimal
    employee_contribution: Decimal
    employer_contribution: Decimal
    total_contribution: Decimal
    inss_number: str | None = None


@dataclass(frozen=True)
class MonthlyINSSReturn:
    employer_tin: str
    employer_name: str
    employer_address: str
    reporting_period: str
    period_start_date: date
    period_end_date: date
    total_employees: int
    total_contribution_base: Decimal
    total_employee_contributions: Decimal
    total_employer_contributions: Decimal
    total_contributions: Decimal
    employees: tuple[MonthlyINSSEmployeeRecord, ...] = ()


@dataclass(frozen=True)
class AnnualWITEmployeeRecord:
    employee_id: str
    full_name: str
    is_resident: bool
    months_worked: int
    total_gross_wages: Decimal
    total_wit_withheld: Decimal
    start_date: date | None = None
    end_date: date | None = None
    tin_number: str | None = None


@dataclass(frozen=True)
class AnnualWITReturn:
    employer_tin: str
    employer_name: str
    employer_address: str
    tax_year: int
    total_employees_in_year: int
    total_gross_wages_paid: Decimal
    total_wit_withheld: Decimal
    employees: tuple[AnnualWITEmployeeRecord, ...] = ()


@dataclass(frozen=True)
class EmployeeWITCertificate:
    employer_name: str
    employer_tin: str
    employer_address: str
    employee_id: str
    employee_name: str
    employee_address: str
    tax_year: int
    employment_start_date: date | None
    employment_end_date: date | None
    total_gross_wages: Decimal
    total_wit_withheld: Decimal
    certification_date: date
    authorized_signatory: str
    signatory_position: str
    employee_tin: str | None = None


TaxReturn = MonthlyWITReturn | MonthlyINSSReturn | AnnualWITReturn


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def snapshot_of(tax_return: TaxReturn) -> dict[str, Any]:
    """JSON-ready dict of a return; amounts keep their cents as strings."""
    return dataclasses.asdict(
        tax_return,
        dict_factory=lambda pairs: {k: _plain(v) for k, v in pairs},
    )


# =========================================================================
# Filing tracker
# =========================================================================


class TaxFilingType(str, Enum):
    MONTHLY_WIT = "monthly_wit"
    ANNUAL_WIT = "annual_wit"
    INSS_MONTHLY = "inss_monthly"


class TaxFilingStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    OVERDUE = "overdue"
    FILED = "filed"


class SubmissionMethod(str, Enum):
    ETAX = "etax"
    BNU_PAPER = "bnu_paper"
    INSS_PORTAL = "inss_portal"
    NOT_FILED = "not_filed"


class FilingTask(str, Enum):
    """Distinguishes the two INSS deadlines of one period."""

    STATEMENT = "statement"
    PAYMENT = "payment"


@dataclass(frozen=True)
class TaxFiling:
    """Stored filing: the return snapshot plus its submission state."""

    id: UUID
    filing_type: TaxFilingType
    period: str
    status: TaxFilingStatus
    due_date: date
    data_snapshot: dict[str, Any]
    total_wages: Decimal
    total_wit_withheld: Decimal
    employee_count: int
    total_inss_employee: Decimal | None = None
    total_inss_employer: Decimal | None = None
    filed_date: date | None = None
    submission_method: SubmissionMethod | None = None
    receipt_number: str | None = None
    notes: str | None = None
    filed_by: UUID | None = None
    created_by_id: UUID | None = None

    @property
    def is_filed(self) -> bool:
        return self.status == TaxFilingStatus.FILED


@dataclass(frozen=True)
class FilingDueDate:
    """One upcoming or past statutory deadline and where it stands."""

    filing_type: TaxFilingType
    period: str
    due_date: date
    status: TaxFilingStatus
    days_until_due: int
    is_overdue: bool
    task: FilingTask | None = None
    filing: TaxFiling | None = None


@dataclass(frozen=True)
class FilingStatusSummary:
    pending: int
    overdue: int
    filed_this_month: int
    next_due: FilingDueDate | None = None
    deadlines: tuple[FilingDueDate, ...] = field(default_factory=tuple)
