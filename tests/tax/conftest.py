"""
Payroll fixtures for the tax tests.

January 2026 payroll, paid 2026-01-30:
    emp-ana    resident      gross 1000.00  WIT  50.00  INSS 40.00 / 60.00
    emp-joao   non-resident  gross 1000.00  WIT 100.00  INSS 40.00 / 60.00
    emp-maria  terminated    gross  600.00  WIT  10.00  INSS 24.00 / 36.00

A December 2025 run pays Ana only.  A draft February run must never be
counted.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_modules.tax.models import (
    CompanyDetails,
    Deduction,
    DeductionType,
    Employee,
    EmployeeStatus,
    EmployerTax,
    PayrollRecord,
    PayrollRun,
    PayrollRunStatus,
)
from ledger_modules.tax.returns import TaxReturnGenerator
from ledger_modules.tax.sources import (
    InMemoryCompanySettings,
    InMemoryEmployeeDirectory,
    InMemoryHolidayOverrides,
    InMemoryPayrollSource,
)

ANA = Employee(
    id="emp-ana",
    first_name="Ana",
    last_name="Soares",
    hire_date=date(2024, 2, 1),
    is_resident=True,
    inss_number="INSS-001",
    tin_number="TIN-001",
    address="Rua de Balide, Dili",
)
JOAO = Employee(
    id="emp-joao",
    first_name="Joao",
    last_name="Pereira",
    hire_date=date(2025, 6, 1),
    is_resident=False,
    tin_number="TIN-002",
)
MARIA = Employee(
    id="emp-maria",
    first_name="Maria",
    last_name="Belo",
    status=EmployeeStatus.TERMINATED,
    hire_date=date(2023, 1, 9),
    termination_date=date(2026, 1, 20),
)


def payroll_record(employee_id, run_id, gross, wit, inss_employee, inss_employer, base=None):
    return PayrollRecord(
        employee_id=employee_id,
        payroll_run_id=run_id,
        gross_pay=Decimal(gross),
        deductions=(
            Deduction(DeductionType.INCOME_TAX, Decimal(wit)),
            Deduction(DeductionType.SOCIAL_SECURITY, Decimal(inss_employee)),
        ),
        employer_taxes=(EmployerTax(DeductionType.SOCIAL_SECURITY, Decimal(inss_employer)),),
        contribution_base=Decimal(base) if base is not None else None,
    )


@pytest.fixture
def employees(tenant_id):
    directory = InMemoryEmployeeDirectory()
    directory.add(tenant_id, ANA, JOAO, MARIA)
    return directory


@pytest.fixture
def payroll(tenant_id):
    source = InMemoryPayrollSource()
    source.add_run(
        tenant_id,
        PayrollRun("run-2025-12", date(2025, 12, 30), PayrollRunStatus.PAID),
        [payroll_record("emp-ana", "run-2025-12", "1000.00", "50.00", "40.00", "60.00")],
    )
    source.add_run(
        tenant_id,
        PayrollRun(
            "run-2026-01", date(2026, 1, 30), PayrollRunStatus.PAID,
            period_start=date(2026, 1, 1), period_end=date(2026, 1, 31),
        ),
        [
            payroll_record("emp-ana", "run-2026-01", "1000.00", "50.00", "40.00", "60.00"),
            payroll_record("emp-joao", "run-2026-01", "1000.00", "100.00", "40.00", "60.00", base="1000.00"),
            payroll_record("emp-maria", "run-2026-01", "600.00", "10.00", "24.00", "36.00"),
        ],
    )
    source.add_run(
        tenant_id,
        PayrollRun("run-2026-02-draft", date(2026, 1, 31), PayrollRunStatus.DRAFT),
        [payroll_record("emp-ana", "run-2026-02-draft", "9999.00", "999.00", "99.00", "99.00")],
    )
    return source


@pytest.fixture
def company_settings(tenant_id):
    settings = InMemoryCompanySettings()
    settings.set_company(
        tenant_id,
        CompanyDetails(
            legal_name="Loja Dili Lda",
            trading_name="Loja Dili",
            tin_number="1000234",
            registered_address="Avenida Presidente Nicolau Lobato, Dili",
        ),
    )
    return settings


@pytest.fixture
def return_generator(tenant_id, payroll, employees, company_settings, deterministic_clock):
    return TaxReturnGenerator(
        tenant_id, payroll, employees, company_settings, clock=deterministic_clock
    )


@pytest.fixture
def holiday_overrides():
    return InMemoryHolidayOverrides()


@pytest.fixture
def make_record():
    return payroll_record
