"""
Collaborator contracts for the tax engine.

Payroll, the employee directory, company settings and holiday overrides
are owned by other systems.  The tax engine reads them through these
protocols; the in-memory implementations serve tests and embedding.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable, Protocol

from ledger_modules.tax.models import (
    CompanyDetails,
    Employee,
    HolidayOverride,
    PayrollRecord,
    PayrollRun,
)


class PayrollSource(Protocol):
    def list_runs(self, tenant_id: str, start: date, end: date) -> list[PayrollRun]:
        """Runs of any status whose pay date is in [start, end]."""
        ...

    def list_records(self, tenant_id: str, run_id: str) -> list[PayrollRecord]: ...


class EmployeeDirectory(Protocol):
    def list_employees(self, tenant_id: str) -> list[Employee]:
        """All employees, including inactive and terminated ones."""
        ...

    def get_employee(self, tenant_id: str, employee_id: str) -> Employee | None: ...


class CompanySettingsSource(Protocol):
    def get_company(self, tenant_id: str) -> CompanyDetails | None: ...


class HolidayOverrideSource(Protocol):
    def list_overrides(self, tenant_id: str, year: int) -> list[HolidayOverride]: ...


class InMemoryPayrollSource:
    def __init__(self) -> None:
        self._runs: dict[str, list[PayrollRun]] = defaultdict(list)
        self._records: dict[tuple[str, str], list[PayrollRecord]] = defaultdict(list)

    def add_run(
        self,
        tenant_id: str,
        run: PayrollRun,
        records: Iterable[PayrollRecord] = (),
    ) -> None:
        self._runs[tenant_id].append(run)
        self._records[(tenant_id, run.id)].extend(records)

    def list_runs(self, tenant_id: str, start: date, end: date) -> list[PayrollRun]:
        return sorted(
            (r for r in self._runs[tenant_id] if start <= r.pay_date <= end),
            key=lambda r: (r.pay_date, r.id),
        )

    def list_records(self, tenant_id: str, run_id: str) -> list[PayrollRecord]:
        return list(self._records[(tenant_id, run_id)])


class InMemoryEmployeeDirectory:
    def __init__(self) -> None:
        self._employees: dict[str, dict[str, Employee]] = defaultdict(dict)

    def add(self, tenant_id: str, *employees: Employee) -> None:
        for employee in employees:
            self._employees[tenant_id][employee.id] = employee

    def list_employees(self, tenant_id: str) -> list[Employee]:
        return list(self._employees[tenant_id].values())

    def get_employee(self, tenant_id: str, employee_id: str) -> Employee | None:
        return self._employees[tenant_id].get(employee_id)


class InMemoryCompanySettings:
    def __init__(self) -> None:
        self._companies: dict[str, CompanyDetails] = {}

    def set_company(self, tenant_id: str, company: CompanyDetails) -> None:
        self._companies[tenant_id] = company

    def get_company(self, tenant_id: str) -> CompanyDetails | None:
        return self._companies.get(tenant_id)


class InMemoryHolidayOverrides:
    """Counts fetches so callers can check per-batch caching."""

    def __init__(self) -> None:
        self._overrides: dict[str, list[HolidayOverride]] = defaultdict(list)
        self.fetch_count = 0

    def add(self, tenant_id: str, *overrides: HolidayOverride) -> None:
        self._overrides[tenant_id].extend(overrides)

    def list_overrides(self, tenant_id: str, year: int) -> list[HolidayOverride]:
        self.fetch_count += 1
        return [o for o in self._overrides[tenant_id] if o.date.year == year]
