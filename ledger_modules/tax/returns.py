"""
Statutory return generation (``ledger_modules.tax.returns``).

Responsibility:
    Builds the monthly WIT return, the monthly INSS return, the annual
    WIT return and the per-employee WIT certificate from payroll data.

Architecture position:
    ledger_modules -- reads collaborators through the protocols in
    ``sources.py``; writes nothing.  The filing tracker persists the
    results.

Invariants enforced:
    - Only payroll runs with status ``paid`` whose pay date falls in the
      period (or tax year) contribute.  Wages are reported in the month
      they were paid, not the month they were earned.
    - Monthly returns list active employees with non-zero pay; the
      annual return lists every employee paid in the year, whatever
      their current status.
    - Every currency figure is rounded half-up to cents; totals are the
      rounded sums of the unrounded per-employee amounts.
    - Given the same payroll data the output is identical.  Nothing is
      recomputed when payroll is corrected after a return was built.

Failure modes:
    - ``InvalidTaxPeriodError`` for a malformed period.
    - ``EmployeeNotFoundError`` / ``NoPayrollRecordsError`` from the
      certificate.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ledger_config import TaxRates
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.money import ZERO, round_money
from ledger_kernel.exceptions import EmployeeNotFoundError, NoPayrollRecordsError
from ledger_kernel.logging_config import get_logger
from ledger_modules.tax.calculations import (
    calculate_wit,
    contribution_base_from_employee_inss,
    default_rates,
)
from ledger_modules.tax.due_dates import period_bounds
from ledger_modules.tax.models import (
    AnnualWITEmployeeRecord,
    AnnualWITReturn,
    CompanyDetails,
    Employee,
    EmployeeWITCertificate,
    MonthlyINSSEmployeeRecord,
    MonthlyINSSReturn,
    MonthlyWITEmployeeRecord,
    MonthlyWITReturn,
    PayrollRecord,
    PayrollRun,
    Signatory,
)
from ledger_modules.tax.sources import (
    CompanySettingsSource,
    EmployeeDirectory,
    PayrollSource,
)

logger = get_logger("modules.tax.returns")


@dataclass
class _EmployeeTotals:
    gross: Decimal = ZERO
    wit: Decimal = ZERO
    inss_employee: Decimal = ZERO
    inss_employer: Decimal = ZERO
    contribution_base: Decimal = ZERO


class TaxReturnGenerator:
    """
    WIT and INSS return builder for one tenant.

    Contract:
        ``company`` may be passed per call; when omitted it is read from
        ``company_source`` (or left blank when there is none).

    Non-goals:
        - Does NOT validate that withheld WIT matches the computed WIT;
          the return reports what payroll withheld.
    """

    def __init__(
        self,
        tenant_id: str,
        payroll: PayrollSource,
        employees: EmployeeDirectory,
        company_source: CompanySettingsSource | None = None,
        rates: TaxRates | None = None,
        clock: Clock | None = None,
    ):
        if not tenant_id:
            raise ValueError("tenant_id is required")
        self.tenant_id = tenant_id
        self.payroll = payroll
        self.employees = employees
        self.company_source = company_source
        self.rates = rates or default_rates()
        self.clock = clock or SystemClock()

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _company(self, company: CompanyDetails | None) -> CompanyDetails:
        if company is not None:
            return company
        if self.company_source is not None:
            found = self.company_source.get_company(self.tenant_id)
            if found is not None:
                return found
        return CompanyDetails()

    def _paid_runs(self, start: date, end: date) -> list[PayrollRun]:
        return [
            run
            for run in self.payroll.list_runs(self.tenant_id, start, end)
            if run.is_paid and start <= run.pay_date <= end
        ]

    def _records(self, runs: list[PayrollRun]) -> list[tuple[PayrollRun, PayrollRecord]]:
        return [
            (run, record)
            for run in runs
            for record in self.payroll.list_records(self.tenant_id, run.id)
            if record.employee_id
        ]

    def _base_of(self, record: PayrollRecord) -> Decimal:
        if record.contribution_base is not None:
            return record.contribution_base
        return contribution_base_from_employee_inss(record.inss_employee, self.rates)

    def _totals_by_employee(self, start: date, end: date) -> dict[str, _EmployeeTotals]:
        totals: dict[str, _EmployeeTotals] = defaultdict(_EmployeeTotals)
        for _, record in self._records(self._paid_runs(start, end)):
            t = totals[record.employee_id]
            t.gross += record.gross_pay
            t.wit += record.wit_withheld
            t.inss_employee += record.inss_employee
            t.inss_employer += record.inss_employer
            t.contribution_base += self._base_of(record)
        return totals

    def _reportable(self, totals: dict[str, _EmployeeTotals], period: str) -> list[tuple[Employee, _EmployeeTotals]]:
        """Active employees with pay in the period, in directory order."""
        result = []
        for employee in self.employees.list_employees(self.tenant_id):
            employee_totals = totals.get(employee.id)
            if employee_totals is None:
                continue
            if not employee.is_active:
                logger.warning(
                    "inactive_employee_pay_excluded",
                    extra={
                        "tenant_id": self.tenant_id,
                        "employee_id": employee.id,
                        "period": period,
                    },
                )
                continue
            result.append((employee, employee_totals))
        return result

    # =========================================================================
    # Public API
    # =========================================================================

    def generate_monthly_wit_return(
        self,
        period: str,
        company: CompanyDetails | None = None,
    ) -> MonthlyWITReturn:
        """
        Monthly WIT return for a ``"YYYY-MM"`` period.

        ``taxable_wages`` follows the statutory rule (gross above the
        resident threshold, or all of it for non-residents);
        ``wit_withheld`` is what payroll actually deducted.
        """
        start, end = period_bounds(period)
        company = self._company(company)

        rows: list[MonthlyWITEmployeeRecord] = []
        total_gross = total_taxable = total_wit = ZERO
        residents = non_residents = 0
        for employee, t in self._reportable(self._totals_by_employee(start, end), period):
            if t.gross == 0:
                continue
            taxable = calculate_wit(t.gross, employee.is_resident, self.rates).taxable_wages
            rows.append(
                MonthlyWITEmployeeRecord(
                    employee_id=employee.id,
                    full_name=employee.full_name,
                    is_resident=employee.is_resident,
                    gross_wages=round_money(t.gross),
                    taxable_wages=taxable,
                    wit_withheld=round_money(t.wit),
                    tin_number=employee.tin_number,
                )
            )
            total_gross += t.gross
            total_taxable += taxable
            total_wit += t.wit
            if employee.is_resident:
                residents += 1
            else:
                non_residents += 1

        result = MonthlyWITReturn(
            employer_tin=company.tin_number,
            employer_name=company.employer_name,
            employer_address=company.registered_address,
            reporting_period=period,
            period_start_date=start,
            period_end_date=end,
            total_employees=len(rows),
            total_resident_employees=residents,
            total_non_resident_employees=non_residents,
            total_gross_wages=round_money(total_gross),
            total_taxable_wages=round_money(total_taxable),
            total_wit_withheld=round_money(total_wit),
            employees=tuple(rows),
        )
        logger.info(
            "monthly_wit_return_generated",
            extra={
                "tenant_id": self.tenant_id,
                "period": period,
                "employee_count": result.total_employees,
                "total_gross_wages": str(result.total_gross_wages),
                "total_wit_withheld": str(result.total_wit_withheld),
            },
        )
        return result

    def generate_monthly_inss_return(
        self,
        period: str,
        company: CompanyDetails | None = None,
    ) -> MonthlyINSSReturn:
        """
        Monthly INSS return for a ``"YYYY-MM"`` period.

        Employees whose employee and employer contributions are both zero
        are omitted.
        """
        start, end = period_bounds(period)
        company = self._company(company)

        rows: list[MonthlyINSSEmployeeRecord] = []
        total_base = total_employee = total_employer = ZERO
        for employee, t in self._reportable(self._totals_by_employee(start, end), period):
            employee_contribution = round_money(t.inss_employee)
            employer_contribution = round_money(t.inss_employer)
            if employee_contribution == 0 and employer_contribution == 0:
                continue
            base = round_money(t.contribution_base)
            rows.append(
                MonthlyINSSEmployeeRecord(
                    employee_id=employee.id,
                    full_name=employee.full_name,
                    contribution_base=base,
                    employee_contribution=employee_contribution,
                    employer_contribution=employer_contribution,
                    total_contribution=employee_contribution + employer_contribution,
                    inss_number=employee.inss_number,
                )
            )
            total_base += base
            total_employee += employee_contribution
            total_employer += employer_contribution

        result = MonthlyINSSReturn(
            employer_tin=company.tin_number,
            employer_name=company.employer_name,
            employer_address=company.registered_address,
            reporting_period=period,
            period_start_date=start,
            period_end_date=end,
            total_employees=len(rows),
            total_contribution_base=round_money(total_base),
            total_employee_contributions=round_money(total_employee),
            total_employer_contributions=round_money(total_employer),
            total_contributions=round_money(total_employee + total_employer),
            employees=tuple(rows),
        )
        logger.info(
            "monthly_inss_return_generated",
            extra={
                "tenant_id": self.tenant_id,
                "period": period,
                "employee_count": result.total_employees,
                "total_contributions": str(result.total_contributions),
            },
        )
        return result

    def generate_annual_wit_return(
        self,
        tax_year: int,
        company: CompanyDetails | None = None,
    ) -> AnnualWITReturn:
        """
        Annual WIT return: every employee paid during ``tax_year``.

        ``months_worked`` counts the distinct months with a paid run
        that paid the employee a non-zero gross.  Employees with no such
        month get no row.
        """
        company = self._company(company)
        directory = {e.id: e for e in self.employees.list_employees(self.tenant_id)}
        runs = self._paid_runs(date(tax_year, 1, 1), date(tax_year, 12, 31))

        gross: dict[str, Decimal] = defaultdict(lambda: ZERO)
        wit: dict[str, Decimal] = defaultdict(lambda: ZERO)
        months: dict[str, set[int]] = defaultdict(set)
        for run, record in self._records(runs):
            if record.employee_id not in directory:
                logger.warning(
                    "payroll_record_unknown_employee",
                    extra={
                        "tenant_id": self.tenant_id,
                        "employee_id": record.employee_id,
                        "payroll_run_id": run.id,
                    },
                )
                continue
            gross[record.employee_id] += record.gross_pay
            wit[record.employee_id] += record.wit_withheld
            if record.gross_pay != 0:
                months[record.employee_id].add(run.pay_date.month)

        rows: list[AnnualWITEmployeeRecord] = []
        for employee_id in months:
            employee = directory[employee_id]
            hire = employee.hire_date
            leave = employee.termination_date
            rows.append(
                AnnualWITEmployeeRecord(
                    employee_id=employee_id,
                    full_name=employee.full_name,
                    is_resident=employee.is_resident,
                    months_worked=len(months[employee_id]),
                    total_gross_wages=round_money(gross[employee_id]),
                    total_wit_withheld=round_money(wit[employee_id]),
                    start_date=hire if hire is not None and hire.year == tax_year else None,
                    end_date=leave if leave is not None and leave.year == tax_year else None,
                    tin_number=employee.tin_number,
                )
            )

        result = AnnualWITReturn(
            employer_tin=company.tin_number,
            employer_name=company.employer_name,
            employer_address=company.registered_address,
            tax_year=tax_year,
            total_employees_in_year=len(rows),
            total_gross_wages_paid=round_money(sum(gross.values(), ZERO)),
            total_wit_withheld=round_money(sum(wit.values(), ZERO)),
            employees=tuple(rows),
        )
        logger.info(
            "annual_wit_return_generated",
            extra={
                "tenant_id": self.tenant_id,
                "tax_year": tax_year,
                "employee_count": result.total_employees_in_year,
                "total_wit_withheld": str(result.total_wit_withheld),
            },
        )
        return result

    def generate_employee_wit_certificate(
        self,
        employee_id: str,
        tax_year: int,
        signatory: Signatory,
        company: CompanyDetails | None = None,
    ) -> EmployeeWITCertificate:
        """
        Year-end WIT certificate for one employee.

        Raises:
            EmployeeNotFoundError: Not in the employee directory.
            NoPayrollRecordsError: No paid payroll for them in the year.
        """
        employee = self.employees.get_employee(self.tenant_id, employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)

        company = self._company(company)
        annual = self.generate_annual_wit_return(tax_year, company)
        record = next((r for r in annual.employees if r.employee_id == employee_id), None)
        if record is None:
            raise NoPayrollRecordsError(employee_id, tax_year)

        return EmployeeWITCertificate(
            employer_name=company.employer_name,
            employer_tin=company.tin_number,
            employer_address=company.registered_address,
            employee_id=employee.id,
            employee_name=employee.full_name,
            employee_address=employee.address,
            tax_year=tax_year,
            employment_start_date=employee.hire_date,
            employment_end_date=record.end_date,
            total_gross_wages=record.total_gross_wages,
            total_wit_withheld=record.total_wit_withheld,
            certification_date=self.clock.today(),
            authorized_signatory=signatory.name,
            signatory_position=signatory.position,
            employee_tin=employee.tin_number,
        )
