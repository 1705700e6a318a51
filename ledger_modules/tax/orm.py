"""
Tax ORM Persistence Models (``ledger_modules.tax.orm``).

Responsibility:
    SQLAlchemy model persisting the filing tracker's ``TaxFiling`` DTO,
    with ``to_dto()`` conversion.

Architecture position:
    **Modules layer** -- persistence companion to ``models.py``.
    Inherits from ``TenantTrackedBase`` (kernel DB base): id, tenant_id,
    created_at, updated_at, created_by_id, updated_by_id.

Invariants enforced:
    - (tenant_id, filing_type, period) unique: one filing per obligation.
    - Monetary fields are Decimal (Numeric(38,9)) -- NEVER float.
    - Enum fields store the enum ``.value`` string.

Audit relevance:
    ``data_snapshot`` freezes the return exactly as generated; the
    filed date, submission method, receipt number and filer are kept on
    the row.
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, Date, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TenantTrackedBase, UUIDString


class TaxFilingModel(TenantTrackedBase):
    """
    ORM model for ``TaxFiling``.

    Contract:
        Written only by ``TaxFilingService``.
    """

    __tablename__ = "tax_filings"

    __table_args__ = (
        UniqueConstraint("tenant_id", "filing_type", "period", name="uq_tax_filing_period"),
        CheckConstraint(
            "filing_type IN ('monthly_wit', 'annual_wit', 'inss_monthly')",
            name="ck_tax_filing_type",
        ),
        CheckConstraint(
            "status IN ('draft', 'pending', 'overdue', 'filed')",
            name="ck_tax_filing_status",
        ),
        Index("idx_tax_filing_due", "tenant_id", "due_date"),
    )

    filing_type: Mapped[str] = mapped_column(String(20), nullable=False)
    period: Mapped[str] = mapped_column(String(7), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    data_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    total_wages: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_wit_withheld: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    employee_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_inss_employee: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_inss_employer: Mapped[Decimal | None] = mapped_column(nullable=True)

    filed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    submission_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    receipt_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    filed_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<TaxFilingModel {self.filing_type} {self.period} {self.status}>"

    def to_dto(self):
        from ledger_kernel.domain.money import round_money
        from ledger_modules.tax.models import (
            SubmissionMethod,
            TaxFiling,
            TaxFilingStatus,
            TaxFilingType,
        )

        return TaxFiling(
            id=self.id,
            filing_type=TaxFilingType(self.filing_type),
            period=self.period,
            status=TaxFilingStatus(self.status),
            due_date=self.due_date,
            data_snapshot=dict(self.data_snapshot or {}),
            total_wages=round_money(self.total_wages),
            total_wit_withheld=round_money(self.total_wit_withheld),
            employee_count=self.employee_count,
            total_inss_employee=(
                round_money(self.total_inss_employee)
                if self.total_inss_employee is not None else None
            ),
            total_inss_employer=(
                round_money(self.total_inss_employer)
                if self.total_inss_employer is not None else None
            ),
            filed_date=self.filed_date,
            submission_method=(
                SubmissionMethod(self.submission_method) if self.submission_method else None
            ),
            receipt_number=self.receipt_number,
            notes=self.notes,
            filed_by=self.filed_by,
            created_by_id=self.created_by_id,
        )
