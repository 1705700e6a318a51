"""
Module: ledger_kernel.models.fiscal_period
Responsibility: ORM persistence for fiscal years and their monthly periods.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py.

Invariants enforced:
    - (tenant_id, year) unique for fiscal years.
    - (fiscal_year_id, period_number) unique; period_number in 1..12.
    - start_date <= end_date.
    - Status values are constrained; legal transitions are enforced by
      PeriodService.

Failure modes:
    - IntegrityError on duplicate year / period number.

Audit relevance:
    Close, reopen and lock actors and timestamps are kept on the row;
    every transition is also written to the audit log.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TenantTrackedBase, UUIDString
from ledger_kernel.domain.dtos import (
    FiscalPeriodInfo,
    FiscalYearInfo,
    FiscalYearStatus,
    PeriodStatus,
)


class FiscalYear(TenantTrackedBase):
    """Calendar fiscal year owning twelve monthly periods."""

    __tablename__ = "fiscal_years"

    __table_args__ = (
        UniqueConstraint("tenant_id", "year", name="uq_fiscal_year_tenant_year"),
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=FiscalYearStatus.OPEN.value
    )

    opening_balances_posted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    opening_balance_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True
    )

    periods: Mapped[list["FiscalPeriod"]] = relationship(
        back_populates="fiscal_year",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="FiscalPeriod.period_number",
    )

    def __repr__(self) -> str:
        return f"<FiscalYear {self.year} {self.status}>"

    def to_dto(self) -> FiscalYearInfo:
        return FiscalYearInfo(
            id=self.id,
            year=self.year,
            status=FiscalYearStatus(self.status),
            start_date=self.start_date,
            end_date=self.end_date,
            opening_balances_posted=self.opening_balances_posted,
            opening_balance_entry_id=self.opening_balance_entry_id,
            periods=tuple(p.to_dto() for p in self.periods),
        )


class FiscalPeriod(TenantTrackedBase):
    """
    One month of a fiscal year.

    Contract:
        Periods of a year are contiguous and non-overlapping: period n
        covers calendar month n.
    """

    __tablename__ = "fiscal_periods"

    __table_args__ = (
        UniqueConstraint("fiscal_year_id", "period_number", name="uq_period_year_number"),
        CheckConstraint("period_number BETWEEN 1 AND 12", name="ck_period_number_range"),
        CheckConstraint("start_date <= end_date", name="ck_period_dates"),
        CheckConstraint(
            "status IN ('open', 'closed', 'locked')",
            name="ck_period_status",
        ),
    )

    fiscal_year_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("fiscal_years.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Denormalized for date lookups without a join
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    period_number: Mapped[int] = mapped_column(Integer, nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=PeriodStatus.OPEN.value
    )

    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    reopened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reopened_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    locked_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    fiscal_year: Mapped[FiscalYear] = relationship(back_populates="periods")

    def __repr__(self) -> str:
        return f"<FiscalPeriod {self.period_code} {self.status}>"

    @property
    def period_code(self) -> str:
        return f"{self.year}-{self.period_number:02d}"

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN.value

    @property
    def is_locked(self) -> bool:
        return self.status == PeriodStatus.LOCKED.value

    def contains_date(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date

    def to_dto(self) -> FiscalPeriodInfo:
        return FiscalPeriodInfo(
            id=self.id,
            fiscal_year_id=self.fiscal_year_id,
            year=self.year,
            period_number=self.period_number,
            start_date=self.start_date,
            end_date=self.end_date,
            status=PeriodStatus(self.status),
            closed_at=self.closed_at,
            closed_by_id=self.closed_by_id,
            locked_at=self.locked_at,
            locked_by_id=self.locked_by_id,
        )
