"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines.
Architecture position: Kernel > Models.  May import from db/base.py,
    domain/dtos.py and sibling models.

Invariants enforced:
    - (tenant_id, entry_number) is unique (uq_journal_tenant_number).
    - A void entry references its reversal (ck_journal_void_has_reversal).
    - Line amounts are non-negative and exactly one side is non-zero
      (ck_line_amounts_non_negative, ck_line_one_sided).
    - Balance (sum debit == sum credit) is validated by JournalService
      before flush; totals are cached on the header.

Failure modes:
    - IntegrityError on a duplicate entry number or a CHECK violation.

Audit relevance:
    Posted entries are never deleted.  Void keeps the original rows and
    links both directions (reversal_entry_id / reverses_entry_id).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import Base, TenantTrackedBase, UUIDString
from ledger_kernel.domain.dtos import (
    DraftState,
    EntrySource,
    EntryState,
    EntryStatus,
    JournalEntryInfo,
    JournalLineInfo,
    PostedState,
    VoidState,
)


class JournalEntry(TenantTrackedBase):
    """
    Journal entry header.

    Contract:
        Only JournalService writes this table.  Status moves
        draft -> posted -> void; nothing else.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("tenant_id", "entry_number", name="uq_journal_tenant_number"),
        CheckConstraint(
            "status IN ('draft', 'posted', 'void')",
            name="ck_journal_status",
        ),
        CheckConstraint(
            "status <> 'void' OR reversal_entry_id IS NOT NULL",
            name="ck_journal_void_has_reversal",
        ),
        Index("idx_journal_tenant_status_date", "tenant_id", "status", "entry_date"),
        Index("idx_journal_tenant_source", "tenant_id", "source", "source_id"),
        Index("idx_journal_tenant_date_sequence", "tenant_id", "entry_date", "sequence_number"),
    )

    entry_number: Mapped[str] = mapped_column(String(30), nullable=False)

    # Counter value behind entry_number; the ordering key within a date
    sequence_number: Mapped[int] = mapped_column(BigInteger, nullable=False)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    source: Mapped[str] = mapped_column(String(20), nullable=False)

    # Originating document (invoice id, payroll run id, ...)
    source_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    source_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=EntryStatus.DRAFT.value
    )

    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)

    fiscal_period: Mapped[int] = mapped_column(Integer, nullable=False)

    total_debit: Mapped[Decimal] = mapped_column(nullable=False)

    total_credit: Mapped[Decimal] = mapped_column(nullable=False)

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    posted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    voided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    voided_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    void_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Set on the original when voided
    reversal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True
    )

    # Set on the reversal itself
    reverses_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_number",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number} {self.status}>"

    def _state(self) -> EntryState:
        status = EntryStatus(self.status)
        if status == EntryStatus.DRAFT:
            return DraftState()
        if status == EntryStatus.POSTED:
            return PostedState(posted_at=self.posted_at, posted_by_id=self.posted_by_id)
        return VoidState(
            posted_at=self.posted_at,
            posted_by_id=self.posted_by_id,
            voided_at=self.voided_at,
            voided_by_id=self.voided_by_id,
            reason=self.void_reason or "",
            reversal_entry_id=self.reversal_entry_id,
        )

    def to_dto(self) -> JournalEntryInfo:
        return JournalEntryInfo(
            id=self.id,
            entry_number=self.entry_number,
            entry_date=self.entry_date,
            description=self.description,
            source=EntrySource(self.source),
            fiscal_year=self.fiscal_year,
            fiscal_period=self.fiscal_period,
            total_debit=self.total_debit,
            total_credit=self.total_credit,
            state=self._state(),
            lines=tuple(line.to_dto() for line in self.lines),
            source_id=self.source_id,
            source_ref=self.source_ref,
            reverses_entry_id=self.reverses_entry_id,
            created_by_id=self.created_by_id,
        )


class JournalLine(Base):
    """
    One debit or credit line.  Owned by its entry; no independent lifecycle.

    account_code and account_name are copied from the account when the
    line is written so historical entries read the same after a rename.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        UniqueConstraint("journal_entry_id", "line_number", name="uq_line_entry_number"),
        CheckConstraint("debit >= 0 AND credit >= 0", name="ck_line_amounts_non_negative"),
        CheckConstraint(
            "(debit > 0 AND credit = 0) OR (credit > 0 AND debit = 0)",
            name="ck_line_one_sided",
        ),
        Index("idx_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    account_code: Mapped[str] = mapped_column(String(20), nullable=False)

    account_name: Mapped[str] = mapped_column(String(255), nullable=False)

    debit: Mapped[Decimal] = mapped_column(nullable=False)

    credit: Mapped[Decimal] = mapped_column(nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    department_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    employee_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    entry: Mapped[JournalEntry] = relationship(back_populates="lines")

    def to_dto(self) -> JournalLineInfo:
        return JournalLineInfo(
            line_number=self.line_number,
            account_id=self.account_id,
            account_code=self.account_code,
            account_name=self.account_name,
            debit=self.debit,
            credit=self.credit,
            description=self.description,
            department_id=self.department_id,
            employee_id=self.employee_id,
            project_id=self.project_id,
        )
