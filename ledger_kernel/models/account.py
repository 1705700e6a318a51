"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the tenant chart of accounts.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - (tenant_id, code) is unique (uq_account_tenant_code).
    - account_type / sub_type consistency and parent type equality are
      validated by ChartOfAccountsService before flush.

Failure modes:
    - IntegrityError on duplicate (tenant_id, code).

Audit relevance:
    Accounts are never hard-deleted; deactivation keeps historical journal
    lines resolvable.
"""

from sqlalchemy import Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TenantTrackedBase
from ledger_kernel.domain.dtos import (
    AccountInfo,
    AccountSubType,
    AccountType,
    NormalBalance,
    normal_balance_for,
)


class Account(TenantTrackedBase):
    """
    Chart of accounts entry.

    Contract:
        ``code`` is unique per tenant and immutable after creation.
        ``is_system`` accounts keep their type and sub-type forever and
        cannot be deactivated.

    Non-goals:
        - No FK to the parent row; the tree is keyed by ``parent_code``
          within the tenant.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_account_tenant_code"),
        Index("idx_account_tenant_type", "tenant_id", "account_type"),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Tetun display name
    name_tl: Mapped[str | None] = mapped_column(String(255), nullable=True)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    account_type: Mapped[str] = mapped_column(String(20), nullable=False)

    sub_type: Mapped[str] = mapped_column(String(40), nullable=False)

    parent_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    tax_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def normal_balance(self) -> NormalBalance:
        return normal_balance_for(
            AccountType(self.account_type), AccountSubType(self.sub_type)
        )

    def to_dto(self) -> AccountInfo:
        return AccountInfo(
            id=self.id,
            code=self.code,
            name=self.name,
            account_type=AccountType(self.account_type),
            sub_type=AccountSubType(self.sub_type),
            normal_balance=self.normal_balance,
            level=self.level,
            is_system=self.is_system,
            is_active=self.is_active,
            parent_code=self.parent_code,
            name_tl=self.name_tl,
            description=self.description,
            tax_code=self.tax_code,
        )
