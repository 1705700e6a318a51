"""
ChartOfAccountsService -- tenant chart of accounts maintenance.

Responsibility:
    Creates, updates, lists and deactivates accounts, and seeds the
    jurisdiction's default chart.  Leaf dependency for every other
    service: journal lines, reports and tax postings all resolve account
    codes through the chart.

Architecture position:
    Kernel > Services.  Reads the default chart from ``ledger_config``.

Invariants enforced:
    - Account code is unique per tenant and immutable after creation.
    - sub_type belongs to account_type.
    - A child has its parent's account_type; level = parent.level + 1.
    - System accounts never change type or sub-type and are never
      deactivated.
    - An account is deactivated only once its posted balance is zero.
    - Seeding is additive-only: existing codes are left untouched.

Failure modes:
    - DuplicateAccountCodeError, InvalidAccountDefinitionError,
      AccountNotFoundError, SystemAccountError, AccountHasBalanceError.

Audit relevance:
    Account creation, updates and deactivation are logged with
    tenant_id, account_code and actor_id.
"""

import re
from dataclasses import fields
from uuid import UUID

from sqlalchemy import select

from ledger_config import JurisdictionPack, get_jurisdiction
from ledger_kernel.domain.dtos import (
    AccountDefinition,
    AccountFilter,
    AccountInfo,
    AccountPatch,
    AccountSubType,
    AccountType,
    is_sub_type_valid,
)
from ledger_kernel.domain.money import ZERO, within_tolerance
from ledger_kernel.exceptions import (
    AccountHasBalanceError,
    AccountNotFoundError,
    DuplicateAccountCodeError,
    InvalidAccountDefinitionError,
    SystemAccountError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.chart_of_accounts")

_CODE_PATTERN = re.compile(r"^[0-9A-Za-z][0-9A-Za-z.\-]{0,19}$")


class ChartOfAccountsService(BaseService):
    """
    Service for the tenant's chart of accounts.

    Contract:
        All reads and writes are scoped to ``tenant_id``.  Returns
        ``AccountInfo`` DTOs.

    Non-goals:
        - Does NOT hard-delete accounts; ``deactivate_account`` is the
          only removal.
        - Does NOT support arbitrary custom schemas: the five account
          types and their sub-types are fixed.
    """

    def _get_orm(self, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.code == code,
            )
        ).scalar_one_or_none()

    def _require(self, code: str) -> Account:
        account = self._get_orm(code)
        if account is None:
            raise AccountNotFoundError(code)
        return account

    def _require_zero_balance(self, account: Account) -> None:
        balance = LedgerSelector(self.session, self.tenant_id).current_balance(account.id)
        if not within_tolerance(balance, ZERO):
            raise AccountHasBalanceError(account.code, str(balance))

    def _validate_definition(self, definition: AccountDefinition) -> int:
        """Validate and return the level the account will sit at."""
        if not _CODE_PATTERN.match(definition.code or ""):
            raise InvalidAccountDefinitionError(definition.code, "malformed account code")
        if not definition.name or not definition.name.strip():
            raise InvalidAccountDefinitionError(definition.code, "name cannot be empty")
        if not is_sub_type_valid(definition.account_type, definition.sub_type):
            raise InvalidAccountDefinitionError(
                definition.code,
                f"sub_type {definition.sub_type.value} does not belong to "
                f"{definition.account_type.value}",
            )
        if definition.parent_code is None:
            return 1

        parent = self._get_orm(definition.parent_code)
        if parent is None:
            raise InvalidAccountDefinitionError(
                definition.code, f"parent {definition.parent_code} does not exist"
            )
        if parent.account_type != definition.account_type.value:
            raise InvalidAccountDefinitionError(
                definition.code,
                f"parent {parent.code} is {parent.account_type}, "
                f"child is {definition.account_type.value}",
            )
        return parent.level + 1

    def create_account(self, definition: AccountDefinition, actor_id: UUID) -> AccountInfo:
        """
        Create a new account.

        Raises:
            DuplicateAccountCodeError: code already used by this tenant.
            InvalidAccountDefinitionError: bad code, sub-type or parent.
        """
        if self._get_orm(definition.code) is not None:
            raise DuplicateAccountCodeError(definition.code)
        level = self._validate_definition(definition)

        account = Account(
            tenant_id=self.tenant_id,
            code=definition.code,
            name=definition.name.strip(),
            name_tl=definition.name_tl,
            description=definition.description,
            account_type=definition.account_type.value,
            sub_type=definition.sub_type.value,
            parent_code=definition.parent_code,
            level=level,
            is_system=definition.is_system,
            is_active=True,
            tax_code=definition.tax_code,
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "tenant_id": self.tenant_id,
                "account_code": account.code,
                "account_type": account.account_type,
                "actor_id": str(actor_id),
            },
        )
        return account.to_dto()

    def update_account(self, code: str, patch: AccountPatch, actor_id: UUID) -> AccountInfo:
        """
        Apply a partial update.  The code itself can never change.

        Raises:
            AccountNotFoundError: no such account.
            SystemAccountError: type/sub-type change or deactivation of a
                system account.
            InvalidAccountDefinitionError: resulting type/sub-type pair is
                inconsistent, or a type change would diverge from the
                parent or existing children.
            AccountHasBalanceError: deactivation of an account whose posted
                balance is not zero.
        """
        account = self._require(code)

        new_type = patch.account_type or AccountType(account.account_type)
        new_sub_type = patch.sub_type or AccountSubType(account.sub_type)
        classification_changed = (
            new_type.value != account.account_type
            or new_sub_type.value != account.sub_type
        )

        if account.is_system:
            if classification_changed:
                raise SystemAccountError(code, "reclassify")
            if patch.is_active is False:
                raise SystemAccountError(code, "deactivate")

        if patch.is_active is False and account.is_active:
            self._require_zero_balance(account)

        if classification_changed:
            if not is_sub_type_valid(new_type, new_sub_type):
                raise InvalidAccountDefinitionError(
                    code,
                    f"sub_type {new_sub_type.value} does not belong to {new_type.value}",
                )
            if new_type.value != account.account_type:
                self._check_type_change_keeps_tree(account, new_type)

        changed: list[str] = []
        for f in fields(patch):
            value = getattr(patch, f.name)
            if value is None:
                continue
            if isinstance(value, (AccountType, AccountSubType)):
                value = value.value
            if getattr(account, f.name) != value:
                setattr(account, f.name, value)
                changed.append(f.name)

        if changed:
            account.updated_by_id = actor_id
            self.session.flush()
            logger.info(
                "account_updated",
                extra={
                    "tenant_id": self.tenant_id,
                    "account_code": code,
                    "changed_fields": changed,
                    "actor_id": str(actor_id),
                },
            )
        return account.to_dto()

    def _check_type_change_keeps_tree(self, account: Account, new_type: AccountType) -> None:
        if account.parent_code is not None:
            parent = self._get_orm(account.parent_code)
            if parent is not None and parent.account_type != new_type.value:
                raise InvalidAccountDefinitionError(
                    account.code, f"parent {parent.code} is {parent.account_type}"
                )
        has_children = self.session.execute(
            select(Account.id).where(
                Account.tenant_id == self.tenant_id,
                Account.parent_code == account.code,
            ).limit(1)
        ).first()
        if has_children:
            raise InvalidAccountDefinitionError(
                account.code, "cannot change the type of an account with children"
            )

    def deactivate_account(self, code: str, actor_id: UUID) -> AccountInfo:
        """
        Soft delete.  History stays resolvable; new postings are refused.

        Only an account whose posted balance is zero can be deactivated.
        """
        account = self._require(code)
        if account.is_system:
            raise SystemAccountError(code, "delete")
        if account.is_active:
            self._require_zero_balance(account)
            account.is_active = False
            account.updated_by_id = actor_id
            self.session.flush()
            logger.info(
                "account_deactivated",
                extra={
                    "tenant_id": self.tenant_id,
                    "account_code": code,
                    "actor_id": str(actor_id),
                },
            )
        return account.to_dto()

    def get_account(self, code: str) -> AccountInfo | None:
        account = self._get_orm(code)
        return account.to_dto() if account else None

    def get_account_by_id(self, account_id: UUID) -> AccountInfo | None:
        account = self.session.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.id == account_id,
            )
        ).scalar_one_or_none()
        return account.to_dto() if account else None

    def list_accounts(self, account_filter: AccountFilter | None = None) -> list[AccountInfo]:
        """Accounts matching ``account_filter``, ordered by code."""
        stmt = select(Account).where(Account.tenant_id == self.tenant_id)
        if account_filter is not None:
            if account_filter.account_type is not None:
                stmt = stmt.where(Account.account_type == account_filter.account_type.value)
            if account_filter.sub_type is not None:
                stmt = stmt.where(Account.sub_type == account_filter.sub_type.value)
            if account_filter.is_active is not None:
                stmt = stmt.where(Account.is_active == account_filter.is_active)
            if account_filter.parent_code is not None:
                stmt = stmt.where(Account.parent_code == account_filter.parent_code)
        stmt = stmt.order_by(Account.code)
        return [a.to_dto() for a in self.session.execute(stmt).scalars()]

    def is_initialized(self) -> bool:
        """True once the tenant has at least one account."""
        return self.session.execute(
            select(Account.id).where(Account.tenant_id == self.tenant_id).limit(1)
        ).first() is not None

    def initialize_defaults(
        self,
        actor_id: UUID,
        jurisdiction: JurisdictionPack | None = None,
    ) -> int:
        """
        Seed the jurisdiction's default chart of accounts.

        Additive-only: codes the tenant already has are skipped, never
        duplicated or overwritten, so re-running is safe.

        Returns:
            Number of accounts created.
        """
        pack = jurisdiction or get_jurisdiction()
        existing = set(
            self.session.execute(
                select(Account.code).where(Account.tenant_id == self.tenant_id)
            ).scalars()
        )

        created = 0
        for default in pack.chart_of_accounts:
            if default.code in existing:
                continue
            self.create_account(
                AccountDefinition(
                    code=default.code,
                    name=default.name,
                    account_type=AccountType(default.account_type),
                    sub_type=AccountSubType(default.sub_type),
                    parent_code=default.parent_code,
                    name_tl=default.name_tl,
                    description=default.description,
                    is_system=default.is_system,
                ),
                actor_id,
            )
            existing.add(default.code)
            created += 1

        logger.info(
            "chart_of_accounts_initialized",
            extra={
                "tenant_id": self.tenant_id,
                "jurisdiction": pack.code,
                "accounts_created": created,
                "accounts_skipped": len(pack.chart_of_accounts) - created,
            },
        )
        return created
