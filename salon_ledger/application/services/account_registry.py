"""
Account Registry - per-salon chart of accounts.

Accounts are provisioned lazily: the first posting that needs "1010 Cash"
creates it. Writes here only flush; the caller's transaction commits.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salon_ledger.domain.exceptions import ConflictError, NotFoundError
from salon_ledger.domain.value_objects import (
    DEFAULT_CHART,
    DEFAULT_EXPENSE_CATEGORIES,
    AccountType,
    StandardAccount,
)
from salon_ledger.infrastructure.database.models import Account, utcnow

logger = logging.getLogger(__name__)


class AccountRegistry:

    def __init__(self, db: Session):
        self.db = db

    def find_account_by_code(self, code: str, salon_id: UUID) -> Account | None:
        return (
            self.db.query(Account)
            .filter(Account.code == code, Account.salon_id == salon_id)
            .first()
        )

    def get_account(self, account_id: UUID) -> Account:
        account = self.db.get(Account, account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    def get_accounts(self, salon_id: UUID, account_type: str | None = None) -> list[Account]:
        query = self.db.query(Account).filter(
            Account.salon_id == salon_id,
            Account.is_active.is_(True),
        )
        if account_type:
            query = query.filter(Account.account_type == AccountType(account_type).value)
        return query.order_by(Account.account_type, Account.code).all()

    def create_account(
        self,
        salon_id: UUID,
        code: str,
        name: str,
        account_type: AccountType | str,
        parent_id: UUID | None = None,
    ) -> Account:
        if self.find_account_by_code(code, salon_id) is not None:
            raise ConflictError(f"Account code {code} already exists for this salon")
        if parent_id is not None:
            self.get_account(parent_id)

        account = Account(
            salon_id=salon_id,
            code=code,
            name=name,
            account_type=AccountType(account_type).value,
            parent_id=parent_id,
        )
        self.db.add(account)
        self.db.flush()
        return account

    def get_or_create_account(
        self,
        salon_id: UUID,
        code: str,
        name: str,
        account_type: AccountType | str,
    ) -> Account:
        """
        Look up (code, salon_id) and insert it when missing.

        Two callers can both miss the lookup; the loser's insert violates the
        unique key, its savepoint is rolled back and the winner's row is read.
        """
        existing = self.find_account_by_code(code, salon_id)
        if existing is not None:
            return existing

        account = Account(
            salon_id=salon_id,
            code=code,
            name=name,
            account_type=AccountType(account_type).value,
        )
        try:
            with self.db.begin_nested():
                self.db.add(account)
                self.db.flush()
        except IntegrityError:
            logger.info(
                "Account %s already created concurrently for salon %s", code, salon_id,
                extra={"salon_id": str(salon_id), "code": code},
            )
            existing = self.find_account_by_code(code, salon_id)
            if existing is None:
                raise
            return existing
        return account

    def get_standard_account(self, salon_id: UUID, standard: StandardAccount) -> Account:
        return self.get_or_create_account(
            salon_id, standard.code, standard.name, standard.account_type
        )

    def seed_default_accounts(self, salon_id: UUID) -> list[Account]:
        return [self.get_standard_account(salon_id, standard) for standard in DEFAULT_CHART]

    def update_account(
        self,
        account_id: UUID,
        name: str | None = None,
        is_active: bool | None = None,
        parent_id: UUID | None = None,
    ) -> Account:
        account = self.get_account(account_id)
        if name is not None:
            account.name = name
        if is_active is not None:
            account.is_active = is_active
        if parent_id is not None:
            if parent_id == account.id:
                raise ConflictError("An account cannot be its own parent")
            self.get_account(parent_id)
            account.parent_id = parent_id
        account.updated_at = utcnow()
        self.db.flush()
        return account

    def get_expense_categories(self, salon_id: UUID) -> list[Account]:
        """Active expense accounts by name, seeding the default categories first."""
        for code, name in DEFAULT_EXPENSE_CATEGORIES:
            self.get_or_create_account(salon_id, code, name, AccountType.EXPENSE)

        return (
            self.db.query(Account)
            .filter(
                Account.salon_id == salon_id,
                Account.account_type == AccountType.EXPENSE.value,
                Account.is_active.is_(True),
            )
            .order_by(Account.name)
            .all()
        )
