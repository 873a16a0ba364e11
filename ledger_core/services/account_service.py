"""
Account service: the chart of accounts.

Accounts are created and looked up here. The only changes
allowed after creation are re-parenting (kept acyclic) and,
while no amount references the account yet, its type.

This service flushes but never commits: the caller owns
the transaction boundary.
"""

import logging

from ledger_core.errors import InvalidState, NotFoundError, account_not_found
from ledger_core.models.account import Account
from ledger_core.models.enums import AccountType
from ledger_core.repository import LedgerRepository
from ledger_core.schemas.account import AccountCreate

logger = logging.getLogger(__name__)


class AccountService:

    def __init__(self, db, tenant_id: str | None = None):
        self.db = db
        self.repository = LedgerRepository(db, tenant_id)

    def create_account(self, request: AccountCreate) -> Account:
        """
        Create a new account.

        Raises NotFoundError if the requested parent does not exist.
        """
        parent = None
        if request.parent_id is not None:
            parent = self.get_account(request.parent_id)

        account = Account(
            name=request.name,
            account_type=request.account_type,
            contra=request.contra,
            code=request.code,
            rollup_code=request.rollup_code,
            parent=parent,
        )
        self.repository.create_account(account)
        logger.info("Created account %s %r (%s)", account.id, account.name,
                    account.account_type.value)
        return account

    def get_account(self, account_id: int) -> Account:
        account = self.repository.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def find_accounts(
        self,
        name: str | None = None,
        account_type: AccountType | None = None,
        code: int | None = None,
        rollup_code: int | None = None,
    ) -> list[Account]:
        return self.repository.find_accounts(
            name=name,
            account_type=account_type,
            code=code,
            rollup_code=rollup_code,
        )

    def set_parent(self, account_id: int, parent_id: int | None) -> Account:
        """
        Move an account under a new parent (or to the top level).

        Raises InvalidState if the move would make the account
        its own ancestor.
        """
        account = self.get_account(account_id)
        parent = self.get_account(parent_id) if parent_id is not None else None
        account.parent = parent
        self.db.flush()
        return account

    def change_account_type(
        self, account_id: int, account_type: AccountType
    ) -> Account:
        """
        Change an account's type.

        Raises InvalidState once any amount references the
        account, since that would reinterpret its history.
        """
        account = self.get_account(account_id)
        if account.account_type == account_type:
            return account
        if self.repository.account_has_amounts(account.id):
            raise InvalidState(
                f"Cannot change type of account '{account.name}': "
                f"it is referenced by posted amounts"
            )
        account.account_type = account_type
        self.db.flush()
        logger.info("Changed type of account %s to %s", account.id,
                    account_type.value)
        return account
