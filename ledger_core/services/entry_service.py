"""
Entry service: building, committing, and reading entries.

Committing is the one place the ledger changes. The entry is
validated in memory first; only a valid entry reaches the
database, and it is written in a single atomic unit together
with its amounts.
"""

import logging
from datetime import date

from ledger_core.errors import (
    EntryRejected,
    InvalidArgument,
    NotFoundError,
    PersistenceFailure,
    account_not_found,
    entry_not_found,
)
from ledger_core.models.account import Account
from ledger_core.models.amount import signed_effect
from ledger_core.models.entry import DocumentRef, Entry
from ledger_core.models.enums import EntryState
from ledger_core.repository import LedgerRepository
from ledger_core.schemas.entry import EntryCreate
from ledger_core.services.running_balances import RunningBalances

logger = logging.getLogger(__name__)


class EntryService:
    """
    All entry writes pass through this service.

    Unlike account changes, a commit does not leave the session
    transaction to the caller: the entry and its amounts are
    committed, or rolled back, before commit() returns.
    """

    def __init__(
        self,
        db,
        tenant_id: str | None = None,
        tracker: RunningBalances | None = None,
    ):
        self.db = db
        self.repository = LedgerRepository(db, tenant_id)
        self.tracker = tracker

    def _load_accounts(self, account_ids: set[int]) -> dict[int, Account]:
        accounts = {}
        for account_id in sorted(account_ids):
            account = self.repository.get_account(account_id)
            if account is None:
                raise NotFoundError(account_not_found(account_id))
            accounts[account_id] = account
        return accounts

    def build_entry(self, request: EntryCreate) -> Entry:
        """
        Build an uncommitted entry from nested debits/credits.

        Raises NotFoundError if a referenced account does not
        exist (or belongs to another tenant).
        """
        accounts = self._load_accounts(
            {line.account_id for line in request.debits + request.credits}
        )
        entry = Entry(
            description=request.description,
            date=request.date,
        )
        if request.target is not None:
            entry.target = request.target.to_ref()
        if request.commercial_document is not None:
            entry.commercial_document = request.commercial_document.to_ref()
        for line in request.debits:
            entry.add_debit(accounts[line.account_id], line.amount)
        for line in request.credits:
            entry.add_credit(accounts[line.account_id], line.amount)
        return entry

    def _assign_tenant(self, entry: Entry) -> None:
        """
        Give the entry its accounts' tenant, whoever posts it.

        Balances are scoped through the entry, so an entry may
        only touch accounts of one tenant, and a tenant-scoped
        service only accounts of its own tenant.
        """
        tenants = {
            a.account.tenant_id for a in entry.amounts if a.account is not None
        }
        if len(tenants) > 1:
            raise InvalidArgument(
                "An entry cannot post to accounts of different tenants"
            )
        scope = self.repository.tenant_id
        tenant_id = tenants.pop() if tenants else scope
        if scope is not None and tenant_id != scope:
            raise InvalidArgument(
                f"Accounts of this entry do not belong to tenant {scope!r}"
            )
        if entry.tenant_id != tenant_id:
            entry.tenant_id = tenant_id

    def commit(self, entry: Entry) -> Entry:
        """
        Validate and persist an entry with all its amounts.

        Raises EntryRejected with every violated invariant if
        the entry is invalid; nothing is written then. Raises
        PersistenceFailure if the database write fails; the
        write is rolled back and the entry is editable again.
        Raises InvalidArgument if its accounts span tenants.
        """
        self._assign_tenant(entry)
        errors = entry.validate()
        if errors:
            logger.info(
                "Rejected entry %r: %s",
                entry.description, ", ".join(e.code for e in errors),
            )
            raise EntryRejected(errors)

        try:
            with self.repository.atomic_write() as write:
                write.insert_entry(entry)
                for amount in entry.amounts:
                    write.insert_amount(amount)
                deltas = [(a.account_id, signed_effect(a)) for a in entry.amounts]
                if self.tracker is None:
                    write.commit()
                else:
                    with self.tracker.posting():
                        write.commit()
                        self.tracker.apply(deltas)
        except PersistenceFailure:
            entry.state = EntryState.BUILDING
            logger.error("Failed to persist entry %r", entry.description, exc_info=True)
            raise
        except Exception:
            entry.state = EntryState.BUILDING
            raise

        entry.state = EntryState.COMMITTED
        logger.info(
            "Committed entry %s (%s) with %d amounts",
            entry.id, entry.date, len(deltas),
        )
        return entry

    def create_entry(self, request: EntryCreate) -> Entry:
        """Build and commit in one step."""
        return self.commit(self.build_entry(request))

    def get_entry(self, entry_id: int) -> Entry:
        entry = self.repository.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        return entry

    def list_entries(
        self,
        account_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        target: DocumentRef | None = None,
        commercial_document: DocumentRef | None = None,
        newest_first: bool = True,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Entry]:
        """Return committed entries, newest first unless told otherwise."""
        return list(self.repository.query_entries(
            account_id=account_id,
            date_from=date_from,
            date_to=date_to,
            target=target,
            commercial_document=commercial_document,
            newest_first=newest_first,
            limit=limit,
            offset=offset,
        ))
