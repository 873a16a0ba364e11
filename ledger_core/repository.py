"""
Repository boundary between the ledger core and the database.

The services never build queries against a Session directly
for reads that need tenant scoping; they go through this
class. When a tenant_id is given, it is ANDed into every
query and stamped onto every write.

Writes of entries happen inside atomic_write(): either the
entry row and all of its amount rows become visible together,
or none of them do.
"""

import logging
from collections.abc import Iterator
from datetime import date

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ledger_core.errors import InvalidState, PersistenceFailure
from ledger_core.models.account import Account
from ledger_core.models.amount import Amount
from ledger_core.models.entry import DocumentRef, Entry
from ledger_core.models.enums import AccountType

logger = logging.getLogger(__name__)


class AtomicWrite:
    """
    One all-or-nothing write of an entry and its amounts.

    Use as a context manager. Anything other than an explicit
    commit() (an exception, an early return, a forgotten
    commit) rolls the whole write back on exit.
    """

    def __init__(self, repository: "LedgerRepository"):
        self.repository = repository
        self.db = repository.db
        self.committed = False
        self.closed = False

    def __enter__(self) -> "AtomicWrite":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if not self.closed:
            self.rollback()
        return False

    def _ensure_open(self) -> None:
        if self.closed:
            raise InvalidState("Atomic write is already closed")

    def _flush(self) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not write to the ledger: {exc}") from exc

    def insert_entry(self, entry: Entry) -> int:
        self._ensure_open()
        if self.repository.tenant_id is not None:
            entry.tenant_id = self.repository.tenant_id
        self.db.add(entry)
        self._flush()
        return entry.id

    def insert_amount(self, amount: Amount) -> int:
        self._ensure_open()
        self.db.add(amount)
        self._flush()
        return amount.id

    def commit(self) -> None:
        self._ensure_open()
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.rollback()
            raise PersistenceFailure(f"Could not commit to the ledger: {exc}") from exc
        self.committed = True
        self.closed = True

    def rollback(self) -> None:
        if self.closed:
            return
        self.closed = True
        logger.debug("Rolling back atomic write")
        try:
            self.db.rollback()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not roll back: {exc}") from exc


class AmountQuery:
    """
    Lazy, restartable sequence of amounts.

    Nothing runs until iteration, and every iteration runs the
    query again, so the same object can be summed twice.
    """

    def __init__(self, db: Session, statement: Select):
        self.db = db
        self.statement = statement

    def __iter__(self) -> Iterator[Amount]:
        return iter(self.db.execute(self.statement).scalars())


class EntryQuery(AmountQuery):
    """Lazy, restartable sequence of entries."""

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.db.execute(self.statement).scalars().unique())


class LedgerRepository:
    """
    Persistence contract the ledger core depends on.

    The caller owns the Session. A repository is cheap; build
    one per session and tenant.
    """

    def __init__(self, db: Session, tenant_id: str | None = None):
        self.db = db
        self.tenant_id = tenant_id

    # --- Accounts ---

    def _scope_accounts(self, statement: Select) -> Select:
        if self.tenant_id is not None:
            statement = statement.where(Account.tenant_id == self.tenant_id)
        return statement

    def create_account(self, account: Account) -> int:
        if self.tenant_id is not None:
            account.tenant_id = self.tenant_id
        self.db.add(account)
        self.db.flush()
        return account.id

    def get_account(self, account_id: int) -> Account | None:
        return self.db.execute(
            self._scope_accounts(
                select(Account).where(Account.id == account_id)
            )
        ).scalar_one_or_none()

    def find_accounts(
        self,
        name: str | None = None,
        account_type: AccountType | None = None,
        code: int | None = None,
        rollup_code: int | None = None,
    ) -> list[Account]:
        statement = self._scope_accounts(select(Account))
        if name is not None:
            statement = statement.where(Account.name == name)
        if account_type is not None:
            statement = statement.where(Account.account_type == account_type)
        if code is not None:
            statement = statement.where(Account.code == code)
        if rollup_code is not None:
            statement = statement.where(Account.rollup_code == rollup_code)
        return list(
            self.db.execute(statement.order_by(Account.id)).scalars().all()
        )

    def account_has_amounts(self, account_id: int) -> bool:
        found = self.db.execute(
            select(Amount.id).where(Amount.account_id == account_id).limit(1)
        ).scalar_one_or_none()
        return found is not None

    # --- Writes ---

    def atomic_write(self) -> AtomicWrite:
        return AtomicWrite(self)

    # --- Amounts ---

    def query_amounts(
        self,
        account_ids: int | list[int],
        date_from: date | None = None,
        date_to: date | None = None,
        side=None,
    ) -> AmountQuery:
        if isinstance(account_ids, int):
            account_ids = [account_ids]
        statement = (
            select(Amount)
            .join(Entry, Amount.entry_id == Entry.id)
            .where(Amount.account_id.in_(account_ids))
        )
        if self.tenant_id is not None:
            statement = statement.where(Entry.tenant_id == self.tenant_id)
        if date_from is not None:
            statement = statement.where(Entry.date >= date_from)
        if date_to is not None:
            statement = statement.where(Entry.date <= date_to)
        if side is not None:
            statement = statement.where(Amount.side == side)
        return AmountQuery(self.db, statement)

    def query_all_amounts(self) -> AmountQuery:
        statement = select(Amount).join(Entry, Amount.entry_id == Entry.id)
        if self.tenant_id is not None:
            statement = statement.where(Entry.tenant_id == self.tenant_id)
        return AmountQuery(self.db, statement)

    # --- Entries ---

    def get_entry(self, entry_id: int) -> Entry | None:
        statement = (
            select(Entry)
            .where(Entry.id == entry_id)
            .options(selectinload(Entry.amounts).selectinload(Amount.account))
        )
        if self.tenant_id is not None:
            statement = statement.where(Entry.tenant_id == self.tenant_id)
        return self.db.execute(statement).scalar_one_or_none()

    def query_entries(
        self,
        account_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        target: DocumentRef | None = None,
        commercial_document: DocumentRef | None = None,
        newest_first: bool = True,
        limit: int | None = None,
        offset: int = 0,
    ) -> EntryQuery:
        statement = select(Entry).options(
            selectinload(Entry.amounts).selectinload(Amount.account)
        )
        if self.tenant_id is not None:
            statement = statement.where(Entry.tenant_id == self.tenant_id)
        if account_id is not None:
            statement = statement.where(
                Entry.amounts.any(Amount.account_id == account_id)
            )
        if date_from is not None:
            statement = statement.where(Entry.date >= date_from)
        if date_to is not None:
            statement = statement.where(Entry.date <= date_to)
        if target is not None:
            statement = statement.where(
                Entry.target_type == target.kind,
                Entry.target_id == str(target.id),
            )
        if commercial_document is not None:
            statement = statement.where(
                Entry.commercial_document_type == commercial_document.kind,
                Entry.commercial_document_id == str(commercial_document.id),
            )
        if newest_first:
            statement = statement.order_by(Entry.date.desc(), Entry.id.desc())
        else:
            statement = statement.order_by(Entry.date.asc(), Entry.id.asc())
        if offset:
            statement = statement.offset(offset)
        if limit is not None:
            statement = statement.limit(limit)
        return EntryQuery(self.db, statement)
