"""
Entry model.

An entry is one transaction in the journal: a description, a
date, and a set of debit and credit amounts that must cancel
out. Posting to the ledger happens through the amounts, since
accounts see their amounts directly.

Example::

    entry = Entry(description="Receiving payment on an invoice")
    entry.add_debit(cash, Decimal("1000.00"))
    entry.add_credit(accounts_receivable, Decimal("1000.00"))
    EntryService(db).commit(entry)
"""

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, Index
from sqlalchemy.orm import (
    Mapped, mapped_column, relationship, reconstructor, validates,
)

from ledger_core.errors import (
    DomainError, InvalidState, MissingField, ValidationError,
)
from ledger_core.models.amount import Amount, amounts_total
from ledger_core.models.base import Base
from ledger_core.models.enums import EntryState, Side


@dataclass(frozen=True)
class DocumentRef:
    """
    Reference to a business object owned by the application.

    ``kind`` names the object's type (e.g. "Invoice"), ``id``
    its identifier. The ledger stores it but never resolves it.
    """
    kind: str
    id: str

    @classmethod
    def of(cls, kind: str | None, id_) -> "DocumentRef | None":
        if kind is None or id_ is None:
            return None
        return cls(kind=kind, id=str(id_))


# States in which the amount set may still change
_EDITABLE = (EntryState.BUILDING, EntryState.REJECTED)


class Entry(Base):
    """
    A journal entry and its debit/credit amounts.

    State lives in memory only: a new Entry starts BUILDING,
    and one loaded from the database is COMMITTED. Committed
    entries are historical records and reject every change.
    """

    __tablename__ = "entries"
    __table_args__ = (
        Index("ix_entries_target", "target_type", "target_id"),
        Index(
            "ix_entries_commercial_document",
            "commercial_document_type",
            "commercial_document_id",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    target_type: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    target_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    commercial_document_type: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    commercial_document_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    tenant_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, default=dt.datetime.utcnow
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, default=dt.datetime.utcnow,
        onupdate=dt.datetime.utcnow,
    )

    amounts: Mapped[list["Amount"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="Amount.id",
    )

    def __init__(self, **kwargs):
        self.state = EntryState.BUILDING
        self.errors: list[DomainError] = []
        super().__init__(**kwargs)

    @reconstructor
    def _init_on_load(self):
        self.state = EntryState.COMMITTED
        self.errors = []

    # --- Guards ---

    def _ensure_editable(self) -> None:
        if self.state not in _EDITABLE:
            raise InvalidState(
                f"Cannot change the amounts of an entry in state {self.state.value}"
            )
        # Fixing a rejected entry puts it back in the building state
        self.state = EntryState.BUILDING

    @validates(
        "description", "date", "target_type", "target_id",
        "commercial_document_type", "commercial_document_id", "tenant_id",
    )
    def _validate_field(self, key, value):
        if self.state == EntryState.COMMITTED:
            raise InvalidState(f"Cannot change {key} of a committed entry")
        return value

    @validates("amounts", include_removes=True)
    def _validate_amounts(self, key, amount, is_remove):
        self._ensure_editable()
        return amount

    # --- Document references ---

    @property
    def target(self) -> DocumentRef | None:
        return DocumentRef.of(self.target_type, self.target_id)

    @target.setter
    def target(self, ref: DocumentRef | None) -> None:
        self.target_type = ref.kind if ref else None
        self.target_id = str(ref.id) if ref else None

    @property
    def commercial_document(self) -> DocumentRef | None:
        return DocumentRef.of(
            self.commercial_document_type, self.commercial_document_id
        )

    @commercial_document.setter
    def commercial_document(self, ref: DocumentRef | None) -> None:
        self.commercial_document_type = ref.kind if ref else None
        self.commercial_document_id = str(ref.id) if ref else None

    # --- Building ---

    def add_amount(self, side: Side, account, value) -> Amount:
        """Attach a new amount on ``side`` and return it."""
        amount = Amount(side=side, account=account, amount=value)
        self.amounts.append(amount)
        return amount

    def add_debit(self, account, value) -> Amount:
        return self.add_amount(Side.DEBIT, account, value)

    def add_credit(self, account, value) -> Amount:
        return self.add_amount(Side.CREDIT, account, value)

    def remove_amount(self, amount: Amount) -> None:
        self.amounts.remove(amount)

    # --- Views over the amounts ---

    @property
    def debit_amounts(self) -> list[Amount]:
        return [a for a in self.amounts if a.side == Side.DEBIT]

    @property
    def credit_amounts(self) -> list[Amount]:
        return [a for a in self.amounts if a.side == Side.CREDIT]

    @property
    def debit_accounts(self) -> list:
        return _unique_accounts(self.debit_amounts)

    @property
    def credit_accounts(self) -> list:
        return _unique_accounts(self.credit_amounts)

    @property
    def debit_total(self) -> Decimal:
        return amounts_total(self.amounts, Side.DEBIT)

    @property
    def credit_total(self) -> Decimal:
        return amounts_total(self.amounts, Side.CREDIT)

    # --- Validation ---

    def validate(self, today: dt.date | None = None) -> list[DomainError]:
        """
        Check the entry's invariants and return every violation.

        All checks run; none stops the others. The entry ends
        up VALIDATING when it is valid (ready to persist) and
        REJECTED otherwise, with the same list in ``errors``.
        The date defaults to ``today`` if it was never set.
        """
        if self.state not in _EDITABLE:
            raise InvalidState(
                f"Cannot validate an entry in state {self.state.value}"
            )
        self.state = EntryState.VALIDATING

        if self.date is None:
            self.date = today or dt.date.today()

        errors: list[DomainError] = []
        if not self.description or not self.description.strip():
            errors.append(MissingField("description"))
        if not self.debit_amounts:
            errors.append(ValidationError("at_least_one_debit_amount"))
        if not self.credit_amounts:
            errors.append(ValidationError("at_least_one_credit_amount"))
        if self.credit_total != self.debit_total:
            errors.append(ValidationError("amounts_are_not_equal"))

        self.errors = errors
        if errors:
            self.state = EntryState.REJECTED
        return errors

    def __repr__(self) -> str:
        return f"<Entry {self.date} {self.description!r} ({self.state.value})>"


def _unique_accounts(amounts: list[Amount]) -> list:
    seen = []
    for amount in amounts:
        if not any(amount.account is a for a in seen):
            seen.append(amount.account)
    return seen
