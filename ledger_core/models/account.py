"""
Account model (chart of accounts).

Every account (cash, receivables, revenue, ...) is a node in
the chart. Amounts are posted against accounts; an account's
type and contra flag decide which side of an amount raises
its balance.
"""

from collections.abc import Iterator
from datetime import datetime

from sqlalchemy import (
    String, Boolean, DateTime, Integer, ForeignKey, Index,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from ledger_core.errors import InvalidArgument, InvalidState, MissingField
from ledger_core.models.base import Base
from ledger_core.models.enums import AccountType, Side, normal_balance_side


class Account(Base):
    """
    A single account in the chart of accounts.

    Accounts may hang under a parent account for rollups. The
    parent chain is kept acyclic: an account can never become
    its own ancestor.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        Index("ix_accounts_name_account_type", "name", "account_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(AccountType, name="account_type_enum"),
        nullable=False,
    )
    contra: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    code: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    rollup_code: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    tenant_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    parent: Mapped["Account | None"] = relationship(
        remote_side=[id], back_populates="children"
    )
    children: Mapped[list["Account"]] = relationship(
        back_populates="parent"
    )
    amounts: Mapped[list["Amount"]] = relationship(
        back_populates="account"
    )

    @property
    def normal_balance_side(self) -> Side:
        return normal_balance_side(self.account_type, bool(self.contra))

    @validates("name")
    def _validate_name(self, key, value):
        if value is None or not str(value).strip():
            raise MissingField("name")
        return value

    @validates("account_type", "contra")
    def _validate_balance_semantics(self, key, value):
        if key == "account_type":
            try:
                value = AccountType(value)
            except ValueError:
                raise InvalidArgument(f"Unknown account type: {value!r}")
        else:
            value = bool(value)

        current = getattr(self, key)
        # Historical amounts would silently change meaning
        if current is not None and current != value and self.amounts:
            raise InvalidState(
                f"Cannot change {key} of account '{self.name}': "
                f"it is referenced by posted amounts"
            )
        return value

    @validates("parent")
    def _validate_parent(self, key, parent):
        seen = set()
        node = parent
        while node is not None:
            if node is self:
                raise InvalidState(
                    f"Account '{self.name}' cannot be its own ancestor"
                )
            if id(node) in seen:
                raise InvalidState("Parent chain contains a cycle")
            seen.add(id(node))
            node = node.parent
        return parent

    def descendants(self) -> Iterator["Account"]:
        """
        Yield every account below this one, depth first.

        Raises InvalidState if the stored hierarchy loops back
        on itself, instead of walking forever.
        """
        seen = {id(self)}
        stack = list(reversed(self.children))
        while stack:
            child = stack.pop()
            if id(child) in seen:
                raise InvalidState(
                    f"Account hierarchy under '{self.name}' contains a cycle"
                )
            seen.add(id(child))
            yield child
            stack.extend(reversed(child.children))

    def __repr__(self) -> str:
        contra = " contra" if self.contra else ""
        return f"<Account {self.name} ({self.account_type.value}{contra})>"
