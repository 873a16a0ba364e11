"""
Amount model.

An amount is one debit or credit line of an entry. The stored
value is never negative: the side says which way it moves an
account. signed_effect() is the only place where sides are
turned into signs.
"""

from collections.abc import Iterable
from decimal import Context, Decimal, InvalidOperation, localcontext

from sqlalchemy import ForeignKey, Index, Numeric, String, Enum as SAEnum
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from ledger_core.errors import InvalidArgument, InvalidState
from ledger_core.models.base import Base
from ledger_core.models.enums import EntryState, Side

# NUMERIC(30, 10): 20 integer digits, 10 fractional digits
INTEGER_DIGITS = 20
SCALE = 10
PRECISION = INTEGER_DIGITS + SCALE
QUANTUM = Decimal(1).scaleb(-SCALE)
UPPER_BOUND = Decimal(10) ** INTEGER_DIGITS

# Sums over long histories need more digits than the default
# context (28) or they get rounded.
LEDGER_CONTEXT = Context(prec=PRECISION * 2)

ZERO = Decimal("0")


def to_amount_value(value) -> Decimal:
    """
    Coerce a monetary value to a Decimal an amount can hold.

    Floats are converted through str() so 0.1 stays 0.1.
    Raises InvalidArgument for negative, NaN, infinite,
    non-numeric or out-of-range values.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidArgument(f"Amount must be a number, got {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidArgument(f"Amount must be a number, got {value!r}")

    if not result.is_finite():
        raise InvalidArgument(f"Amount must be finite, got {result}")
    if result < 0:
        raise InvalidArgument(f"Amount must not be negative, got {result}")
    if result >= UPPER_BOUND:
        raise InvalidArgument(
            f"Amount exceeds {INTEGER_DIGITS} integer digits: {result}"
        )
    if result.as_tuple().exponent < -SCALE:
        with localcontext(LEDGER_CONTEXT):
            quantized = result.quantize(QUANTUM)
        if quantized != result:
            raise InvalidArgument(
                f"Amount has more than {SCALE} decimal places: {result}"
            )
        result = quantized
    if result.is_zero():
        # -0 compares equal to 0; drop the sign so it is never stored
        result = abs(result)
    return result


class ExactDecimal(TypeDecorator):
    """
    NUMERIC(30, 10) that reads back exactly what was written.

    Backends with a native decimal type get NUMERIC. SQLite has
    none and would keep a float, so there the value is stored
    as fixed-point text with all ten fractional digits.
    """

    impl = Numeric
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(PRECISION + 2))
        return dialect.type_descriptor(Numeric(PRECISION, SCALE, asdecimal=True))

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name != "sqlite":
            return value
        with localcontext(LEDGER_CONTEXT):
            return format(Decimal(value).quantize(QUANTUM), "f")

    def process_result_value(self, value, dialect):
        if value is None or dialect.name != "sqlite":
            return value
        return Decimal(value)


class Amount(Base):
    """
    A debit or credit of one account within one entry.

    The amount belongs to its entry for its whole life: it
    cannot be moved to another entry, and once the entry is
    committed it cannot be changed at all.
    """

    __tablename__ = "amounts"
    __table_args__ = (
        Index("ix_amounts_account_id_entry_id", "account_id", "entry_id"),
        Index("ix_amounts_entry_id_account_id", "entry_id", "account_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    side: Mapped[Side] = mapped_column(
        SAEnum(Side, name="amount_side_enum"),
        nullable=False,
        index=True,
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False
    )
    entry_id: Mapped[int] = mapped_column(
        ForeignKey("entries.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(ExactDecimal(), nullable=False)

    account: Mapped["Account"] = relationship(back_populates="amounts")
    entry: Mapped["Entry"] = relationship(back_populates="amounts")

    def _ensure_mutable(self) -> None:
        entry = self.entry
        if entry is not None and entry.state == EntryState.COMMITTED:
            raise InvalidState("Amounts of a committed entry are immutable")

    @validates("amount")
    def _validate_amount(self, key, value):
        self._ensure_mutable()
        return to_amount_value(value)

    @validates("side", "account")
    def _validate_posting(self, key, value):
        self._ensure_mutable()
        if key == "side":
            try:
                return Side(value)
            except ValueError:
                raise InvalidArgument(f"Unknown amount side: {value!r}")
        return value

    @validates("entry")
    def _validate_entry(self, key, entry):
        current = self.entry
        if current is not None and entry is not None and entry is not current:
            raise InvalidState("An amount cannot be moved to another entry")
        return entry

    @property
    def is_debit(self) -> bool:
        return self.side == Side.DEBIT

    @property
    def is_credit(self) -> bool:
        return self.side == Side.CREDIT

    def __repr__(self) -> str:
        return f"<Amount {self.side.value} {self.amount}>"


def signed_effect(amount: Amount, account=None) -> Decimal:
    """
    Return how much ``amount`` moves ``account``'s balance.

    Positive when the amount sits on the account's normal
    balance side, negative otherwise. ``account`` defaults to
    the amount's own account; rollups pass the parent account
    so descendants are read in the parent's convention.
    """
    if account is None:
        account = amount.account
    if amount.side == account.normal_balance_side:
        return amount.amount
    return -amount.amount


def amounts_total(amounts: Iterable[Amount], side: Side | None = None) -> Decimal:
    """
    Sum raw amount values, optionally only those on ``side``.

    Works on unsaved amounts as well as persisted ones, which
    is what pre-commit validation needs.
    """
    with localcontext(LEDGER_CONTEXT):
        return sum(
            (a.amount for a in amounts if side is None or a.side == side),
            ZERO,
        )
