"""
Shared enumerations for database models.

Enums are mapped to database enums so an invalid account
type or amount side is rejected by the database too.
"""

import enum


class AccountType(str, enum.Enum):
    """The five fundamental accounting categories."""
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class Side(str, enum.Enum):
    """Which side of the journal an amount is posted to."""
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"

    @property
    def opposite(self) -> "Side":
        return Side.CREDIT if self is Side.DEBIT else Side.DEBIT


class EntryState(str, enum.Enum):
    """In-memory lifecycle of an entry. Not persisted."""
    BUILDING = "BUILDING"
    VALIDATING = "VALIDATING"
    COMMITTED = "COMMITTED"
    REJECTED = "REJECTED"


# Side whose amounts increase the balance of each account type
NORMAL_BALANCE: dict[AccountType, Side] = {
    AccountType.ASSET: Side.DEBIT,
    AccountType.EXPENSE: Side.DEBIT,
    AccountType.LIABILITY: Side.CREDIT,
    AccountType.EQUITY: Side.CREDIT,
    AccountType.REVENUE: Side.CREDIT,
}


def normal_balance_side(account_type: AccountType, contra: bool = False) -> Side:
    """Return the normal balance side, reversed for contra accounts."""
    side = NORMAL_BALANCE[AccountType(account_type)]
    return side.opposite if contra else side
