"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from ledger_core.models.base import Base
from ledger_core.models.enums import (
    AccountType,
    Side,
    EntryState,
    normal_balance_side,
)
from ledger_core.models.account import Account
from ledger_core.models.amount import Amount, signed_effect, amounts_total
from ledger_core.models.entry import Entry, DocumentRef

__all__ = [
    "Base",
    "AccountType",
    "Side",
    "EntryState",
    "normal_balance_side",
    "Account",
    "Amount",
    "signed_effect",
    "amounts_total",
    "Entry",
    "DocumentRef",
]
