"""Business logic services."""

from ledger_core.services.account_service import AccountService
from ledger_core.services.entry_service import EntryService
from ledger_core.services.ledger_service import LedgerService, Reconciliation
from ledger_core.services.running_balances import RunningBalances

__all__ = [
    "AccountService",
    "EntryService",
    "LedgerService",
    "Reconciliation",
    "RunningBalances",
]
