"""
Ledger service: balances derived from posted amounts.

Balances are never stored in the database; they are always
computed from the amounts, through signed_effect(). When a
RunningBalances tracker is supplied the service can also
answer from it, and reconcile() checks that the tracked
figure still equals a full recomputation.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, localcontext

from ledger_core.errors import InvalidState, NotFoundError, account_not_found
from ledger_core.models.account import Account
from ledger_core.models.amount import (
    LEDGER_CONTEXT, ZERO, amounts_total, signed_effect,
)
from ledger_core.models.enums import Side
from ledger_core.repository import LedgerRepository
from ledger_core.services.running_balances import RunningBalances

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reconciliation:
    account_id: int
    recomputed: Decimal
    tracked: Decimal

    @property
    def agrees(self) -> bool:
        return self.recomputed == self.tracked


class LedgerService:
    """
    Balance calculator over the persisted ledger.

    Only committed entries are ever visible here, because
    entries reach the database only through an atomic commit.
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

    def _resolve(self, account: Account | int) -> Account:
        if isinstance(account, Account):
            return account
        found = self.repository.get_account(account)
        if found is None:
            raise NotFoundError(account_not_found(account))
        return found

    def balance(
        self,
        account: Account | int,
        as_of: date | None = None,
        include_descendants: bool = False,
    ) -> Decimal:
        """
        Recompute an account's balance from its amounts.

        ``as_of`` restricts to entries dated on or before that
        day. With ``include_descendants`` the amounts of every
        account below this one are added too, read in this
        account's sign convention (so a contra child reduces
        its parent). An account with no amounts has balance 0.
        """
        account = self._resolve(account)
        account_ids = [account.id]
        if include_descendants:
            account_ids.extend(child.id for child in account.descendants())

        amounts = self.repository.query_amounts(account_ids, date_to=as_of)
        with localcontext(LEDGER_CONTEXT):
            return sum((signed_effect(a, account) for a in amounts), ZERO)

    def tracked_balance(self, account: Account | int) -> Decimal:
        """Balance from the running tracker, seeding it on first use."""
        if self.tracker is None:
            raise InvalidState("No running balance tracker configured")
        account = self._resolve(account)
        return self.tracker.get(account.id, lambda: self.balance(account))

    def reconcile(self, account: Account | int) -> Reconciliation:
        """Compare the tracked balance with a full recomputation."""
        account = self._resolve(account)
        tracked = self.tracked_balance(account)
        recomputed = self.balance(account)
        result = Reconciliation(account.id, recomputed, tracked)
        if not result.agrees:
            logger.warning(
                "Running balance drift on account %s: tracked=%s recomputed=%s",
                account.id, tracked, recomputed,
            )
        return result

    def check_integrity(self) -> dict:
        """
        Verify the whole ledger balances: total debits must
        equal total credits across every committed entry.
        """
        amounts = self.repository.query_all_amounts()
        total_debits = amounts_total(amounts, Side.DEBIT)
        total_credits = amounts_total(amounts, Side.CREDIT)
        difference = total_debits - total_credits
        if difference != 0:
            logger.error(
                "Ledger out of balance: debits=%s credits=%s",
                total_debits, total_credits,
            )
        return {
            "total_debits": total_debits,
            "total_credits": total_credits,
            "difference": difference,
            "is_balanced": difference == 0,
        }
