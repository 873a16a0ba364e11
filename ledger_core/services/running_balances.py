"""
Incrementally tracked account balances.

A RunningBalances instance caches each account's balance the
first time it is asked for (by full recomputation), then moves
it by the signed effect of every entry committed through an
EntryService that shares the instance.

Seeding and applying take the same lock, so a seed can never
read the database between a commit and its apply step. That
keeps the cache equal to a recomputation, exactly.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from decimal import Decimal, localcontext

from ledger_core.models.amount import LEDGER_CONTEXT

logger = logging.getLogger(__name__)


class RunningBalances:

    def __init__(self):
        self._balances: dict[int, Decimal] = {}
        self._lock = threading.RLock()

    @contextmanager
    def posting(self) -> Iterator[None]:
        """Hold the lock around a database commit and its apply()."""
        with self._lock:
            yield

    def apply(self, deltas: Iterable[tuple[int, Decimal]]) -> None:
        """
        Move cached balances by (account_id, signed delta) pairs.

        Accounts that are not cached yet are skipped: their first
        read recomputes from the database, which already includes
        the committed entry.
        """
        with self._lock, localcontext(LEDGER_CONTEXT):
            for account_id, delta in deltas:
                if account_id in self._balances:
                    self._balances[account_id] += delta

    def get(self, account_id: int, compute: Callable[[], Decimal]) -> Decimal:
        with self._lock:
            if account_id not in self._balances:
                self._balances[account_id] = compute()
                logger.debug(
                    "Seeded running balance for account %s: %s",
                    account_id, self._balances[account_id],
                )
            return self._balances[account_id]

    def invalidate(self, account_id: int | None = None) -> None:
        """Drop one cached balance, or all of them."""
        with self._lock:
            if account_id is None:
                self._balances.clear()
            else:
                self._balances.pop(account_id, None)

    def __contains__(self, account_id: int) -> bool:
        with self._lock:
            return account_id in self._balances
