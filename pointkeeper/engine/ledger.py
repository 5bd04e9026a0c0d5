"""
pointkeeper.engine.ledger — Per-Member Balance Store
=====================================================

**Why this file exists:**
Reaction events are handled concurrently, and "check balance, then debit"
must not interleave with another transaction for the same member.  The
store owns its mapping outright and only offers whole operations
(:meth:`LedgerStore.credit`, :meth:`LedgerStore.debit`, …), each of which
holds the lock for its full read-modify-write.  The lock is never held
across I/O; persisting a balance is the reconciler's job.

Accounts are immutable snapshots.  Callers receive copies, so nothing
outside this module can mutate a balance.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass

from pointkeeper.constants import MAX_POINTS
from pointkeeper.engine.errors import InsufficientFunds, InvariantViolation

logger = logging.getLogger(__name__)

__all__ = ["Account", "LedgerStore"]


@dataclass(frozen=True, slots=True)
class Account:
    """A member's balance and the id of their durable record (if any)."""

    user_id: int
    balance: int = 0
    record_id: int | None = None

    @property
    def has_record(self) -> bool:
        return self.record_id is not None


class LedgerStore:
    """Thread-safe ``user_id → Account`` mapping.

    Invariants held under the lock:
      * ``0 <= balance <= MAX_POINTS`` for every account
      * ``record_id`` never changes once set (except by :meth:`replace`)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._accounts: dict[int, Account] = {}

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get(self, user_id: int) -> Account | None:
        with self._lock:
            return self._accounts.get(user_id)

    def balance(self, user_id: int) -> int:
        """Current balance; members without an account have 0."""
        with self._lock:
            account = self._accounts.get(user_id)
        return account.balance if account is not None else 0

    def snapshot(self) -> dict[int, Account]:
        with self._lock:
            return dict(self._accounts)

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._accounts

    # -------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------
    def credit(self, user_id: int, amount: int) -> Account:
        """Add *amount* to the balance, creating the account if needed.

        Returns the committed account.

        Raises
        ------
        InvariantViolation
            If *amount* is negative or the result would exceed ``MAX_POINTS``.
        """
        if amount < 0:
            raise InvariantViolation(f"Credit amount must be non-negative, got {amount}")
        with self._lock:
            account = self._accounts.get(user_id) or Account(user_id=user_id)
            new_balance = account.balance + amount
            if new_balance > MAX_POINTS:
                raise InvariantViolation(
                    f"Balance overflow for user {user_id}: "
                    f"{account.balance} + {amount} > {MAX_POINTS}"
                )
            account = dataclasses.replace(account, balance=new_balance)
            self._accounts[user_id] = account
        return account

    def debit(self, user_id: int, cost: int) -> Account:
        """Subtract *cost* if the balance covers it.

        A member without an account is treated as having 0; the account is
        only created if the debit succeeds.

        Raises
        ------
        InsufficientFunds
            If ``balance < cost``.  Nothing is mutated.
        """
        if cost < 0:
            raise InvariantViolation(f"Debit cost must be non-negative, got {cost}")
        with self._lock:
            account = self._accounts.get(user_id) or Account(user_id=user_id)
            if account.balance < cost:
                raise InsufficientFunds(user_id, account.balance, cost)
            account = dataclasses.replace(account, balance=account.balance - cost)
            self._accounts[user_id] = account
        return account

    # -------------------------------------------------------------------
    # Durable-record bookkeeping
    # -------------------------------------------------------------------
    def attach_record(self, user_id: int, record_id: int) -> None:
        """Remember the durable record created for *user_id*.

        Raises
        ------
        InvariantViolation
            If the account is unknown or already points at another record.
        """
        with self._lock:
            account = self._accounts.get(user_id)
            if account is None:
                raise InvariantViolation(f"No account for user {user_id}")
            if account.record_id is not None and account.record_id != record_id:
                raise InvariantViolation(
                    f"User {user_id} already has record {account.record_id}; "
                    f"refusing to attach {record_id}"
                )
            self._accounts[user_id] = dataclasses.replace(account, record_id=record_id)

    def replace(self, accounts: Mapping[int, Account]) -> None:
        """Swap in a whole ledger at once (bootstrap / reload)."""
        fresh: dict[int, Account] = {}
        for user_id, account in accounts.items():
            if user_id != account.user_id:
                raise InvariantViolation(
                    f"Account for {account.user_id} filed under {user_id}"
                )
            if not 0 <= account.balance <= MAX_POINTS:
                raise InvariantViolation(
                    f"Balance {account.balance} for user {user_id} out of range"
                )
            fresh[user_id] = account
        with self._lock:
            self._accounts = fresh
