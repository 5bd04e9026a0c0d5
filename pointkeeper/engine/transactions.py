"""
pointkeeper.engine.transactions — Earn / Spend Engine
======================================================

Pure in-memory transaction logic.  No Discord I/O, no record-log I/O.

    reaction on task post   → earn()  → EarnOutcome
    reaction on reward post → spend() → SpendOutcome

The ledger lock is held only inside :class:`LedgerStore` methods, so the
outcome returned here is already committed in memory when the caller goes
on to persist it and notify the member.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from pointkeeper.engine.catalog import CatalogKind, CatalogStore
from pointkeeper.engine.errors import InsufficientFunds
from pointkeeper.engine.ledger import LedgerStore

logger = logging.getLogger(__name__)

__all__ = ["EarnOutcome", "SpendOutcome", "SpendStatus", "TransactionEngine"]


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class EarnOutcome:
    """Result of a committed earn.

    ``had_existing_record`` is informational: whether the member already
    had a durable record when the earn committed.  The reconciler decides
    between create and update from the account it reads under its own lock.
    """

    user_id: int
    trigger_id: int
    value: int
    balance: int
    had_existing_record: bool


class SpendStatus(enum.Enum):
    OK = "ok"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INVALID_TRIGGER = "invalid_trigger"


@dataclass(frozen=True, slots=True)
class SpendOutcome:
    """Result of a spend attempt.

    ``balance`` is the new balance on OK and the unchanged balance
    otherwise.  ``cost`` is None for an unregistered trigger.
    """

    status: SpendStatus
    user_id: int
    trigger_id: int
    cost: int | None
    balance: int

    @property
    def ok(self) -> bool:
        return self.status is SpendStatus.OK


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
class TransactionEngine:
    """Applies earn/spend operations against the shared stores."""

    def __init__(self, catalog: CatalogStore, ledger: LedgerStore) -> None:
        self.catalog = catalog
        self.ledger = ledger

    def earn(self, trigger_id: int, user_id: int) -> EarnOutcome:
        """Credit the task's value to *user_id*.

        Unregistered triggers are worth 0 and still count as a completed
        transaction (the member gets an account and a record).
        """
        value = self.catalog.lookup(CatalogKind.TASKS, trigger_id)
        if value is None:
            logger.info("Reaction on unregistered task %d by user %d", trigger_id, user_id)
            value = 0

        account = self.ledger.credit(user_id, value)
        logger.info(
            "Earn: user %d +%d via task %d → %d", user_id, value, trigger_id, account.balance,
        )
        return EarnOutcome(
            user_id=user_id,
            trigger_id=trigger_id,
            value=value,
            balance=account.balance,
            had_existing_record=account.has_record,
        )

    def spend(self, trigger_id: int, user_id: int) -> SpendOutcome:
        """Debit the reward's cost from *user_id* if the balance covers it."""
        cost = self.catalog.lookup(CatalogKind.REWARDS, trigger_id)
        if cost is None:
            logger.warning(
                "Reaction on unregistered reward %d by user %d", trigger_id, user_id,
            )
            return SpendOutcome(
                status=SpendStatus.INVALID_TRIGGER,
                user_id=user_id,
                trigger_id=trigger_id,
                cost=None,
                balance=self.ledger.balance(user_id),
            )

        try:
            account = self.ledger.debit(user_id, cost)
        except InsufficientFunds as exc:
            logger.info(
                "Spend rejected: user %d has %d, reward %d costs %d",
                user_id, exc.balance, trigger_id, cost,
            )
            return SpendOutcome(
                status=SpendStatus.INSUFFICIENT_FUNDS,
                user_id=user_id,
                trigger_id=trigger_id,
                cost=cost,
                balance=exc.balance,
            )

        logger.info(
            "Spend: user %d -%d via reward %d → %d", user_id, cost, trigger_id, account.balance,
        )
        return SpendOutcome(
            status=SpendStatus.OK,
            user_id=user_id,
            trigger_id=trigger_id,
            cost=cost,
            balance=account.balance,
        )
