"""
pointkeeper.services.points_service — Ledger Command Surface
=============================================================

Wires the stores, transaction engine, bootstrap loader, and reconciler
together and exposes the operations the cogs call:

* ``bootstrap()`` / ``reload()`` — replay the record logs
* ``register_task()`` / ``register_reward()`` — grow a catalog
* ``check_balance()`` — read a member's balance
* ``earn()`` / ``spend()`` — handle a reaction end to end

Transactions pass through a shared gate and replays take it exclusively,
so a reload never swaps the stores under a half-written transaction.

Reaction policy lives here: an earn reaction is always withdrawn after
processing; a spend reaction is withdrawn when rejected for insufficient
funds, and after a purchase only under the ``remove`` policy.  Under the
default ``keep`` policy the member removes it once the reward is used;
that removal is not tracked.
"""

from __future__ import annotations

import logging

from pointkeeper.constants import REWARD_REACTION_KEEP, REWARD_REACTION_REMOVE
from pointkeeper.engine.catalog import CatalogKind, CatalogStore
from pointkeeper.engine.errors import DeliveryFailure
from pointkeeper.engine.ledger import LedgerStore
from pointkeeper.engine.transactions import (
    EarnOutcome,
    SpendOutcome,
    SpendStatus,
    TransactionEngine,
)
from pointkeeper.services.bootstrap import BootstrapLoader, BootstrapReport
from pointkeeper.services.gate import TransactionGate
from pointkeeper.services.messaging import Messenger, ReactionHandle
from pointkeeper.services.reconciler import Reconciler
from pointkeeper.services.record_log import RecordLog

logger = logging.getLogger(__name__)

__all__ = ["PointsService"]


class PointsService:
    """The ledger core, assembled.

    Parameters
    ----------
    tasks_log, rewards_log, users_log:
        Record logs for the two catalogs and the ledger.
    messenger:
        Private-message delivery for outcome notices.
    currency:
        Unit name used in notices.
    reward_reaction_policy:
        ``"keep"`` or ``"remove"`` — what happens to a purchase reaction.
    """

    def __init__(
        self,
        *,
        tasks_log: RecordLog,
        rewards_log: RecordLog,
        users_log: RecordLog,
        messenger: Messenger,
        currency: str = "AP",
        reward_reaction_policy: str = REWARD_REACTION_KEEP,
    ) -> None:
        self.catalog = CatalogStore()
        self.ledger = LedgerStore()
        self.engine = TransactionEngine(self.catalog, self.ledger)
        self.loader = BootstrapLoader(
            self.catalog,
            self.ledger,
            tasks_log=tasks_log,
            rewards_log=rewards_log,
            users_log=users_log,
        )
        self.reconciler = Reconciler(self.ledger, users_log, messenger, currency=currency)
        self.currency = currency
        self.reward_reaction_policy = reward_reaction_policy
        self.gate = TransactionGate()

    # -------------------------------------------------------------------
    # Bootstrap
    # -------------------------------------------------------------------
    async def bootstrap(self) -> BootstrapReport:
        """Initial load.  Errors propagate; the caller aborts startup."""
        async with self.gate.exclusive():
            return await self.loader.load()

    async def reload(self) -> BootstrapReport:
        """Operator reload: full replay with overwrite semantics.

        Waits for in-flight transactions to finish writing their records,
        and holds new ones back until the stores are swapped.  On failure
        the stores keep their previous contents.
        """
        logger.info("Reloading catalogs and ledger from record logs")
        async with self.gate.exclusive():
            return await self.loader.load()

    # -------------------------------------------------------------------
    # Catalog & balance
    # -------------------------------------------------------------------
    def register_task(self, trigger_id: int, value: int) -> None:
        self.catalog.register(CatalogKind.TASKS, trigger_id, value)
        logger.info("Registered task %d worth %d", trigger_id, value)

    def register_reward(self, trigger_id: int, value: int) -> None:
        self.catalog.register(CatalogKind.REWARDS, trigger_id, value)
        logger.info("Registered reward %d costing %d", trigger_id, value)

    def check_balance(self, user_id: int) -> int:
        return self.ledger.balance(user_id)

    # -------------------------------------------------------------------
    # Reactions
    # -------------------------------------------------------------------
    async def _withdraw(self, reaction: ReactionHandle | None) -> bool:
        if reaction is None:
            return False
        try:
            await reaction.withdraw()
        except DeliveryFailure as exc:
            logger.warning("Reaction not withdrawn: %s", exc)
            return False
        return True

    async def earn(
        self, trigger_id: int, user_id: int, reaction: ReactionHandle | None = None
    ) -> EarnOutcome:
        """Credit a task, withdraw the reaction, persist, and notify."""
        async with self.gate.shared():
            try:
                outcome = self.engine.earn(trigger_id, user_id)
            finally:
                # Withdrawn whatever happened, so the same reaction is never replayed.
                await self._withdraw(reaction)
            await self.reconciler.settle_earn(outcome)
        return outcome

    async def spend(
        self, trigger_id: int, user_id: int, reaction: ReactionHandle | None = None
    ) -> SpendOutcome:
        """Debit a reward, apply the reaction policy, persist, and notify."""
        async with self.gate.shared():
            outcome = self.engine.spend(trigger_id, user_id)

            withdraw = outcome.status is SpendStatus.INSUFFICIENT_FUNDS or (
                outcome.ok and self.reward_reaction_policy == REWARD_REACTION_REMOVE
            )
            if withdraw:
                await self._withdraw(reaction)

            await self.reconciler.settle_spend(
                outcome, reaction_kept=self.reward_reaction_policy == REWARD_REACTION_KEEP,
            )
        return outcome
