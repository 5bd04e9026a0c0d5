"""
pointkeeper.services.reconciler — Write-Through & Outcome Notices
==================================================================

After the transaction engine commits a balance in memory, the reconciler:

1. writes the member's *current* balance to their record in the users
   channel, creating the record on first use; and
2. DMs the member what happened.

Record I/O for one member is serialized with a per-member
:class:`asyncio.Lock`, so two concurrent first transactions cannot create
two records.  Writing the current balance (not the outcome's) means the
last write always wins with the newest value, and a member whose previous
write failed is repaired by their next transaction.

The in-memory ledger stays authoritative: nothing here rolls back a
committed balance.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from pointkeeper.constants import (
    EARN_TEMPLATE,
    INSUFFICIENT_TEMPLATE,
    INVALID_REWARD_TEXT,
    SPEND_KEEP_TEMPLATE,
    SPEND_REMOVE_TEMPLATE,
)
from pointkeeper.engine.errors import (
    DeliveryFailure,
    PersistenceInconsistency,
    RecordLogError,
)
from pointkeeper.engine.ledger import LedgerStore
from pointkeeper.engine.records import format_record
from pointkeeper.engine.transactions import EarnOutcome, SpendOutcome, SpendStatus
from pointkeeper.services.messaging import Messenger
from pointkeeper.services.record_log import RecordLog

logger = logging.getLogger(__name__)

__all__ = ["Reconciler", "format_earn_notice", "format_spend_notice"]


# ---------------------------------------------------------------------------
# Notice text
# ---------------------------------------------------------------------------
def format_earn_notice(outcome: EarnOutcome, currency: str) -> str:
    return EARN_TEMPLATE.format(balance=outcome.balance, currency=currency)


def format_spend_notice(
    outcome: SpendOutcome, currency: str, *, reaction_kept: bool = True
) -> str:
    if outcome.status is SpendStatus.OK:
        template = SPEND_KEEP_TEMPLATE if reaction_kept else SPEND_REMOVE_TEMPLATE
        return template.format(balance=outcome.balance, currency=currency)
    if outcome.status is SpendStatus.INSUFFICIENT_FUNDS:
        return INSUFFICIENT_TEMPLATE.format(
            cost=outcome.cost, balance=outcome.balance, currency=currency,
        )
    return INVALID_REWARD_TEXT


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------
class Reconciler:
    """Pushes ledger state to the users log and notifies members."""

    def __init__(
        self,
        ledger: LedgerStore,
        record_log: RecordLog,
        messenger: Messenger,
        *,
        currency: str = "AP",
    ) -> None:
        self.ledger = ledger
        self.record_log = record_log
        self.messenger = messenger
        self.currency = currency
        self._user_locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def persist(self, user_id: int) -> bool:
        """Write the member's current balance to their durable record.

        Returns True if the record now matches memory, False if an update
        failed (logged; retried by the next transaction).

        Raises
        ------
        PersistenceInconsistency
            The member had no record and creating one failed.
        """
        async with self._user_locks[user_id]:
            account = self.ledger.get(user_id)
            if account is None:
                logger.warning("Persist requested for unknown user %d", user_id)
                return False

            content = format_record(user_id, account.balance)

            if account.record_id is None:
                try:
                    record_id = await self.record_log.create(content)
                except RecordLogError:
                    logger.error(
                        "Could not create record for user %d (balance %d); "
                        "balance is held in memory only",
                        user_id, account.balance, exc_info=True,
                    )
                    raise PersistenceInconsistency(user_id, account.balance) from None
                self.ledger.attach_record(user_id, record_id)
                logger.info("Created record %d for user %d", record_id, user_id)
                return True

            try:
                await self.record_log.update(account.record_id, content)
            except RecordLogError:
                logger.warning(
                    "Could not update record %d for user %d to %d; "
                    "will retry on the next transaction",
                    account.record_id, user_id, account.balance, exc_info=True,
                )
                return False
            return True

    async def notify(self, user_id: int, text: str) -> bool:
        """DM *text* to the member.  Never raises on delivery failure."""
        try:
            await self.messenger.send_private(user_id, text)
        except DeliveryFailure as exc:
            logger.warning("Notification to user %d not delivered: %s", user_id, exc)
            return False
        return True

    async def settle_earn(self, outcome: EarnOutcome) -> None:
        """Persist an earn and tell the member their new total."""
        try:
            await self.persist(outcome.user_id)
        finally:
            await self.notify(outcome.user_id, format_earn_notice(outcome, self.currency))

    async def settle_spend(self, outcome: SpendOutcome, *, reaction_kept: bool = True) -> None:
        """Persist a successful spend (if any) and tell the member the result."""
        text = format_spend_notice(outcome, self.currency, reaction_kept=reaction_kept)
        if not outcome.ok:
            await self.notify(outcome.user_id, text)
            return
        try:
            await self.persist(outcome.user_id)
        finally:
            await self.notify(outcome.user_id, text)
