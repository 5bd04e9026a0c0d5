"""
pointkeeper.services.bootstrap — Backlog Replay
================================================

Rebuilds both stores from the three record logs:

    tasks channel   → CatalogKind.TASKS    (post id → points)
    rewards channel → CatalogKind.REWARDS  (post id → points)
    users channel   → LedgerStore          (user id → balance, record id)

Everything is parsed into fresh mappings first and swapped in only when
all three logs are clean.  A single malformed record aborts the whole load
with :class:`BootstrapCorruption`; an incomplete ledger would silently
reset someone's balance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pointkeeper.engine.catalog import CatalogKind, CatalogStore
from pointkeeper.engine.errors import BootstrapCorruption, MalformedRecord
from pointkeeper.engine.ledger import Account, LedgerStore
from pointkeeper.engine.records import parse_catalog_record, parse_ledger_record
from pointkeeper.services.record_log import RecordLog

logger = logging.getLogger(__name__)

__all__ = ["BootstrapLoader", "BootstrapReport"]


@dataclass(frozen=True, slots=True)
class BootstrapReport:
    """Counts of what a load put into the stores."""

    tasks: int
    rewards: int
    accounts: int


class BootstrapLoader:
    """Replays record logs into the catalog and ledger stores."""

    def __init__(
        self,
        catalog: CatalogStore,
        ledger: LedgerStore,
        *,
        tasks_log: RecordLog,
        rewards_log: RecordLog,
        users_log: RecordLog,
    ) -> None:
        self.catalog = catalog
        self.ledger = ledger
        self.tasks_log = tasks_log
        self.rewards_log = rewards_log
        self.users_log = users_log

    async def _read_catalog(self, log: RecordLog) -> dict[int, int]:
        entries: dict[int, int] = {}
        async for record in log.list():
            try:
                _label, value = parse_catalog_record(record.content)
            except MalformedRecord as exc:
                raise BootstrapCorruption(log.name, record.id, record.content, exc.reason) from exc
            entries[record.id] = value
        return entries

    async def _read_ledger(self, log: RecordLog) -> dict[int, Account]:
        accounts: dict[int, Account] = {}
        async for record in log.list():
            try:
                user_id, balance = parse_ledger_record(record.content)
            except MalformedRecord as exc:
                raise BootstrapCorruption(log.name, record.id, record.content, exc.reason) from exc
            previous = accounts.get(user_id)
            if previous is not None:
                logger.warning(
                    "User %d has records %d and %d in %s; using the newer one",
                    user_id, previous.record_id, record.id, log.name,
                )
            accounts[user_id] = Account(user_id=user_id, balance=balance, record_id=record.id)
        return accounts

    async def load(self) -> BootstrapReport:
        """Read all logs, then replace the stores' contents.

        Raises
        ------
        BootstrapCorruption
            A record failed to parse.  The stores are untouched.
        RecordLogError
            A log could not be read.  The stores are untouched.
        """
        tasks = await self._read_catalog(self.tasks_log)
        rewards = await self._read_catalog(self.rewards_log)
        accounts = await self._read_ledger(self.users_log)

        self.catalog.replace(CatalogKind.TASKS, tasks)
        self.catalog.replace(CatalogKind.REWARDS, rewards)
        self.ledger.replace(accounts)

        report = BootstrapReport(tasks=len(tasks), rewards=len(rewards), accounts=len(accounts))
        logger.info(
            "Bootstrap loaded: %d tasks, %d rewards, %d accounts",
            report.tasks, report.rewards, report.accounts,
        )
        return report
