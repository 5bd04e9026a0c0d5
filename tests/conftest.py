"""
tests/conftest.py — Shared Test Fixtures
=========================================

In-memory stand-ins for the Discord side of the ledger: a record log that
behaves like a channel (ids in creation order, editable content), a
messenger that records DMs, and a reaction handle that records withdrawal.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest

from pointkeeper.engine.errors import DeliveryFailure, RecordLogError
from pointkeeper.services.points_service import PointsService
from pointkeeper.services.record_log import Record


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a fresh event loop."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------
class InMemoryRecordLog:
    """A :class:`RecordLog` that keeps records in a dict.

    ``fail_create`` / ``fail_update`` / ``fail_list`` make the matching
    operation raise :class:`RecordLogError`.
    """

    def __init__(self, name: str, *, start_id: int = 1000) -> None:
        self.name = name
        self.records: dict[int, str] = {}
        self._next_id = start_id
        self.fail_create = False
        self.fail_update = False
        self.fail_list = False
        self.create_calls = 0
        self.update_calls = 0

    def seed(self, content: str) -> int:
        """Append a record synchronously (test setup)."""
        record_id = self._next_id
        self._next_id += 1
        self.records[record_id] = content
        return record_id

    async def create(self, content: str) -> int:
        self.create_calls += 1
        await asyncio.sleep(0)  # yield like real I/O would
        if self.fail_create:
            raise RecordLogError(f"{self.name}: create refused")
        return self.seed(content)

    async def update(self, record_id: int, content: str) -> None:
        self.update_calls += 1
        await asyncio.sleep(0)
        if self.fail_update:
            raise RecordLogError(f"{self.name}: update refused")
        if record_id not in self.records:
            raise RecordLogError(f"{self.name}: no record {record_id}")
        self.records[record_id] = content

    async def list(self) -> AsyncIterator[Record]:
        if self.fail_list:
            raise RecordLogError(f"{self.name}: history unavailable")
        for record_id, content in list(self.records.items()):
            yield Record(id=record_id, content=content)


class FakeMessenger:
    """Records DMs; ``fail`` makes every send raise DeliveryFailure."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, str]] = []
        self.fail = False

    async def send_private(self, user_id: int, text: str) -> None:
        if self.fail:
            raise DeliveryFailure(f"user {user_id} has DMs closed")
        self.sent.append((user_id, text))

    def texts_for(self, user_id: int) -> list[str]:
        return [text for uid, text in self.sent if uid == user_id]


class FakeReaction:
    """Reaction handle that remembers whether it was withdrawn."""

    def __init__(self, *, fail: bool = False) -> None:
        self.withdrawn = False
        self.fail = fail

    async def withdraw(self) -> None:
        if self.fail:
            raise DeliveryFailure("missing Manage Messages")
        self.withdrawn = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def tasks_log() -> InMemoryRecordLog:
    return InMemoryRecordLog("tasks", start_id=10_000)


@pytest.fixture
def rewards_log() -> InMemoryRecordLog:
    return InMemoryRecordLog("rewards", start_id=20_000)


@pytest.fixture
def users_log() -> InMemoryRecordLog:
    return InMemoryRecordLog("users", start_id=30_000)


@pytest.fixture
def messenger() -> FakeMessenger:
    return FakeMessenger()


@pytest.fixture
def make_service(tasks_log, rewards_log, users_log, messenger):
    """Factory for a PointsService over the shared fakes."""

    def _make(**kwargs) -> PointsService:
        return PointsService(
            tasks_log=tasks_log,
            rewards_log=rewards_log,
            users_log=users_log,
            messenger=messenger,
            **kwargs,
        )

    return _make


@pytest.fixture
def service(make_service) -> PointsService:
    return make_service()
