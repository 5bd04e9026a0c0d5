"""
pointkeeper.services.gate — Transaction / Reload Gate
======================================================

Transactions run concurrently with each other but never overlap a replay.
A reload swaps whole stores; if it landed while a transaction was between
committing in memory and writing its durable record, the committed balance
would vanish and the record would be orphaned.

Usage::

    gate = TransactionGate()

    async with gate.shared():      # earn / spend
        ...
    async with gate.exclusive():   # bootstrap / reload
        ...

A waiting reload blocks new transactions from entering, so a steady stream
of reactions cannot postpone it indefinitely.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

__all__ = ["TransactionGate"]


class TransactionGate:
    """Shared/exclusive gate for asyncio tasks."""

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._active = 0
        self._exclusive = False
        self._waiting_exclusive = 0

    @asynccontextmanager
    async def shared(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._exclusive and not self._waiting_exclusive
            )
            self._active += 1
        try:
            yield
        finally:
            async with self._cond:
                self._active -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        async with self._cond:
            self._waiting_exclusive += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._exclusive and self._active == 0
                )
            finally:
                self._waiting_exclusive -= 1
                self._cond.notify_all()
            self._exclusive = True
        try:
            yield
        finally:
            async with self._cond:
                self._exclusive = False
                self._cond.notify_all()
