"""
pointkeeper.services.record_log — Channel-as-Table Repository
==============================================================

**Why this file exists:**
PointKeeper stores everything in Discord channels: each message is a row,
its id is the primary key, and editing the message updates the row.  The
ledger core only needs three operations on such a "table", so they are
captured as the :class:`RecordLog` protocol.  :class:`ChannelRecordLog`
implements it on a text channel; tests swap in an in-memory fake.

All ``discord`` exceptions are converted to :class:`RecordLogError` here so
services never depend on gateway error types.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import discord

from pointkeeper.engine.errors import RecordLogError

if TYPE_CHECKING:
    from discord.ext import commands

logger = logging.getLogger(__name__)

__all__ = ["ChannelRecordLog", "Record", "RecordLog"]


@dataclass(frozen=True, slots=True)
class Record:
    """One row of a record log."""

    id: int
    content: str


class RecordLog(Protocol):
    """Append/edit-style durable log."""

    name: str

    async def create(self, content: str) -> int:
        """Append a record and return its id."""
        ...

    async def update(self, record_id: int, content: str) -> None:
        """Replace the content of an existing record."""
        ...

    def list(self) -> AsyncIterator[Record]:
        """Iterate every record, oldest first.  Restartable per call."""
        ...


class ChannelRecordLog:
    """A :class:`RecordLog` backed by one Discord text channel.

    Parameters
    ----------
    bot:
        The connected bot (used for channel lookup).
    channel_id:
        Snowflake of the channel holding the records.
    name:
        Short label for logs and errors (``"tasks"``, ``"users"``, …).
    """

    def __init__(self, bot: commands.Bot, channel_id: int, name: str) -> None:
        self._bot = bot
        self.channel_id = channel_id
        self.name = name

    async def _channel(self) -> discord.TextChannel:
        channel = self._bot.get_channel(self.channel_id)
        if channel is None:
            try:
                channel = await self._bot.fetch_channel(self.channel_id)
            except (discord.HTTPException, discord.InvalidData) as exc:
                raise RecordLogError(
                    f"Cannot resolve {self.name} channel {self.channel_id}: {exc}"
                ) from exc
        if not isinstance(channel, (discord.TextChannel, discord.Thread)):
            raise RecordLogError(
                f"{self.name} channel {self.channel_id} is not a text channel"
            )
        return channel

    async def create(self, content: str) -> int:
        channel = await self._channel()
        try:
            message = await channel.send(content)
        except discord.HTTPException as exc:
            raise RecordLogError(
                f"Failed to append to {self.name} channel: {exc}"
            ) from exc
        logger.debug("Created record %d in %s: %s", message.id, self.name, content)
        return message.id

    async def update(self, record_id: int, content: str) -> None:
        channel = await self._channel()
        try:
            await channel.get_partial_message(record_id).edit(content=content)
        except discord.HTTPException as exc:
            raise RecordLogError(
                f"Failed to edit record {record_id} in {self.name} channel: {exc}"
            ) from exc
        logger.debug("Updated record %d in %s: %s", record_id, self.name, content)

    async def list(self) -> AsyncIterator[Record]:
        channel = await self._channel()
        try:
            async for message in channel.history(limit=None, oldest_first=True):
                yield Record(id=message.id, content=message.content)
        except discord.HTTPException as exc:
            raise RecordLogError(
                f"Failed to read history of {self.name} channel: {exc}"
            ) from exc
