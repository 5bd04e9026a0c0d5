"""
pointkeeper.bot.cogs.catalog — Live Catalog Registration
=========================================================

A new post in the tasks or rewards channel registers itself, keyed by its
message id, exactly as the bootstrap replay would read it.  A post that
does not parse is not registered, and its author is warned by DM: the
same post would make the next startup fail.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from pointkeeper.constants import MALFORMED_CATALOG_TEMPLATE
from pointkeeper.engine.catalog import CatalogKind
from pointkeeper.engine.errors import MalformedRecord
from pointkeeper.engine.records import parse_catalog_record

if TYPE_CHECKING:
    from pointkeeper.bot.core import PointKeeperBot

logger = logging.getLogger(__name__)


class CatalogPosts(commands.Cog, name="Catalog"):
    """Registers tasks and rewards as they are posted."""

    def __init__(self, bot: PointKeeperBot) -> None:
        self.bot = bot

    def _kind_for(self, channel_id: int) -> CatalogKind | None:
        if channel_id == self.bot.cfg.tasks_channel_id:
            return CatalogKind.TASKS
        if channel_id == self.bot.cfg.rewards_channel_id:
            return CatalogKind.REWARDS
        return None

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        kind = self._kind_for(message.channel.id)
        if kind is None or message.author.bot:
            return
        try:
            await self._register(message, kind)
        except Exception:
            logger.exception("Error registering catalog post %s", message.id)

    async def _register(self, message: discord.Message, kind: CatalogKind) -> None:
        await self.bot.wait_until_ledger_ready()

        try:
            _label, value = parse_catalog_record(message.content)
        except MalformedRecord as exc:
            logger.warning(
                "Unparseable %s post %d by user %d: %s",
                kind.value, message.id, message.author.id, exc,
            )
            await self.bot.points.reconciler.notify(
                message.author.id,
                MALFORMED_CATALOG_TEMPLATE.format(
                    channel=getattr(message.channel, "name", "catalog"),
                    kind=kind.value,
                    reason=exc.reason,
                ),
            )
            return

        if kind is CatalogKind.TASKS:
            self.bot.points.register_task(message.id, value)
        else:
            self.bot.points.register_reward(message.id, value)


async def setup(bot: PointKeeperBot) -> None:
    await bot.add_cog(CatalogPosts(bot))
