"""
pointkeeper.bot.cogs.reactions — Earn & Spend from Reactions
=============================================================

Listens for on_raw_reaction_add and routes:
- reactions in the tasks channel   → PointsService.earn
- reactions in the rewards channel → PointsService.spend

Uses raw events so reactions on uncached (old) catalog posts still count.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from pointkeeper.services.messaging import PayloadReaction

if TYPE_CHECKING:
    from pointkeeper.bot.core import PointKeeperBot

logger = logging.getLogger(__name__)


class Reactions(commands.Cog, name="Reactions"):
    """Turns reactions on catalog posts into ledger transactions."""

    def __init__(self, bot: PointKeeperBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        """Fire when any reaction is added, even on uncached messages."""
        try:
            await self._handle_reaction(payload)
        except Exception:
            logger.exception(
                "Error processing reaction on message %s from user %s",
                payload.message_id, payload.user_id,
            )

    async def _handle_reaction(self, payload: discord.RawReactionActionEvent) -> None:
        """Inner reaction handler (separated for error isolation)."""
        cfg = self.bot.cfg

        # Gate: only the two catalog channels
        if payload.channel_id not in (cfg.tasks_channel_id, cfg.rewards_channel_id):
            return

        # Gate: ignore our own reactions and other bots
        if self.bot.user is not None and payload.user_id == self.bot.user.id:
            return
        if payload.member is not None and payload.member.bot:
            return

        await self.bot.wait_until_ledger_ready()

        reaction = PayloadReaction(self.bot, payload)
        if payload.channel_id == cfg.tasks_channel_id:
            await self.bot.points.earn(payload.message_id, payload.user_id, reaction)
        else:
            await self.bot.points.spend(payload.message_id, payload.user_id, reaction)


async def setup(bot: PointKeeperBot) -> None:
    await bot.add_cog(Reactions(bot))
