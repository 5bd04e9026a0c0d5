"""
pointkeeper.bot.cogs.meta — Member Commands
============================================

- !balance — current points, by DM or in the channel (``balance_reply``)
- !help    — usage text
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from discord.ext import commands

from pointkeeper.constants import BALANCE_REPLY_PUBLIC, BALANCE_TEMPLATE, HELP_TEMPLATE

if TYPE_CHECKING:
    from pointkeeper.bot.core import PointKeeperBot


class Meta(commands.Cog, name="Meta"):
    """Balance lookup and help."""

    def __init__(self, bot: PointKeeperBot) -> None:
        self.bot = bot

    @commands.command(name="balance")
    async def balance(self, ctx: commands.Context) -> None:
        """Tell the member how many points they have."""
        await self.bot.wait_until_ledger_ready()
        points = self.bot.points.check_balance(ctx.author.id)
        text = BALANCE_TEMPLATE.format(balance=points, currency=self.bot.cfg.currency_name)

        if self.bot.cfg.balance_reply == BALANCE_REPLY_PUBLIC:
            await ctx.reply(text)
        else:
            await self.bot.points.reconciler.notify(ctx.author.id, text)

    @commands.command(name="help")
    async def help_command(self, ctx: commands.Context) -> None:
        await ctx.send(HELP_TEMPLATE.format(
            prefix=self.bot.cfg.bot_prefix,
            currency=self.bot.cfg.currency_name,
        ))


async def setup(bot: PointKeeperBot) -> None:
    await bot.add_cog(Meta(bot))
