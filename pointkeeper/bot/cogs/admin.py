"""
pointkeeper.bot.cogs.admin — Admin Commands
============================================

- !reload — replay all three record channels into memory

Requires the configured admin_role_id.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands

from pointkeeper.engine.errors import LedgerError

if TYPE_CHECKING:
    from pointkeeper.bot.core import PointKeeperBot

logger = logging.getLogger(__name__)


def is_admin():
    """Check that the invoking member has the configured admin role."""
    async def predicate(ctx: commands.Context) -> bool:
        bot: PointKeeperBot = ctx.bot  # type: ignore[assignment]
        roles = getattr(ctx.author, "roles", None)
        if not roles:
            return False
        return any(role.id == bot.cfg.admin_role_id for role in roles)
    return commands.check(predicate)


class Admin(commands.Cog, name="Admin"):
    """Operator commands for the ledger."""

    def __init__(self, bot: PointKeeperBot) -> None:
        self.bot = bot

    @commands.command(name="reload")
    @commands.guild_only()
    @is_admin()
    async def reload(self, ctx: commands.Context) -> None:
        """Re-read tasks, rewards, and balances from their channels."""
        await self.bot.wait_until_ledger_ready()
        try:
            report = await self.bot.points.reload()
        except LedgerError as exc:
            logger.error("Reload requested by %s failed", ctx.author.id, exc_info=True)
            await ctx.send(f"❌ Reload failed, previous state kept: {exc}")
            return

        await ctx.send(
            f"✅ Reloaded {report.tasks} tasks, {report.rewards} rewards, "
            f"{report.accounts} accounts."
        )


async def setup(bot: PointKeeperBot) -> None:
    await bot.add_cog(Admin(bot))
