"""
pointkeeper.bot.core — Bot Instance & Cog Loader
=================================================

Defines :class:`PointKeeperBot`, a ``commands.Bot`` subclass that:

1. Builds the ledger core (:class:`PointsService`) on top of the three
   record channels named in ``config.yaml``.
2. Loads every cog in :data:`EXTENSIONS`.
3. Replays the record channels once the gateway is ready, and only then
   opens the barrier that every listener waits on.  If the replay fails,
   the bot logs the corrupt record and shuts down instead of running on a
   partial ledger.
"""

from __future__ import annotations

import asyncio
import logging

import discord
from discord.ext import commands

from pointkeeper.config import PointKeeperConfig
from pointkeeper.constants import RECORD_CHANNEL_COMMAND_TEMPLATE
from pointkeeper.engine.errors import LedgerError
from pointkeeper.services.messaging import DirectMessenger
from pointkeeper.services.points_service import PointsService
from pointkeeper.services.record_log import ChannelRecordLog

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "pointkeeper.bot.cogs.reactions",
    "pointkeeper.bot.cogs.catalog",
    "pointkeeper.bot.cogs.meta",
    "pointkeeper.bot.cogs.admin",
]


class RecordChannelCommand(commands.CheckFailure):
    """A command was invoked in one of the record channels."""

    def __init__(self, channel_id: int) -> None:
        super().__init__(f"Commands are not allowed in record channel {channel_id}")
        self.channel_id = channel_id


class PointKeeperBot(commands.Bot):
    """Custom Bot subclass that carries the ledger.

    Parameters
    ----------
    cfg:
        The parsed :class:`PointKeeperConfig` from ``config.yaml``.
    """

    def __init__(self, cfg: PointKeeperConfig) -> None:
        # Default intents cover guild messages, guild reactions, and DMs.
        # MESSAGE_CONTENT is privileged: needed for catalog posts and commands.
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = False
        intents.presences = False

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description=f"{cfg.community_name} points ledger",
            help_command=None,
        )

        self.cfg = cfg
        self.messenger = DirectMessenger(self)
        self.points = PointsService(
            tasks_log=ChannelRecordLog(self, cfg.tasks_channel_id, "tasks"),
            rewards_log=ChannelRecordLog(self, cfg.rewards_channel_id, "rewards"),
            users_log=ChannelRecordLog(self, cfg.users_channel_id, "users"),
            messenger=self.messenger,
            currency=cfg.currency_name,
            reward_reaction_policy=cfg.reward_reaction_policy,
        )

        self._ledger_ready = asyncio.Event()
        self._bootstrapping = False
        self.bootstrap_failed = False

        self.add_check(self._outside_record_channels)

    @property
    def record_channel_ids(self) -> frozenset[int]:
        return frozenset({
            self.cfg.tasks_channel_id,
            self.cfg.rewards_channel_id,
            self.cfg.users_channel_id,
        })

    async def _outside_record_channels(self, ctx: commands.Context) -> bool:
        """Global check: never run (or answer) a command in a record channel.

        Every message in those channels is replayed as a record on startup,
        so a reply posted there would stop the next bootstrap.
        """
        if ctx.channel.id in self.record_channel_ids:
            raise RecordChannelCommand(ctx.channel.id)
        return True

    async def wait_until_ledger_ready(self) -> None:
        """Block until the record channels have been replayed."""
        await self._ledger_ready.wait()

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load all cog extensions before connecting."""
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        """Replay the ledger the first time the gateway is ready."""
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        # on_ready fires again after reconnects; the ledger is already live.
        if self._ledger_ready.is_set() or self._bootstrapping:
            return

        self._bootstrapping = True
        try:
            await self.points.bootstrap()
        except LedgerError:
            logger.critical(
                "Bootstrap failed — fix the record above and restart. Shutting down.",
                exc_info=True,
            )
            self.bootstrap_failed = True
            await self.close()
            return
        finally:
            self._bootstrapping = False

        self._ledger_ready.set()
        logger.info("Ledger ready; reaction handling enabled.")

        await self._send_startup_notice()

    async def on_command_error(
        self, ctx: commands.Context, error: commands.CommandError
    ) -> None:
        if isinstance(error, commands.CommandNotFound):
            logger.info("Invalid command from %s: %s", ctx.author.id, ctx.message.content)
            return
        if isinstance(error, RecordChannelCommand):
            logger.info(
                "Refused %s from %s in record channel %d",
                ctx.command, ctx.author.id, error.channel_id,
            )
            await self.points.reconciler.notify(
                ctx.author.id,
                RECORD_CHANNEL_COMMAND_TEMPLATE.format(
                    channel=getattr(ctx.channel, "name", "records"),
                    prefix=self.cfg.bot_prefix,
                    command=ctx.invoked_with,
                ),
            )
            return
        if isinstance(error, commands.CheckFailure):
            await ctx.send("You are not allowed to use that command here.")
            return
        logger.error("Command %s failed", ctx.command, exc_info=error)

    # -----------------------------------------------------------------------
    # Startup notice
    # -----------------------------------------------------------------------
    async def _send_startup_notice(self) -> None:
        """DM the configured operators that the bot is up."""
        notice = self.cfg.startup_notice
        if not notice or not self.cfg.operator_ids:
            return
        for operator_id in self.cfg.operator_ids:
            await self.points.reconciler.notify(operator_id, notice)
        logger.info("Startup notice sent to %d operator(s)", len(self.cfg.operator_ids))
