"""
pointkeeper.services.messaging — Direct Messages & Reaction Withdrawal
=======================================================================

Outbound side effects that are allowed to fail: DMing a member and
removing the reaction that triggered a transaction.  Both convert
``discord`` errors into :class:`DeliveryFailure`; callers log it and move on.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import discord

from pointkeeper.engine.errors import DeliveryFailure

if TYPE_CHECKING:
    from discord.ext import commands

logger = logging.getLogger(__name__)

__all__ = ["DirectMessenger", "Messenger", "PayloadReaction", "ReactionHandle"]


class Messenger(Protocol):
    async def send_private(self, user_id: int, text: str) -> None:
        """Deliver *text* to *user_id* privately.  Raises DeliveryFailure."""
        ...


class ReactionHandle(Protocol):
    async def withdraw(self) -> None:
        """Remove the reaction.  Raises DeliveryFailure."""
        ...


class DirectMessenger:
    """:class:`Messenger` that opens (or reuses) a DM channel per member."""

    def __init__(self, bot: commands.Bot) -> None:
        self._bot = bot

    async def send_private(self, user_id: int, text: str) -> None:
        try:
            user = self._bot.get_user(user_id) or await self._bot.fetch_user(user_id)
            await user.send(text)
        except discord.HTTPException as exc:
            raise DeliveryFailure(f"Cannot DM user {user_id}: {exc}") from exc


class PayloadReaction:
    """:class:`ReactionHandle` for a raw reaction-add payload.

    Works on uncached messages by going through a partial message.
    The bot needs the *Manage Messages* permission in the channel.
    """

    def __init__(self, bot: commands.Bot, payload: discord.RawReactionActionEvent) -> None:
        self._bot = bot
        self.channel_id = payload.channel_id
        self.message_id = payload.message_id
        self.user_id = payload.user_id
        self.emoji = payload.emoji

    async def withdraw(self) -> None:
        channel = self._bot.get_partial_messageable(self.channel_id)
        message = channel.get_partial_message(self.message_id)
        try:
            await message.remove_reaction(self.emoji, discord.Object(id=self.user_id))
        except discord.HTTPException as exc:
            raise DeliveryFailure(
                f"Cannot remove reaction by user {self.user_id} "
                f"on message {self.message_id}: {exc}"
            ) from exc
