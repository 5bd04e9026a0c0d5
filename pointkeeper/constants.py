"""
pointkeeper.constants — Shared Constants & Message Templates
=============================================================

Single source of truth for the record format, value bounds, and the text
members see.  Import from here instead of duplicating in cogs and services.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Record format & bounds
# ---------------------------------------------------------------------------
RECORD_SEPARATOR = " - "

# Balances and catalog values are unsigned 64-bit quantities.
MAX_POINTS = 2**64 - 1

# ---------------------------------------------------------------------------
# Policies (config.yaml values)
# ---------------------------------------------------------------------------
REWARD_REACTION_KEEP = "keep"
REWARD_REACTION_REMOVE = "remove"
REWARD_REACTION_POLICIES: frozenset[str] = frozenset({
    REWARD_REACTION_KEEP,
    REWARD_REACTION_REMOVE,
})

BALANCE_REPLY_PRIVATE = "private"
BALANCE_REPLY_PUBLIC = "public"
BALANCE_REPLY_POLICIES: frozenset[str] = frozenset({
    BALANCE_REPLY_PRIVATE,
    BALANCE_REPLY_PUBLIC,
})

# ---------------------------------------------------------------------------
# Member-facing text
# ---------------------------------------------------------------------------
HELP_TEMPLATE = "{prefix}balance to check your current {currency} balance"

BALANCE_TEMPLATE = "You have {balance} {currency}"

EARN_TEMPLATE = "Task complete! You now have a total of {balance} {currency}"

SPEND_KEEP_TEMPLATE = (
    "Reward purchased! Remove your reaction once you have used this reward. "
    "Your balance is now {balance} {currency}"
)

SPEND_REMOVE_TEMPLATE = "Reward purchased! Your balance is now {balance} {currency}"

INSUFFICIENT_TEMPLATE = (
    "Insufficient points to purchase this reward "
    "(it costs {cost} {currency}, you have {balance} {currency})"
)

INVALID_REWARD_TEXT = "That post is not a registered reward, so nothing was purchased."

MALFORMED_CATALOG_TEMPLATE = (
    "Your post in #{channel} was not registered as a {kind}: {reason}.\n"
    "Posts there must be a single line like `Water the plants - 5`. "
    "Please edit or delete it; the bot will refuse to start while it is there."
)

RECORD_CHANNEL_COMMAND_TEMPLATE = (
    "Commands are not answered in #{channel}: that channel stores the ledger, "
    "and any message there that is not a record stops the bot from starting.\n"
    "Please delete your message and use `{prefix}{command}` here or in another channel."
)
