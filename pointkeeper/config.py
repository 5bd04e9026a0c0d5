"""
pointkeeper.config — YAML Configuration Loader
===============================================

**Why this file exists:**
This module reads ``config.yaml`` for everything that is not a secret:
which channels hold the catalogs and the ledger, who may run admin
commands, and the two member-facing policies.  The bot token lives in
``.env`` and is read by :mod:`pointkeeper.bot.__main__`.

Usage::

    from pointkeeper.config import load_config

    cfg = load_config()            # reads ./config.yaml by default
    print(cfg.users_channel_id)    # 1468816181854081229
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from pointkeeper.constants import (
    BALANCE_REPLY_POLICIES,
    BALANCE_REPLY_PRIVATE,
    REWARD_REACTION_KEEP,
    REWARD_REACTION_POLICIES,
)
from pointkeeper.engine.errors import ConfigurationError


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PointKeeperConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # Discord
    bot_prefix: str
    admin_role_id: int  # Role required for !reload

    # Record channels (each one is a durable log)
    tasks_channel_id: int
    rewards_channel_id: int
    users_channel_id: int

    # Presentation & policy
    currency_name: str = "AP"
    reward_reaction_policy: str = REWARD_REACTION_KEEP  # keep | remove
    balance_reply: str = BALANCE_REPLY_PRIVATE  # private | public

    # Optional startup notice DMed to operators once the ledger is loaded
    operator_ids: tuple[int, ...] = field(default_factory=tuple)
    startup_notice: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _require(raw: dict, key: str) -> object:
    value = raw.get(key)
    if value is None or value == "":
        raise ConfigurationError(f"Missing required config key: {key}")
    return value


def _snowflake(raw: dict, key: str) -> int:
    value = _require(raw, key)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a numeric Discord id, got {value!r}") from None
    if parsed <= 0:
        raise ConfigurationError(f"{key} must be a positive Discord id, got {parsed}")
    return parsed


def _choice(raw: dict, key: str, allowed: frozenset[str], default: str) -> str:
    value = str(raw.get(key) or default).lower()
    if value not in allowed:
        raise ConfigurationError(
            f"{key} must be one of {sorted(allowed)}, got {value!r}"
        )
    return value


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> PointKeeperConfig:
    """Read *path* and return a :class:`PointKeeperConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ConfigurationError
        If a required key is missing or a value is malformed.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{config_path} must contain a YAML mapping")

    channels = {
        key: _snowflake(raw, key)
        for key in ("tasks_channel_id", "rewards_channel_id", "users_channel_id")
    }
    if len(set(channels.values())) != len(channels):
        raise ConfigurationError(
            "tasks_channel_id, rewards_channel_id and users_channel_id must differ"
        )

    operators = raw.get("operator_ids") or []
    if not isinstance(operators, list):
        raise ConfigurationError("operator_ids must be a list of Discord ids")
    try:
        operator_ids = tuple(int(op) for op in operators)
    except (TypeError, ValueError):
        raise ConfigurationError(f"operator_ids must be numeric, got {operators!r}") from None

    return PointKeeperConfig(
        community_name=str(_require(raw, "community_name")),
        bot_prefix=str(raw.get("bot_prefix") or "!"),
        admin_role_id=_snowflake(raw, "admin_role_id"),
        currency_name=str(raw.get("currency_name") or "AP"),
        reward_reaction_policy=_choice(
            raw, "reward_reaction_policy", REWARD_REACTION_POLICIES, REWARD_REACTION_KEEP,
        ),
        balance_reply=_choice(
            raw, "balance_reply", BALANCE_REPLY_POLICIES, BALANCE_REPLY_PRIVATE,
        ),
        operator_ids=operator_ids,
        startup_notice=raw.get("startup_notice") or None,
        **channels,
    )
