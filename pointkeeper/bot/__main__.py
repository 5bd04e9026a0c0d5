"""
pointkeeper.bot.__main__ — Entry point for ``python -m pointkeeper.bot``
========================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (channels, admin role, policies).
3. Create the PointKeeperBot; it builds the ledger core.
4. Start the bot (blocking — runs the asyncio event loop).  The ledger is
   replayed from the record channels in ``on_ready``.

Run with::

    python -m pointkeeper.bot
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from pointkeeper.bot.core import PointKeeperBot
from pointkeeper.config import load_config
from pointkeeper.engine.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("pointkeeper")


def main() -> None:
    """Bootstrap and run the PointKeeper bot."""

    # 1. Environment variables (secrets).
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    # 2. Configuration.
    try:
        cfg = load_config(os.getenv("POINTKEEPER_CONFIG", "config.yaml"))
    except (FileNotFoundError, ConfigurationError) as exc:
        logger.critical("Invalid configuration: %s", exc)
        sys.exit(1)
    logger.info("Config loaded — Community: %s", cfg.community_name)

    # 3. Bot.
    bot = PointKeeperBot(cfg=cfg)

    # 4. Run (blocks until Ctrl+C, SIGTERM, or a failed bootstrap).
    logger.info("Starting PointKeeper bot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")

    if bot.bootstrap_failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
