"""
uwumeter.bot.__main__ — Entry point for ``python -m uwumeter.bot``
==================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings).
3. Build the storage backend (and the SQLAlchemy engine if needed).
4. Load the saved scoreboard into a ScoreService.
5. Create the UwuBot and hand it config + service.
6. Start the bot (blocking — runs the asyncio event loop).

Run with::

    python -m uwumeter.bot
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from uwumeter.bot.core import UwuBot
from uwumeter.config import load_config
from uwumeter.database.engine import create_db_engine, init_db
from uwumeter.services.persistence import PersistenceError, create_persistence
from uwumeter.services.score_service import ScoreService

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("uwumeter")


def main() -> None:
    """Bootstrap and run the UwU Meter bot."""

    # 1. Environment variables (secrets).
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    # 2. Soft configuration.
    cfg = load_config(os.getenv("UWUMETER_CONFIG", "config.yaml"))
    logger.info(
        "Config loaded — keyword: %r, storage: %s", cfg.keyword, cfg.storage_backend
    )

    # 3. Storage.
    engine = None
    if cfg.storage_backend == "database":
        engine = create_db_engine()
        init_db(engine)
    persistence = create_persistence(cfg, engine)

    # 4. Scoreboard.  Refuse to start on unreadable data rather than
    #    overwrite it with an empty board on the first save.
    try:
        service = ScoreService.from_persistence(persistence, cfg.keyword)
    except PersistenceError:
        logger.critical("Could not load the saved scoreboard", exc_info=True)
        sys.exit(1)

    # 5. Bot.
    bot = UwuBot(cfg=cfg, service=service)

    # 6. Run (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting UwU Meter bot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
