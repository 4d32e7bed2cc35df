"""
uwumeter.bot.core — Bot Instance & Cog Loader
==============================================

Defines :class:`UwuBot`, a ``commands.Bot`` subclass that:

1. Stores the shared config (``bot.cfg``) and score service
   (``bot.service``) so every Cog can reach them via ``self.bot``.
2. Loads the cogs in ``uwumeter/bot/cogs/``.
3. Syncs the slash-command tree on startup (guild-scoped for dev, global
   for production — controlled by the ``DEV_GUILD_ID`` env var).
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands

from uwumeter.config import UwuConfig
from uwumeter.services.score_service import ScoreService

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "uwumeter.bot.cogs.counter",
    "uwumeter.bot.cogs.scores",
]


class UwuBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`UwuConfig` from ``config.yaml``.
    service:
        The :class:`ScoreService` wrapping the live scoreboard.
    """

    def __init__(self, cfg: UwuConfig, service: ScoreService) -> None:
        # GUILD_MESSAGES is in default(); MESSAGE_CONTENT is privileged and
        # must be enabled in the Developer Portal for keyword matching.
        intents = discord.Intents.default()
        intents.message_content = True
        intents.presences = False

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description=f"Counts every '{cfg.keyword}' said on the server.",
            allowed_mentions=discord.AllowedMentions.none(),
        )

        self.cfg = cfg
        self.service = service

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load all Cog extensions; one broken Cog is logged, not fatal."""
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        dev_guild_id = os.getenv("DEV_GUILD_ID")
        if dev_guild_id:
            guild = discord.Object(id=int(dev_guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("Synced %d commands globally", len(synced))

        logger.info(
            "Scoreboard ready: total=%d, users=%d",
            self.service.store.total,
            len(self.service.store),
        )
