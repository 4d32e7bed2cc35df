"""
uwumeter.bot.cogs.counter — Keyword Counter
============================================

Listens for on_message events, normalizes them into MessageEvents, and
hands them to the score service.

Pipeline:
1. on_message fires → gate checks (bot author, DM)
2. Build a MessageEvent with author and content
3. ScoreService.record_message (runs on a worker thread via run_blocking):
   keyword match → increment → save
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from uwumeter.database.engine import run_blocking
from uwumeter.engine.events import MessageEvent

if TYPE_CHECKING:
    from uwumeter.bot.core import UwuBot

logger = logging.getLogger(__name__)


def build_message_event(message: discord.Message) -> MessageEvent:
    """Build a MessageEvent from a Discord message."""
    return MessageEvent(
        author_id=message.author.id,
        author_is_bot=message.author.bot,
        content=message.content,
        message_id=message.id,
    )


class Counter(commands.Cog, name="Counter"):
    """Adds one to the author's score for every message with the keyword."""

    def __init__(self, bot: UwuBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        try:
            await self._handle_message(message)
        except Exception:
            logger.exception(
                "Error processing message %s from user %s",
                message.id,
                message.author.id,
            )

    async def _handle_message(self, message: discord.Message) -> None:
        """Inner message handler (separated for error isolation)."""

        # Gate 1: Ignore bots
        if message.author.bot:
            return

        # Gate 2: Ignore DMs
        if message.guild is None:
            return

        event = build_message_event(message)
        if not self.bot.service.qualifies(event):
            return

        result = await run_blocking(self.bot.service.record_message, event)
        if result.counted:
            logger.info(
                "Counted '%s' from %s (%d, total %d)",
                self.bot.service.keyword,
                message.author.display_name,
                result.user_count,
                result.total,
            )
        if not result.saved:
            logger.warning("Message %s counted but not persisted", message.id)


async def setup(bot: UwuBot) -> None:
    await bot.add_cog(Counter(bot))
