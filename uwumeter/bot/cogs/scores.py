"""
uwumeter.bot.cogs.scores — Scoreboard Slash Commands
=====================================================

- /uwumeeter — Total number of counted messages
- /uwulead   — Top members
- /uwume     — Your own count
- /uwuexport — The whole scoreboard as JSON
- /uwureset  — Replace the scoreboard from JSON (admins only)

Replies are built by :func:`uwumeter.services.commands.dispatch` and sent
with every mention suppressed, so echoing ``<@id>`` never pings anyone.
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from uwumeter.constants import RESET_OPTION, CommandName
from uwumeter.database.engine import run_blocking
from uwumeter.engine.events import CommandInvocation
from uwumeter.services.commands import dispatch

if TYPE_CHECKING:
    from uwumeter.bot.core import UwuBot

logger = logging.getLogger(__name__)

# Discord rejects message content longer than this.
MAX_MESSAGE_LENGTH = 2000


def member_is_admin(user: discord.abc.User, admin_role_id: int | None) -> bool:
    """True for guild members with Administrator or the configured role.

    Plain users (DMs) are never admins.
    """
    perms = getattr(user, "guild_permissions", None)
    if perms is not None and perms.administrator:
        return True
    if admin_role_id is None:
        return False
    return any(role.id == admin_role_id for role in getattr(user, "roles", []))


class Scores(commands.Cog, name="Scores"):
    """Query, export, and reset the scoreboard."""

    def __init__(self, bot: UwuBot) -> None:
        self.bot = bot

    # -------------------------------------------------------------------
    # Shared plumbing
    # -------------------------------------------------------------------
    async def _run(
        self,
        interaction: discord.Interaction,
        name: CommandName,
        options: dict[str, object] | None = None,
    ) -> None:
        invocation = CommandInvocation(
            name=name,
            user_id=interaction.user.id,
            options=options or {},
            is_admin=member_is_admin(interaction.user, self.bot.cfg.admin_role_id),
        )
        reply = await run_blocking(
            dispatch,
            self.bot.service,
            invocation,
            leaderboard_size=self.bot.cfg.leaderboard_size,
        )
        await self._send(interaction, reply, filename=f"{name}.txt")

    async def _send(
        self, interaction: discord.Interaction, text: str, *, filename: str
    ) -> None:
        """Send *text*, as an attachment if it is too long for a message.

        Delivery failures are logged and not retried.
        """
        try:
            if len(text) <= MAX_MESSAGE_LENGTH:
                await interaction.response.send_message(
                    text, allowed_mentions=discord.AllowedMentions.none()
                )
            else:
                await interaction.response.send_message(
                    file=discord.File(io.BytesIO(text.encode("utf-8")), filename=filename),
                    allowed_mentions=discord.AllowedMentions.none(),
                )
        except discord.HTTPException:
            logger.exception(
                "Cannot respond to /%s for user %s",
                interaction.command.name if interaction.command else "?",
                interaction.user.id,
            )

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    @app_commands.command(name=CommandName.METER.value, description="Display the total of UwU")
    async def meter(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, CommandName.METER)

    @app_commands.command(
        name=CommandName.LEADERBOARD.value, description="Display the UwU leaderboard"
    )
    async def leaderboard(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, CommandName.LEADERBOARD)

    @app_commands.command(name=CommandName.MY_SCORE.value, description="Display your UwU count")
    async def my_score(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, CommandName.MY_SCORE)

    @app_commands.command(
        name=CommandName.EXPORT.value, description="Export the leaderboard to the chat."
    )
    async def export(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, CommandName.EXPORT)

    @app_commands.command(
        name=CommandName.RESET.value,
        description="Reset the current ladder with the given leaderboard (JSON)",
    )
    @app_commands.describe(
        newleaderboard='A JSON object. Must be in this structure: {"1234":4, "5678":2}',
    )
    async def reset(self, interaction: discord.Interaction, newleaderboard: str) -> None:
        await self._run(interaction, CommandName.RESET, {RESET_OPTION: newleaderboard})

    # -------------------------------------------------------------------
    # Error handler
    # -------------------------------------------------------------------
    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        logger.error(
            "Slash command failed for user %s: %s",
            interaction.user.id,
            error,
            exc_info=error,
        )
        if not interaction.response.is_done():
            await self._send(
                interaction,
                "Something went wrong while running this command.",
                filename="error.txt",
            )


async def setup(bot: UwuBot) -> None:
    await bot.add_cog(Scores(bot))
