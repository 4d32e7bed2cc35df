"""
tests/test_cogs.py — Discord Cog Tests
=======================================

Drives the Counter and Scores cogs with lightweight mock Discord objects;
no gateway connection required.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord

from uwumeter.bot.cogs.counter import Counter, build_message_event
from uwumeter.bot.cogs.scores import MAX_MESSAGE_LENGTH, Scores, member_is_admin
from uwumeter.config import UwuConfig
from uwumeter.constants import RESET_FORBIDDEN, CommandName

ADMIN_ROLE = 555


def run_async(coro):
    """Run an async coroutine to completion in a fresh event loop."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _make_bot(service, **cfg) -> MagicMock:
    bot = MagicMock()
    bot.service = service
    bot.cfg = UwuConfig(admin_role_id=ADMIN_ROLE, **cfg)
    return bot


def _make_message(
    content: str, *, author_id: int = 42, bot: bool = False, guild: bool = True
) -> MagicMock:
    message = MagicMock(spec=discord.Message)
    message.id = 9000
    message.content = content
    message.author = SimpleNamespace(id=author_id, bot=bot, display_name="tester")
    message.guild = MagicMock() if guild else None
    return message


def _make_user(
    user_id: int = 42, *, administrator: bool = False, role_ids: tuple[int, ...] = ()
) -> SimpleNamespace:
    return SimpleNamespace(
        id=user_id,
        guild_permissions=SimpleNamespace(administrator=administrator),
        roles=[SimpleNamespace(id=r) for r in role_ids],
    )


def _make_interaction(user) -> MagicMock:
    interaction = MagicMock()
    interaction.user = user
    interaction.command = SimpleNamespace(name="test")
    interaction.response.send_message = AsyncMock()
    interaction.response.is_done = MagicMock(return_value=False)
    return interaction


# ---------------------------------------------------------------------------
# Counter
# ---------------------------------------------------------------------------
class TestCounterCog:
    def test_keyword_message_counted(self, service):
        cog = Counter(_make_bot(service))
        run_async(cog.on_message(_make_message("hey UwU")))
        assert service.get(42) == 1
        assert service.snapshot().total == 1

    def test_bot_message_ignored(self, service):
        cog = Counter(_make_bot(service))
        run_async(cog.on_message(_make_message("uwu", bot=True)))
        assert service.snapshot().total == 0

    def test_dm_ignored(self, service):
        cog = Counter(_make_bot(service))
        run_async(cog.on_message(_make_message("uwu", guild=False)))
        assert service.snapshot().total == 0

    def test_plain_message_ignored(self, service):
        cog = Counter(_make_bot(service))
        run_async(cog.on_message(_make_message("hello there")))
        assert service.snapshot().total == 0

    def test_errors_are_contained(self, service):
        bot = _make_bot(service)
        bot.service = MagicMock()
        bot.service.qualifies.side_effect = RuntimeError("boom")
        # Must not raise out of the listener.
        run_async(Counter(bot).on_message(_make_message("uwu")))

    def test_build_message_event(self):
        event = build_message_event(_make_message("UwU", author_id=7))
        assert event.author_id == 7
        assert event.author_is_bot is False
        assert event.content == "UwU"
        assert event.message_id == 9000


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------
class TestMemberIsAdmin:
    def test_administrator_permission(self):
        assert member_is_admin(_make_user(administrator=True), None)

    def test_admin_role(self):
        assert member_is_admin(_make_user(role_ids=(1, ADMIN_ROLE)), ADMIN_ROLE)

    def test_regular_member(self):
        assert not member_is_admin(_make_user(role_ids=(1, 2)), ADMIN_ROLE)

    def test_plain_user_without_guild(self):
        assert not member_is_admin(SimpleNamespace(id=1), ADMIN_ROLE)


class TestScoresCog:
    def test_meter_reply_suppresses_mentions(self, service):
        service.reset({42: 3})
        interaction = _make_interaction(_make_user())
        run_async(Scores(_make_bot(service))._run(interaction, CommandName.METER))

        interaction.response.send_message.assert_awaited_once()
        args, kwargs = interaction.response.send_message.call_args
        assert args[0] == "UwU meter: 3"
        mentions = kwargs["allowed_mentions"]
        assert mentions.users is False
        assert mentions.everyone is False
        assert mentions.roles is False

    def test_my_score_for_invoker(self, service):
        service.reset({42: 3, 77: 8})
        interaction = _make_interaction(_make_user(77))
        run_async(Scores(_make_bot(service))._run(interaction, CommandName.MY_SCORE))
        assert interaction.response.send_message.call_args.args[0] == "<@77>: 8"

    def test_reset_refused_for_member(self, service):
        service.reset({42: 3})
        interaction = _make_interaction(_make_user())
        cog = Scores(_make_bot(service))
        run_async(cog._run(interaction, CommandName.RESET, {"newleaderboard": '{"1": 1}'}))

        assert interaction.response.send_message.call_args.args[0] == RESET_FORBIDDEN
        assert service.snapshot().total == 3

    def test_reset_by_admin_role(self, service):
        interaction = _make_interaction(_make_user(role_ids=(ADMIN_ROLE,)))
        cog = Scores(_make_bot(service))
        run_async(cog._run(interaction, CommandName.RESET, {"newleaderboard": '{"1": 4}'}))

        assert interaction.response.send_message.call_args.args[0] == "New UwU meter: 4"
        assert service.get(1) == 4

    def test_long_export_sent_as_file(self, service):
        service.reset({10**17 + i: i for i in range(200)})
        interaction = _make_interaction(_make_user())
        run_async(Scores(_make_bot(service))._run(interaction, CommandName.EXPORT))

        kwargs = interaction.response.send_message.call_args.kwargs
        assert isinstance(kwargs["file"], discord.File)
        assert kwargs["file"].filename == "uwuexport.txt"

    def test_delivery_failure_is_logged_not_raised(self, service):
        interaction = _make_interaction(_make_user())
        response = MagicMock(status=500, reason="Server Error")
        interaction.response.send_message.side_effect = discord.HTTPException(
            response, "nope"
        )
        run_async(Scores(_make_bot(service))._send(interaction, "hi", filename="x.txt"))
        interaction.response.send_message.assert_awaited_once()

    def test_max_length_matches_discord(self):
        assert MAX_MESSAGE_LENGTH == 2000
