"""
tests/test_commands.py — Command Handler & Dispatch Tests
==========================================================

Reply texts for every slash command, the all-or-nothing reset contract,
admin gating, and the unsupported-command fallback.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from uwumeter.constants import (
    EMPTY_LEADERBOARD,
    EXPORT_ERROR,
    RESET_FORBIDDEN,
    RESET_MISSING,
    RESET_OPTION,
    RESET_PARSE_ERROR,
    SAVE_FAILED_SUFFIX,
    CommandName,
)
from uwumeter.engine.events import CommandInvocation
from uwumeter.engine.scores import ScoreSnapshot, ScoreStore
from uwumeter.services.commands import (
    dispatch,
    export_text,
    leaderboard_text,
    meter_text,
    my_score_text,
    parse_scores,
    reset_text,
)
from uwumeter.services.persistence import PersistenceError, ScorePersistence
from uwumeter.services.score_service import ScoreService

BOARD = ScoreSnapshot.of({42: 5, 99: 2, 7: 5})


class TestReadHandlers:
    def test_meter(self):
        assert meter_text(BOARD) == "UwU meter: 12"

    def test_leaderboard(self):
        assert leaderboard_text(BOARD, 10) == (
            "UwU Leaderboard:\n<@7>: 5\n<@42>: 5\n<@99>: 2"
        )

    def test_leaderboard_truncates(self):
        lines = leaderboard_text(BOARD, 2).splitlines()
        assert lines == ["UwU Leaderboard:", "<@7>: 5", "<@42>: 5"]

    def test_empty_leaderboard(self):
        assert leaderboard_text(ScoreSnapshot(), 10).endswith(EMPTY_LEADERBOARD)

    def test_my_score(self):
        assert my_score_text(BOARD, 99) == "<@99>: 2"

    def test_my_score_never_counted(self):
        assert my_score_text(BOARD, 555) == "<@555>: 0"

    def test_export(self):
        assert json.loads(export_text(BOARD)) == {"7": 5, "42": 5, "99": 2}

    def test_export_empty(self):
        assert export_text(ScoreSnapshot()) == "{}"

    def test_export_failure_returns_error_text(self):
        with patch("uwumeter.services.commands.json.dumps", side_effect=TypeError("boom")):
            assert export_text(BOARD) == EXPORT_ERROR


class TestParseScores:
    def test_valid(self):
        assert parse_scores('{"1234": 4, "5678": 2}') == {1234: 4, 5678: 2}

    def test_empty_object(self):
        assert parse_scores("{}") == {}

    @pytest.mark.parametrize(
        "raw",
        [
            "{not json",
            "[1, 2]",
            '"text"',
            '{"abc": 1}',
            '{"0": 1}',
            '{"12": -1}',
            '{"12": 1.5}',
            '{"12": "3"}',
            '{"12": true}',
            '{"042": 5}',
            '{" 42 ": 3}',
            '{"4_2": 3}',
            '{"42.0": 3}',
            '{"+42": 3}',
            '{"42": 1, "042": 5}',
            '{"42": 1, "42": 5}',
        ],
    )
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            parse_scores(raw)


class TestReset:
    def test_scenario(self, service):
        reply = reset_text(service, '{"42": 5, "99": 2}', is_admin=True)
        assert reply == "New UwU meter: 7"
        assert service.get(42) == 5
        assert service.top(2) == [(42, 5), (99, 2)]

    def test_full_state_document_rejected(self, service):
        """Only the bare per-user mapping is accepted, never a stored total."""
        reply = reset_text(
            service, '{"leaderboard": {"1": 4}, "uwu_count": 6}', is_admin=True
        )
        assert reply == RESET_PARSE_ERROR

    @pytest.mark.parametrize(
        "raw", ["{not json", '{"1": -3}', "[]", '{"42": 1, "042": 5}', '{"1": 1, "1": 9}']
    )
    def test_parse_error_changes_nothing(self, service, memory_persistence, raw):
        service.reset({1: 3, 2: 4})
        before = service.snapshot()
        stored_before = memory_persistence.load()

        assert reset_text(service, raw, is_admin=True) == RESET_PARSE_ERROR
        assert service.snapshot() == before
        assert memory_persistence.load() == stored_before

    @pytest.mark.parametrize("raw", [None, "", "   ", 12])
    def test_missing_option(self, service, raw):
        assert reset_text(service, raw, is_admin=True) == RESET_MISSING

    def test_non_admin_refused(self, service):
        service.reset({1: 3})
        before = service.snapshot()
        assert reset_text(service, '{"2": 9}', is_admin=False) == RESET_FORBIDDEN
        assert service.snapshot() == before

    def test_save_failure_mentioned(self):
        persistence = MagicMock(spec=ScorePersistence)
        persistence.save.side_effect = PersistenceError("down")
        svc = ScoreService(ScoreStore(), persistence, keyword="uwu")

        reply = reset_text(svc, '{"1": 2}', is_admin=True)
        assert reply == "New UwU meter: 2" + SAVE_FAILED_SUFFIX
        assert svc.get(1) == 2


class TestDispatch:
    @pytest.fixture
    def seeded(self, service):
        service.reset({42: 5, 99: 2})
        return service

    def _invoke(self, name, *, user_id=42, options=None, is_admin=False):
        return CommandInvocation(
            name=name, user_id=user_id, options=options or {}, is_admin=is_admin
        )

    def test_meter(self, seeded):
        assert dispatch(seeded, self._invoke(CommandName.METER)) == "UwU meter: 7"

    def test_leaderboard_size(self, seeded):
        reply = dispatch(seeded, self._invoke("uwulead"), leaderboard_size=1)
        assert reply == "UwU Leaderboard:\n<@42>: 5"

    def test_my_score_uses_invoker(self, seeded):
        assert dispatch(seeded, self._invoke("uwume", user_id=99)) == "<@99>: 2"

    def test_export(self, seeded):
        assert json.loads(dispatch(seeded, self._invoke("uwuexport"))) == {"42": 5, "99": 2}

    def test_reset_requires_admin(self, seeded):
        inv = self._invoke("uwureset", options={RESET_OPTION: '{"1": 1}'})
        assert dispatch(seeded, inv) == RESET_FORBIDDEN
        assert seeded.snapshot().total == 7

    def test_reset_as_admin(self, seeded):
        inv = self._invoke("uwureset", options={RESET_OPTION: '{"1": 1}'}, is_admin=True)
        assert dispatch(seeded, inv) == "New UwU meter: 1"

    def test_unknown_command(self, seeded):
        assert dispatch(seeded, self._invoke("uwunuke")) == "Unsupported command: uwunuke"
        assert seeded.snapshot().total == 7
