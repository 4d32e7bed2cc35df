"""
uwumeter.services.commands — Slash-Command Handlers
====================================================

Each handler turns the current scoreboard (plus optional input) into the
reply text.  Nothing here talks to Discord, so the cogs stay thin and every
reply can be tested without a gateway.

:func:`dispatch` maps a :class:`~uwumeter.engine.events.CommandInvocation`
to its handler.  Names it does not recognise get an "unsupported" reply
instead of an exception.
"""

from __future__ import annotations

import json
import logging

from pydantic import TypeAdapter, ValidationError

from uwumeter.constants import (
    DEFAULT_LEADERBOARD_SIZE,
    EMPTY_LEADERBOARD,
    EXPORT_ERROR,
    LEADERBOARD_HEADER,
    RESET_FORBIDDEN,
    RESET_MISSING,
    RESET_OPTION,
    RESET_PARSE_ERROR,
    SAVE_FAILED_SUFFIX,
    CommandName,
)
from uwumeter.engine.events import CommandInvocation
from uwumeter.engine.scores import ScoreSnapshot
from uwumeter.services.persistence import Count, UserKey
from uwumeter.services.score_service import ScoreService

logger = logging.getLogger(__name__)

# {"<snowflake>": <non-negative int>}; keys arrive as JSON strings.
_SCORES_ADAPTER: TypeAdapter[dict[str, int]] = TypeAdapter(dict[UserKey, Count])


def _unique_keys(pairs: list[tuple[str, object]]) -> dict[str, object]:
    obj = dict(pairs)
    if len(obj) != len(pairs):
        raise ValueError("duplicate key in JSON object")
    return obj


def mention(user_id: int) -> str:
    return f"<@{user_id}>"


def parse_scores(raw: str) -> dict[int, int]:
    """Parse a reset payload such as ``{"1234": 4, "5678": 2}``.

    Raises
    ------
    ValueError
        On bad JSON, a non-object, a repeated key, keys that are not plain
        decimal snowflakes, or counts that are not non-negative integers.
    """
    scores = _SCORES_ADAPTER.validate_python(json.loads(raw, object_pairs_hook=_unique_keys))
    return {int(user_id): count for user_id, count in scores.items()}


# ---------------------------------------------------------------------------
# Read-only handlers
# ---------------------------------------------------------------------------
def meter_text(snapshot: ScoreSnapshot) -> str:
    return f"UwU meter: {snapshot.total}"


def leaderboard_text(snapshot: ScoreSnapshot, size: int = DEFAULT_LEADERBOARD_SIZE) -> str:
    """Header line, then ``<@id>: count`` for the top *size* users."""
    rows = snapshot.top(size)
    if not rows:
        return f"{LEADERBOARD_HEADER}\n{EMPTY_LEADERBOARD}"
    lines = [LEADERBOARD_HEADER]
    lines.extend(f"{mention(user_id)}: {count}" for user_id, count in rows)
    return "\n".join(lines)


def my_score_text(snapshot: ScoreSnapshot, user_id: int) -> str:
    return f"{mention(user_id)}: {snapshot.get(user_id)}"


def export_text(snapshot: ScoreSnapshot) -> str:
    """The full scoreboard as JSON, or an error line if it can't be encoded."""
    try:
        return json.dumps(
            {str(user_id): count for user_id, count in sorted(snapshot.scores.items())}
        )
    except (TypeError, ValueError):
        logger.exception("Failed to export the leaderboard")
        return EXPORT_ERROR


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------
def reset_text(service: ScoreService, raw: object, *, is_admin: bool) -> str:
    """Replace the scoreboard with the JSON mapping in *raw*.

    All-or-nothing: the payload is fully validated before the store is
    touched, so any error reply means nothing changed.
    """
    if not is_admin:
        return RESET_FORBIDDEN
    if not isinstance(raw, str) or not raw.strip():
        return RESET_MISSING

    try:
        scores = parse_scores(raw)
    except ValidationError as exc:
        logger.info("Rejected reset payload: %d error(s)", exc.error_count())
        return RESET_PARSE_ERROR
    except ValueError as exc:
        logger.info("Rejected reset payload: %s", exc)
        return RESET_PARSE_ERROR

    result = service.reset(scores)
    reply = f"New UwU meter: {result.total}"
    if not result.saved:
        reply += SAVE_FAILED_SUFFIX
    return reply


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
def dispatch(
    service: ScoreService,
    invocation: CommandInvocation,
    *,
    leaderboard_size: int = DEFAULT_LEADERBOARD_SIZE,
) -> str:
    """Route *invocation* to its handler and return the reply text."""
    try:
        name = CommandName(invocation.name)
    except ValueError:
        logger.warning("Unsupported command invoked: %r", invocation.name)
        return f"Unsupported command: {invocation.name}"

    if name is CommandName.RESET:
        return reset_text(
            service, invocation.options.get(RESET_OPTION), is_admin=invocation.is_admin
        )

    snapshot = service.snapshot()
    if name is CommandName.METER:
        return meter_text(snapshot)
    if name is CommandName.LEADERBOARD:
        return leaderboard_text(snapshot, leaderboard_size)
    if name is CommandName.MY_SCORE:
        return my_score_text(snapshot, invocation.user_id)
    return export_text(snapshot)
