"""
uwumeter.constants — Shared Constants
======================================

Single source of truth for storage keys, command names, and reply texts.
Import from here instead of duplicating in cogs and services.
"""

from __future__ import annotations

import enum

# ---------------------------------------------------------------------------
# Persisted state keys
# ---------------------------------------------------------------------------
TOTAL_KEY = "uwu_count"
LEADERBOARD_KEY = "leaderboard"

DEFAULT_KEYWORD = "uwu"
DEFAULT_LEADERBOARD_SIZE = 10


# ---------------------------------------------------------------------------
# Slash commands
# ---------------------------------------------------------------------------
class CommandName(enum.StrEnum):
    """Every slash command the bot answers."""
    METER = "uwumeeter"
    LEADERBOARD = "uwulead"
    MY_SCORE = "uwume"
    EXPORT = "uwuexport"
    RESET = "uwureset"


RESET_OPTION = "newleaderboard"


# ---------------------------------------------------------------------------
# Reply texts
# ---------------------------------------------------------------------------
LEADERBOARD_HEADER = "UwU Leaderboard:"
EMPTY_LEADERBOARD = "No UwUs counted yet."
EXPORT_ERROR = "Error while exporting the leaderboard."
RESET_FORBIDDEN = "You must be an admin to run this command."
RESET_MISSING = (
    "The leaderboard must be a string in the command's argument. Nothing changed."
)
RESET_PARSE_ERROR = "Error parsing the leaderboard. Nothing changed."
SAVE_FAILED_SUFFIX = "\n⚠️ Could not save to storage; the change may be lost on restart."
