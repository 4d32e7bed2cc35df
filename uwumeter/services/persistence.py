"""
uwumeter.services.persistence — Scoreboard Storage Backends
============================================================

The scoreboard is persisted as two named JSON values:

* ``uwu_count``   — the running total, e.g. ``7``
* ``leaderboard`` — ``{"scores": {"42": 5, "99": 2}}``

:class:`ScorePersistence` owns that layout.  Concrete backends only know how
to read and write opaque JSON strings by key:

* :class:`FileScorePersistence`     — one JSON document on disk
* :class:`DatabaseScorePersistence` — rows in the ``bot_state`` table
* :class:`MemoryScorePersistence`   — a process-local dict (dev / tests)

Exactly one backend is selected at startup by :func:`create_persistence`.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, ClassVar

from pydantic import BaseModel, Field, StrictInt, StringConstraints, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from uwumeter.constants import LEADERBOARD_KEY, TOTAL_KEY
from uwumeter.database.engine import get_session
from uwumeter.database.models import BotState
from uwumeter.engine.scores import ScoreSnapshot

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from uwumeter.config import UwuConfig

logger = logging.getLogger(__name__)

__all__ = [
    "DatabaseScorePersistence",
    "FileScorePersistence",
    "MemoryScorePersistence",
    "PersistenceError",
    "ScorePersistence",
    "create_persistence",
    "decode_snapshot",
    "encode_snapshot",
]

# Non-negative integer count, no bools or floats.
Count = Annotated[StrictInt, Field(ge=0)]

# Decimal snowflake with no sign, padding, separators or leading zeros, so
# distinct keys always name distinct users.
UserKey = Annotated[str, StringConstraints(pattern=r"^[1-9][0-9]{0,19}$")]


class PersistenceError(RuntimeError):
    """Raised when the scoreboard cannot be read from or written to storage."""


class StoredLeaderboard(BaseModel):
    """Shape of the ``leaderboard`` value."""
    scores: dict[UserKey, Count] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Snapshot <-> key/value encoding
# ---------------------------------------------------------------------------
def encode_snapshot(snapshot: ScoreSnapshot) -> dict[str, str]:
    """Serialize *snapshot* to the two persisted JSON values."""
    scores = {str(user_id): count for user_id, count in sorted(snapshot.scores.items())}
    return {
        TOTAL_KEY: json.dumps(snapshot.total),
        LEADERBOARD_KEY: json.dumps({"scores": scores}),
    }


def decode_snapshot(values: Mapping[str, str | None]) -> ScoreSnapshot | None:
    """Rebuild a snapshot from persisted values.

    Returns ``None`` when neither key has ever been written.  The stored
    total is kept as-is so callers can detect a mismatch with the per-user
    sum.

    Raises
    ------
    PersistenceError
        If either value is present but malformed.
    """
    raw_total = values.get(TOTAL_KEY)
    raw_board = values.get(LEADERBOARD_KEY)
    if raw_total is None and raw_board is None:
        return None

    try:
        board = (
            StoredLeaderboard.model_validate_json(raw_board)
            if raw_board is not None
            else StoredLeaderboard()
        )
    except ValidationError as exc:
        raise PersistenceError(f"Stored {LEADERBOARD_KEY!r} is malformed: {exc}") from exc

    scores = {int(user_id): count for user_id, count in board.scores.items()}
    if raw_total is None:
        return ScoreSnapshot.of(scores)

    try:
        total = json.loads(raw_total)
    except json.JSONDecodeError as exc:
        raise PersistenceError(f"Stored {TOTAL_KEY!r} is not JSON: {exc}") from exc
    if isinstance(total, bool) or not isinstance(total, int) or total < 0:
        raise PersistenceError(f"Stored {TOTAL_KEY!r} is not a count: {raw_total!r}")

    return ScoreSnapshot(total=total, scores=ScoreSnapshot.of(scores).scores)


# ---------------------------------------------------------------------------
# Abstract adapter
# ---------------------------------------------------------------------------
class ScorePersistence(ABC):
    """Load and save scoreboard snapshots through a key/value backend."""

    backend: ClassVar[str]

    @abstractmethod
    def read_value(self, key: str) -> str | None:
        """Return the JSON string stored under *key*, or ``None``."""

    @abstractmethod
    def write_values(self, values: Mapping[str, str]) -> None:
        """Store every ``key → JSON string`` pair, replacing prior values."""

    def load(self) -> ScoreSnapshot | None:
        """Read the saved snapshot; ``None`` means "start empty"."""
        snapshot = decode_snapshot(
            {key: self.read_value(key) for key in (TOTAL_KEY, LEADERBOARD_KEY)}
        )
        if snapshot is None:
            logger.info("No saved scoreboard in %s storage, starting empty", self.backend)
        else:
            logger.info(
                "Loaded scoreboard from %s storage: total=%d, users=%d",
                self.backend,
                snapshot.total,
                len(snapshot.scores),
            )
        return snapshot

    def save(self, snapshot: ScoreSnapshot) -> None:
        """Durably write *snapshot*, replacing the previous one."""
        self.write_values(encode_snapshot(snapshot))
        logger.debug(
            "Saved scoreboard to %s storage: total=%d, users=%d",
            self.backend,
            snapshot.total,
            len(snapshot.scores),
        )


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------
class MemoryScorePersistence(ScorePersistence):
    """Process-local storage.  Nothing survives a restart."""

    backend = "memory"

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def read_value(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def write_values(self, values: Mapping[str, str]) -> None:
        with self._lock:
            self._values.update(values)


class FileScorePersistence(ScorePersistence):
    """Both keys in a single JSON document, replaced atomically on save.

    The document holds decoded values::

        {"uwu_count": 7, "leaderboard": {"scores": {"42": 5, "99": 2}}}
    """

    backend = "file"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read_document(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(document, dict):
            raise PersistenceError(f"{self.path} does not hold a JSON object")
        return document

    def read_value(self, key: str) -> str | None:
        document = self._read_document()
        if key not in document:
            return None
        return json.dumps(document[key])

    def write_values(self, values: Mapping[str, str]) -> None:
        document = self._read_document()
        for key, value in values.items():
            document[key] = json.loads(value)

        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as fh:
                fh.write(json.dumps(document, indent=2))
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self.path)
        except OSError as exc:
            raise PersistenceError(f"Cannot write {self.path}: {exc}") from exc


class DatabaseScorePersistence(ScorePersistence):
    """Rows in the ``bot_state`` table, one per key, upserted in one commit."""

    backend = "database"

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def read_value(self, key: str) -> str | None:
        try:
            with get_session(self._engine) as session:
                row = session.get(BotState, key)
                return row.value_json if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Cannot read {key!r} from bot_state: {exc}") from exc

    def write_values(self, values: Mapping[str, str]) -> None:
        try:
            with get_session(self._engine) as session:
                for key, value_json in values.items():
                    row = session.get(BotState, key)
                    if row is None:
                        session.add(BotState(key=key, value_json=value_json))
                    else:
                        row.value_json = value_json
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Cannot write bot_state: {exc}") from exc


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------
def create_persistence(cfg: UwuConfig, engine: Engine | None = None) -> ScorePersistence:
    """Build the backend named by ``cfg.storage_backend``.

    Raises
    ------
    ValueError
        For an unknown backend, or ``database`` without an *engine*.
    """
    if cfg.storage_backend == "file":
        return FileScorePersistence(cfg.storage_path)
    if cfg.storage_backend == "database":
        if engine is None:
            raise ValueError("The database storage backend needs an engine")
        return DatabaseScorePersistence(engine)
    if cfg.storage_backend == "memory":
        logger.warning("Using in-memory storage; scores will not survive a restart")
        return MemoryScorePersistence()
    raise ValueError(f"Unknown storage backend: {cfg.storage_backend!r}")
