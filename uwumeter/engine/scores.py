"""
uwumeter.engine.scores — In-Memory Scoreboard
==============================================

Holds the running UwU total and the per-user tally.  Every message the bot
counts and every ``/uwureset`` lands here before anything is written to
storage.

The store knows nothing about persistence.  Callers take a
:class:`ScoreSnapshot` and hand it to a
:class:`~uwumeter.services.persistence.ScorePersistence` backend.

Thread safety:
    Gateway events are processed on worker threads (see
    :func:`uwumeter.database.engine.run_blocking`), so every read and write
    goes through one :class:`threading.Lock`.  ``total`` and the mapping are
    only ever changed together inside that lock.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

logger = logging.getLogger(__name__)

__all__ = ["ScoreSnapshot", "ScoreStore", "validate_count"]


def validate_count(value: object, *, what: str = "amount") -> int:
    """Return *value* if it is a non-negative ``int``, else raise.

    ``bool`` is rejected even though it subclasses ``int``.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{what} must be >= 0, got {value}")
    return value


# ---------------------------------------------------------------------------
# ScoreSnapshot — immutable point-in-time copy
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ScoreSnapshot:
    """Immutable copy of the scoreboard, safe to serialize or format.

    ``scores`` is a read-only view over a private dict, so holding a snapshot
    never aliases the live store.
    """

    total: int = 0
    scores: Mapping[int, int] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def of(cls, scores: Mapping[int, int]) -> ScoreSnapshot:
        """Build a snapshot whose total is derived from *scores*."""
        copied = dict(scores)
        return cls(total=sum(copied.values()), scores=MappingProxyType(copied))

    def get(self, user_id: int) -> int:
        return self.scores.get(user_id, 0)

    def top(self, n: int) -> list[tuple[int, int]]:
        """Entries by count descending, ties by user id ascending."""
        if n <= 0:
            return []
        ranked = sorted(self.scores.items(), key=lambda kv: (-kv[1], kv[0]))
        return ranked[:n]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScoreSnapshot):
            return NotImplemented
        return self.total == other.total and dict(self.scores) == dict(other.scores)

    def __hash__(self) -> int:
        return hash((self.total, frozenset(self.scores.items())))


# ---------------------------------------------------------------------------
# ScoreStore — the live scoreboard
# ---------------------------------------------------------------------------
class ScoreStore:
    """Thread-safe per-user counter with a redundant aggregate total.

    Usage::

        store = ScoreStore()
        store.increment(1234)
        store.get(1234)          # 1
        store.top(10)            # [(1234, 1)]
        store.replace_all({42: 5, 99: 2})
        store.snapshot().total   # 7
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._scores: dict[int, int] = {}
        self._total: int = 0

    @classmethod
    def from_snapshot(cls, snapshot: ScoreSnapshot | None) -> ScoreStore:
        """Create a store seeded from a persisted snapshot (or empty)."""
        store = cls()
        if snapshot is None:
            return store
        expected = sum(snapshot.scores.values())
        if snapshot.total != expected:
            logger.warning(
                "Persisted total %d disagrees with per-user sum %d; using the sum",
                snapshot.total,
                expected,
            )
        store.replace_all(snapshot.scores)
        return store

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @property
    def total(self) -> int:
        with self._lock:
            return self._total

    def __len__(self) -> int:
        with self._lock:
            return len(self._scores)

    def get(self, user_id: int) -> int:
        """Return *user_id*'s count, or 0 if they have never been counted."""
        with self._lock:
            return self._scores.get(user_id, 0)

    def top(self, n: int) -> list[tuple[int, int]]:
        """Return at most *n* ``(user_id, count)`` pairs, highest first.

        Equal counts are ordered by user id ascending so the output is
        reproducible.
        """
        if n <= 0:
            return []
        with self._lock:
            items = list(self._scores.items())
        items.sort(key=lambda kv: (-kv[1], kv[0]))
        return items[:n]

    def snapshot(self) -> ScoreSnapshot:
        with self._lock:
            return ScoreSnapshot(
                total=self._total, scores=MappingProxyType(dict(self._scores))
            )

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def increment(self, user_id: int, amount: int = 1) -> int:
        """Add *amount* to *user_id* and to the total; return the new count.

        Raises
        ------
        TypeError
            If *amount* is not an ``int``.
        ValueError
            If *amount* is negative.
        """
        validate_count(amount)
        with self._lock:
            new_count = self._scores.get(user_id, 0) + amount
            self._scores[user_id] = new_count
            self._total += amount
            return new_count

    def replace_all(self, scores: Mapping[int, int]) -> int:
        """Discard every entry and install *scores*; return the new total.

        All values are validated before the lock is taken, so a bad mapping
        leaves the store exactly as it was.  The swap itself happens in one
        critical section.
        """
        new_scores: dict[int, int] = {}
        for user_id, count in scores.items():
            new_scores[user_id] = validate_count(count, what=f"count for {user_id}")
        new_total = sum(new_scores.values())

        with self._lock:
            self._scores = new_scores
            self._total = new_total
        return new_total
