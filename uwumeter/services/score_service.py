"""
uwumeter.services.score_service — Mutations & Save-Before-Acknowledge
======================================================================

Glues the in-memory :class:`~uwumeter.engine.scores.ScoreStore` to a
:class:`~uwumeter.services.persistence.ScorePersistence` backend.

Every mutation follows the same sequence, under one write lock:

1. mutate the store
2. take a snapshot
3. save it synchronously

so snapshots reach storage in the order the mutations happened and no
reply is sent before the save has been attempted.  Reads only take the
store's own lock and are never held up by a slow save.

A failed save is logged and reported back, but the in-memory change is
kept: live counters stay available even when storage is not.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass

from uwumeter.engine.events import MessageEvent, matches_keyword
from uwumeter.engine.scores import ScoreSnapshot, ScoreStore
from uwumeter.services.persistence import PersistenceError, ScorePersistence

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MessageResult:
    """Outcome of offering one message to the counter."""
    counted: bool
    user_count: int
    total: int
    saved: bool = True


@dataclass(frozen=True, slots=True)
class ResetResult:
    """Outcome of replacing the whole scoreboard."""
    total: int
    users: int
    saved: bool


class ScoreService:
    """The single writer for the scoreboard.

    Parameters
    ----------
    store:
        The live scoreboard.
    persistence:
        Backend that receives a snapshot after every mutation.
    keyword:
        Text that makes a message count (case-insensitive substring).
    """

    def __init__(
        self,
        store: ScoreStore,
        persistence: ScorePersistence,
        keyword: str,
    ) -> None:
        self.store = store
        self.persistence = persistence
        self.keyword = keyword
        self._write_lock = threading.Lock()

    @classmethod
    def from_persistence(cls, persistence: ScorePersistence, keyword: str) -> ScoreService:
        """Load the saved scoreboard and build a service around it.

        Raises
        ------
        PersistenceError
            If the saved data exists but cannot be read.
        """
        store = ScoreStore.from_snapshot(persistence.load())
        return cls(store, persistence, keyword)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def snapshot(self) -> ScoreSnapshot:
        return self.store.snapshot()

    def get(self, user_id: int) -> int:
        return self.store.get(user_id)

    def top(self, n: int) -> list[tuple[int, int]]:
        return self.store.top(n)

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def qualifies(self, event: MessageEvent) -> bool:
        """True when *event* should add one to its author's score."""
        return not event.author_is_bot and matches_keyword(event.content, self.keyword)

    def record_message(self, event: MessageEvent) -> MessageResult:
        """Count *event* if it qualifies, then persist.

        A qualifying message adds exactly 1, however many times the keyword
        appears in it.
        """
        if not self.qualifies(event):
            return MessageResult(
                counted=False,
                user_count=self.store.get(event.author_id),
                total=self.store.total,
            )

        with self._write_lock:
            user_count = self.store.increment(event.author_id, 1)
            snapshot = self.store.snapshot()
            saved = self._save(snapshot)

        logger.debug(
            "Counted message %s from %s (user=%d, total=%d)",
            event.message_id,
            event.author_id,
            user_count,
            snapshot.total,
        )
        return MessageResult(
            counted=True, user_count=user_count, total=snapshot.total, saved=saved
        )

    def reset(self, scores: Mapping[int, int]) -> ResetResult:
        """Replace every score with *scores* and persist.

        The total is always recomputed from *scores*.

        Raises
        ------
        TypeError, ValueError
            If any count is not a non-negative int.  Nothing is changed.
        """
        with self._write_lock:
            total = self.store.replace_all(scores)
            snapshot = self.store.snapshot()
            saved = self._save(snapshot)

        logger.info("Scoreboard reset: %d users, total=%d", len(snapshot.scores), total)
        return ResetResult(total=total, users=len(snapshot.scores), saved=saved)

    def _save(self, snapshot: ScoreSnapshot) -> bool:
        """Persist *snapshot*; log and return False on failure."""
        try:
            self.persistence.save(snapshot)
        except PersistenceError:
            logger.exception(
                "Failed to save scoreboard (total=%d); in-memory state kept",
                snapshot.total,
            )
            return False
        return True
