"""
uwumeter.database.models — SQLAlchemy 2.0 Data Models
======================================================

Tables:
- bot_state — Key/value store for the persisted scoreboard
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all UwU Meter ORM models."""


# ---------------------------------------------------------------------------
# BotState
# ---------------------------------------------------------------------------
class BotState(Base):
    """Key-value rows holding the serialized scoreboard.

    Two keys are used: ``uwu_count`` (JSON integer) and ``leaderboard``
    (JSON object ``{"scores": {...}}``).  Values are stored as JSON strings;
    decoding lives in :mod:`uwumeter.services.persistence`.
    """
    __tablename__ = "bot_state"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<BotState key={self.key!r}>"
