"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from uwumeter.database.models import Base
from uwumeter.engine.scores import ScoreStore
from uwumeter.services.persistence import MemoryScorePersistence
from uwumeter.services.score_service import ScoreService


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all UwU Meter tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_blocking``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def memory_persistence() -> MemoryScorePersistence:
    return MemoryScorePersistence()


@pytest.fixture
def service(memory_persistence: MemoryScorePersistence) -> ScoreService:
    """A ScoreService with an empty board and in-memory storage."""
    return ScoreService(ScoreStore(), memory_persistence, keyword="uwu")
