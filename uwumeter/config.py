"""
uwumeter.config — YAML Configuration Loader
============================================

This module reads ``config.yaml`` for **non-secret** settings (keyword,
leaderboard size, admin role, storage backend).  Secrets such as the Discord
token and database URL stay in ``.env``.

Usage::

    from uwumeter.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.keyword)           # "uwu"
    print(cfg.storage_backend)   # "file"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from uwumeter.constants import DEFAULT_KEYWORD, DEFAULT_LEADERBOARD_SIZE

STORAGE_BACKENDS: frozenset[str] = frozenset({"file", "database", "memory"})


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class UwuConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Discord
    bot_prefix: str = "!"

    # Counting
    keyword: str = DEFAULT_KEYWORD
    leaderboard_size: int = DEFAULT_LEADERBOARD_SIZE

    # Storage
    storage_backend: str = "file"
    storage_path: str = "data/uwu_state.json"

    # Optional: members with this role may run /uwureset, in addition to
    # anyone holding the Administrator permission.
    admin_role_id: int | None = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> UwuConfig:
    """Read *path* and return a :class:`UwuConfig` instance.

    Every key is optional; missing keys take the dataclass defaults.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a value is out of range or the storage backend is unknown.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    storage: dict = raw.get("storage") or {}
    defaults = UwuConfig()

    cfg = UwuConfig(
        bot_prefix=str(raw.get("bot_prefix", defaults.bot_prefix)),
        keyword=str(raw.get("keyword", defaults.keyword)).strip(),
        leaderboard_size=int(raw.get("leaderboard_size", defaults.leaderboard_size)),
        storage_backend=str(storage.get("backend", defaults.storage_backend)),
        storage_path=str(storage.get("path", defaults.storage_path)),
        admin_role_id=(
            int(raw["admin_role_id"]) if raw.get("admin_role_id") else None
        ),
    )

    if not cfg.keyword:
        raise ValueError("keyword must not be empty")
    if cfg.leaderboard_size < 1:
        raise ValueError(f"leaderboard_size must be >= 1, got {cfg.leaderboard_size}")
    if cfg.storage_backend not in STORAGE_BACKENDS:
        raise ValueError(
            f"Unknown storage backend {cfg.storage_backend!r}; "
            f"expected one of {sorted(STORAGE_BACKENDS)}"
        )
    return cfg
