"""
uwumeter.engine.events — Event Envelopes & Keyword Matching
============================================================

Discord objects are normalized into these small frozen dataclasses before
they reach the scoring code, so the services and their tests never need a
live gateway.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

__all__ = ["CommandInvocation", "MessageEvent", "matches_keyword"]


def matches_keyword(content: str, keyword: str) -> bool:
    """Case-insensitive substring test.

    An empty keyword never matches.
    """
    if not keyword:
        return False
    return keyword.casefold() in content.casefold()


@dataclass(frozen=True, slots=True)
class MessageEvent:
    """A "message created" event from the gateway."""

    author_id: int
    author_is_bot: bool
    content: str
    message_id: int | None = None


@dataclass(frozen=True, slots=True)
class CommandInvocation:
    """A slash-command invocation.

    ``is_admin`` is resolved by the cog from the member's permissions and
    roles before the invocation is built.
    """

    name: str
    user_id: int
    options: Mapping[str, object] = field(default_factory=dict)
    is_admin: bool = False
