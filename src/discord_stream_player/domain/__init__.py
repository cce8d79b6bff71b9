# ruff: noqa: N999
"""
Domain Layer

Contains pure playback logic:
- shared/: Cross-cutting exceptions, types, messages and the event bus
- music/: Track, guild session, playback state and events
"""

from discord_stream_player.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]
