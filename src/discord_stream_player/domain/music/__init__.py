"""
Music Bounded Context

Domain logic for tracks, per-guild sessions, and playback events.
"""

from discord_stream_player.domain.music.entities import GuildSession, Track
from discord_stream_player.domain.music.events import (
    PlaybackAbandoned,
    QueueExhausted,
    TrackFailed,
    TrackStarted,
)
from discord_stream_player.domain.music.value_objects import PlaybackState

__all__ = [
    # Entities
    "Track",
    "GuildSession",
    # Value Objects
    "PlaybackState",
    # Events
    "TrackStarted",
    "TrackFailed",
    "QueueExhausted",
    "PlaybackAbandoned",
]
