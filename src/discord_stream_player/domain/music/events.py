"""Domain events for the music bounded context."""

from __future__ import annotations

from discord_stream_player.domain.shared.events import DomainEvent
from discord_stream_player.domain.shared.types import DiscordSnowflake, NonNegativeInt


class TrackStarted(DomainEvent):
    guild_id: DiscordSnowflake
    track_title: str
    requested_by: str


class TrackFailed(DomainEvent):
    guild_id: DiscordSnowflake
    track_title: str
    error_code: str
    error_message: str
    consecutive_failures: NonNegativeInt = 0


class QueueExhausted(DomainEvent):
    guild_id: DiscordSnowflake
    last_track_title: str = ""


class PlaybackAbandoned(DomainEvent):
    """Published when too many tracks in a row failed and the queue was dropped."""

    guild_id: DiscordSnowflake
    consecutive_failures: NonNegativeInt
    dropped_tracks: NonNegativeInt
