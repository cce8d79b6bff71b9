"""Core domain entities for the music bounded context."""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from discord_stream_player.domain.music.value_objects import PlaybackState
from discord_stream_player.domain.shared.datetime_utils import utcnow
from discord_stream_player.domain.shared.exceptions import ValidationError
from discord_stream_player.domain.shared.messages import ErrorMessages
from discord_stream_player.domain.shared.types import (
    NonEmptyStr,
    NonNegativeInt,
    TrackTitleStr,
)

if TYPE_CHECKING:
    from discord_stream_player.application.interfaces.media_pipeline import PipelineHandle
    from discord_stream_player.application.interfaces.playback_sink import PlaybackSink


class Track(BaseModel):
    """Immutable value object representing a playable track."""

    model_config = ConfigDict(frozen=True, strict=True)

    locator: NonEmptyStr
    title: TrackTitleStr
    requested_by: NonEmptyStr
    duration_seconds: NonNegativeInt | None = None

    @property
    def duration_formatted(self) -> str:
        """Format duration as MM:SS or HH:MM:SS."""
        if self.duration_seconds is None:
            return "Unknown"

        hours, remainder = divmod(self.duration_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)

        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"

    @property
    def display_title(self) -> str:
        """Get display title with duration if available."""
        if self.duration_seconds:
            return f"{self.title} [{self.duration_formatted}]"
        return self.title


# Shared by all sessions, so a late event from a session that was left
# never carries a token its successor is using.
_GENERATIONS = itertools.count(1)


@dataclass(eq=False)
class GuildSession:
    """Mutable per-guild playback record.

    Every field below ``sink`` is guarded by ``lock``; the playback
    controller is the only writer.

    ``generation`` identifies the current load/playback attempt. It is
    bumped whenever a new track starts loading and is unique process-wide,
    so callbacks from an older pipeline or sink stream can recognise they
    are stale.

    ``closed`` is set once the session has been left; an operation that
    was waiting on ``lock`` must not touch a closed session.
    """

    guild_id: int
    sink: PlaybackSink
    queue: list[Track] = field(default_factory=list)
    playing: Track | None = None
    active_pipeline: PipelineHandle | None = None
    state: PlaybackState = PlaybackState.IDLE
    consecutive_failures: int = 0
    generation: int = 0
    closed: bool = False
    loader: asyncio.Task[None] | None = field(default=None, repr=False)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if self.guild_id <= 0:
            raise ValidationError(ErrorMessages.INVALID_SNOWFLAKE, field="guild_id")

    @property
    def queue_length(self) -> int:
        return len(self.queue)

    @property
    def is_idle(self) -> bool:
        return self.state == PlaybackState.IDLE

    def transition_to(self, target: PlaybackState) -> None:
        """Move to ``target``; IDLE -> IDLE is tolerated as a no-op."""
        if target == self.state == PlaybackState.IDLE:
            return
        if not self.state.can_transition_to(target):
            raise ValidationError(
                f"Invalid playback transition {self.state.value} -> {target.value}",
                field="state",
            )
        self.state = target

    def enqueue(self, track: Track) -> int:
        """Append a track and return its zero-based queue position."""
        self.queue.append(track)
        return len(self.queue) - 1

    def pop_next(self) -> Track | None:
        if not self.queue:
            return None
        return self.queue.pop(0)

    def clear_queue(self) -> int:
        """Drop every queued track and return how many were removed."""
        count = len(self.queue)
        self.queue.clear()
        return count

    def next_generation(self) -> int:
        self.generation = next(_GENERATIONS)
        return self.generation
