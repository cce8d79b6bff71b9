"""DTOs returned by the playback controller."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from ...domain.music.entities import Track
from ...domain.music.value_objects import PlaybackState
from ...domain.shared.types import NonNegativeInt


class EnqueueResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    track: Track
    started: bool
    position: NonNegativeInt = 0
    queue_length: NonNegativeInt = 0


class QueueSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: PlaybackState
    playing: Track | None
    upcoming: list[Track]

    @property
    def total_length(self) -> int:
        return len(self.upcoming) + (1 if self.playing is not None else 0)

    @property
    def is_empty(self) -> bool:
        return self.playing is None and not self.upcoming
