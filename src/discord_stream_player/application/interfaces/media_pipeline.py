"""Port interfaces for the fetch+transcode pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import discord

    from ...domain.music.entities import Track
    from ...domain.shared.exceptions import PipelineError


class PipelineHandle(ABC):
    """Owned resources of one in-flight pipeline.

    ``stop`` is the single teardown entry point. It must never raise and
    must be safe to call any number of times.
    """

    @property
    @abstractmethod
    def source(self) -> discord.AudioSource:
        """Playable encoded audio for the sink."""
        ...

    @property
    @abstractmethod
    def stopped(self) -> bool:
        ...

    @property
    def error(self) -> PipelineError | None:
        """Failure detected after start, e.g. the transcoder exiting non-zero."""
        return None

    @abstractmethod
    async def stop(self) -> None:
        ...


class MediaPipeline(ABC):
    """Interface for producing a live encoded audio stream from a Track."""

    @abstractmethod
    async def start(self, track: Track, *, guild_id: int) -> PipelineHandle:
        """Start fetching and transcoding ``track``.

        Suspends until the stream can be handed to a sink. On failure or
        cancellation every resource acquired so far has been released.

        Raises:
            ToolMissing: an external executable is not installed.
            FetchFailed: the fetch stage failed or produced nothing.
            TranscodeFailed: the transcode stage could not be started.
        """
        ...
