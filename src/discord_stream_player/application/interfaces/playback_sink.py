"""Port interface for the destination that consumes an encoded stream."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .media_pipeline import PipelineHandle

SinkEventHandler = Callable[[int, Exception | None], Awaitable[None]]
"""Called with ``(token, error)`` once a stream ends; ``error`` is None on a clean finish."""


class PlaybackSink(ABC):
    """A voice destination that plays one stream at a time."""

    @abstractmethod
    def subscribe(self, handler: SinkEventHandler) -> None:
        """Register the single handler for terminal stream events."""
        ...

    @abstractmethod
    def play(self, handle: PipelineHandle, *, token: int) -> None:
        """Start playing ``handle.source``; ``token`` is echoed back to the handler."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop consuming the current stream, if any."""
        ...

    @property
    @abstractmethod
    def is_playing(self) -> bool:
        ...
