"""Port interface for resolving user queries to tracks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from discord_stream_player.domain.shared.types import NonEmptyStr

if TYPE_CHECKING:
    from ...domain.music.entities import Track


class TrackResolver(ABC):
    """Interface for turning a search query or media URL into a Track."""

    @abstractmethod
    async def resolve(self, query: NonEmptyStr, requester: NonEmptyStr) -> "Track":
        """Resolve a query or URL to a playable track.

        Raises:
            ResolutionFailed: a search produced no usable result.
        """
        ...

    @abstractmethod
    def is_url(self, query: NonEmptyStr) -> bool:
        ...
