"""Port interface for voice channel connections."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from discord_stream_player.domain.shared.types import DiscordSnowflake

if TYPE_CHECKING:
    from .playback_sink import PlaybackSink


class VoiceAdapter(ABC):
    """Interface for joining and leaving voice channels."""

    @abstractmethod
    async def ensure_connected(
        self, guild_id: DiscordSnowflake, channel_id: DiscordSnowflake
    ) -> None:
        """Connect to ``channel_id``, or move there if connected elsewhere.

        Raises:
            ConnectionTimeout: the transport did not become ready in time.
            VoiceConnectionError: the connection was refused.
        """
        ...

    @abstractmethod
    async def disconnect(self, guild_id: DiscordSnowflake) -> bool:
        ...

    @abstractmethod
    def is_connected(self, guild_id: DiscordSnowflake) -> bool:
        ...

    @abstractmethod
    def create_sink(self, guild_id: DiscordSnowflake) -> PlaybackSink:
        """Build the playback sink bound to this guild's voice connection."""
        ...
