"""Voice channel guard functions for Discord cogs."""

from discord_stream_player.infrastructure.discord.guards.voice_guards import (
    get_member,
    require_voice_channel,
    send_ephemeral,
)

__all__ = [
    "get_member",
    "require_voice_channel",
    "send_ephemeral",
]
