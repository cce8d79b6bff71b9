"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Discord (bot, cogs, voice adapter, playback sink)
- Audio (yt-dlp resolver, yt-dlp/ffmpeg subprocess pipeline)
- HTTP (health endpoint)
"""

from discord_stream_player.infrastructure.discord.adapters.voice_adapter import DiscordVoiceAdapter
from discord_stream_player.infrastructure.discord.bot import create_bot
from discord_stream_player.infrastructure.http.health_server import HealthServer

__all__ = [
    "create_bot",
    "DiscordVoiceAdapter",
    "HealthServer",
]
