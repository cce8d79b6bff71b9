"""Discord cogs - command handlers."""

from discord_stream_player.infrastructure.discord.cogs.music_cog import MusicCog

__all__ = ["MusicCog"]
