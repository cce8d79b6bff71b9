"""Reusable voice-channel guard functions for Discord commands.

These are free functions that accept explicit dependencies rather than relying
on a specific cog instance, making them usable from any cog.
"""

from __future__ import annotations

import discord
from discord.ext import commands

from discord_stream_player.domain.shared.exceptions import NotInVoiceChannel
from discord_stream_player.domain.shared.messages import DiscordUIMessages


async def send_ephemeral(ctx: commands.Context, message: str) -> None:
    """Reply privately for slash invocations; prefix invocations get a normal reply."""
    await ctx.send(message, ephemeral=True)


async def get_member(ctx: commands.Context) -> discord.Member | None:
    """Validate that the command comes from a guild member. Returns None with error on failure."""
    if ctx.guild is None or not isinstance(ctx.author, discord.Member):
        await send_ephemeral(ctx, DiscordUIMessages.ERROR_SERVER_ONLY)
        return None

    return ctx.author


def require_voice_channel(member: discord.Member) -> discord.VoiceChannel | discord.StageChannel:
    """Return the member's current voice channel.

    Raises:
        NotInVoiceChannel: the member is not connected to voice.
    """
    if member.voice is None or member.voice.channel is None:
        raise NotInVoiceChannel()
    return member.voice.channel
