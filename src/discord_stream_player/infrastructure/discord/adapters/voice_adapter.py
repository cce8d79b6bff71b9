"""Discord voice adapter implementing VoiceAdapter for connection management."""

from __future__ import annotations

import asyncio
import logging

import discord

from discord_stream_player.application.interfaces.voice_adapter import VoiceAdapter
from discord_stream_player.config.settings import VoiceSettings
from discord_stream_player.domain.shared.exceptions import (
    ConnectionTimeout,
    VoiceConnectionError,
)
from discord_stream_player.domain.shared.messages import ErrorMessages, LogTemplates
from discord_stream_player.infrastructure.discord.adapters.playback_sink import (
    DiscordPlaybackSink,
)

logger = logging.getLogger(__name__)


class DiscordVoiceAdapter(VoiceAdapter):
    def __init__(self, bot: discord.Client, settings: VoiceSettings | None = None) -> None:
        self._bot = bot
        self._settings = settings or VoiceSettings()

    @property
    def connect_timeout(self) -> float:
        return self._settings.connect_timeout

    def _get_voice_client(self, guild_id: int) -> discord.VoiceClient | None:
        guild = self._bot.get_guild(guild_id)
        if not guild:
            return None

        vc = guild.voice_client
        return vc if isinstance(vc, discord.VoiceClient) else None

    def _get_voice_channel(
        self, guild_id: int, channel_id: int
    ) -> discord.VoiceChannel | discord.StageChannel:
        guild = self._bot.get_guild(guild_id)
        if not guild:
            raise VoiceConnectionError(
                channel_id, ErrorMessages.GUILD_NOT_FOUND.format(guild_id=guild_id)
            )

        channel = guild.get_channel(channel_id)
        if not isinstance(channel, discord.VoiceChannel | discord.StageChannel):
            raise VoiceConnectionError(
                channel_id, ErrorMessages.CHANNEL_NOT_VOICE.format(channel_id=channel_id)
            )
        return channel

    async def ensure_connected(self, guild_id: int, channel_id: int) -> None:
        """Connect if not connected, move if in a different channel.

        On timeout any half-open connection is released before
        ``ConnectionTimeout`` is raised.
        """
        channel = self._get_voice_channel(guild_id, channel_id)
        vc = self._get_voice_client(guild_id)

        if vc is not None and vc.is_connected() and vc.channel is not None:
            if vc.channel.id == channel_id:
                return

        try:
            async with asyncio.timeout(self.connect_timeout):
                if vc is not None and vc.is_connected():
                    await vc.move_to(channel)
                    logger.info(LogTemplates.VOICE_MOVED, channel.name)
                else:
                    if vc is not None:
                        await vc.disconnect(force=True)
                    await channel.connect(self_deaf=True, timeout=self.connect_timeout)
                    logger.info(LogTemplates.VOICE_CONNECTED, channel.name, channel.guild.name)
        except TimeoutError:
            logger.error(LogTemplates.VOICE_CONNECTION_TIMEOUT, channel_id, self.connect_timeout)
            await self._release_partial(guild_id)
            raise ConnectionTimeout(channel_id, self.connect_timeout) from None
        except discord.Forbidden as e:
            logger.error(LogTemplates.VOICE_NO_PERMISSION, channel_id)
            raise VoiceConnectionError(
                channel_id,
                ErrorMessages.VOICE_CONNECT_FAILED.format(channel_id=channel_id, error=e),
            ) from e
        except discord.ClientException as e:
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, e)
            raise VoiceConnectionError(
                channel_id,
                ErrorMessages.VOICE_CONNECT_FAILED.format(channel_id=channel_id, error=e),
            ) from e

    async def _release_partial(self, guild_id: int) -> None:
        vc = self._get_voice_client(guild_id)
        if vc is None:
            return

        try:
            await vc.disconnect(force=True)
            logger.info(LogTemplates.VOICE_PARTIAL_RELEASED, guild_id)
        except (discord.ClientException, discord.HTTPException) as exc:
            logger.warning(LogTemplates.VOICE_PARTIAL_RELEASE_FAILED, guild_id, exc)

    async def disconnect(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        if not vc:
            logger.debug(LogTemplates.VOICE_NOT_CONNECTED, guild_id)
            return False

        await vc.disconnect(force=True)
        logger.info(LogTemplates.VOICE_DISCONNECTED, guild_id)
        return True

    def is_connected(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        return vc is not None and vc.is_connected()

    def create_sink(self, guild_id: int) -> DiscordPlaybackSink:
        return DiscordPlaybackSink(self._bot, guild_id)
