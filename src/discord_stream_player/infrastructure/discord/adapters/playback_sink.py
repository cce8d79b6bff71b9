"""Discord voice sink that plays a pipeline's Opus audio source."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import discord

from discord_stream_player.application.interfaces.playback_sink import (
    PlaybackSink,
    SinkEventHandler,
)
from discord_stream_player.domain.shared.exceptions import NotConnected
from discord_stream_player.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ....application.interfaces.media_pipeline import PipelineHandle

logger = logging.getLogger(__name__)


class DiscordPlaybackSink(PlaybackSink):
    """Plays on the guild's current voice client.

    The voice client is looked up on every call, so a reconnect or move
    between tracks is picked up without rebuilding the sink.
    """

    def __init__(self, bot: discord.Client, guild_id: int) -> None:
        self._bot = bot
        self._guild_id = guild_id
        self._handler: SinkEventHandler | None = None

    def _get_voice_client(self) -> discord.VoiceClient | None:
        guild = self._bot.get_guild(self._guild_id)
        if not guild:
            return None

        vc = guild.voice_client
        return vc if isinstance(vc, discord.VoiceClient) else None

    def subscribe(self, handler: SinkEventHandler) -> None:
        self._handler = handler

    def play(self, handle: PipelineHandle, *, token: int) -> None:
        vc = self._get_voice_client()
        if vc is None or not vc.is_connected():
            raise NotConnected(self._guild_id)

        if vc.is_playing() or vc.is_paused():
            vc.stop()

        def after_callback(error: Exception | None = None) -> None:
            # Runs on discord.py's audio thread.
            logger.debug(LogTemplates.SINK_FINISHED, self._guild_id, token, error)
            asyncio.run_coroutine_threadsafe(self._dispatch(token, error), self._bot.loop)

        vc.play(handle.source, after=after_callback)
        logger.debug(LogTemplates.SINK_PLAY, self._guild_id, token)

    def stop(self) -> None:
        vc = self._get_voice_client()
        if vc is None:
            return

        if vc.is_playing() or vc.is_paused():
            try:
                vc.stop()
            except discord.ClientException as exc:
                logger.warning(LogTemplates.SINK_STOP_FAILED, self._guild_id, exc)

    @property
    def is_playing(self) -> bool:
        vc = self._get_voice_client()
        return vc is not None and vc.is_playing()

    async def _dispatch(self, token: int, error: Exception | None) -> None:
        if self._handler is None:
            logger.warning(LogTemplates.SINK_NOT_SUBSCRIBED, self._guild_id)
            return

        try:
            await self._handler(token, error)
        except Exception as exc:
            logger.exception(LogTemplates.SINK_EVENT_DISPATCH_FAILED, self._guild_id, exc)
