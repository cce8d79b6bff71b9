"""Hybrid-command music cog delegating to the playback controller."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from discord_stream_player.domain.music.events import (
    PlaybackAbandoned,
    QueueExhausted,
    TrackFailed,
    TrackStarted,
)
from discord_stream_player.domain.shared.exceptions import (
    ConnectionTimeout,
    DomainError,
    NothingPlaying,
    NotConnected,
    NotInVoiceChannel,
    ResolutionFailed,
    ToolMissing,
    VoiceConnectionError,
)
from discord_stream_player.domain.shared.messages import (
    DiscordUIMessages,
    ErrorMessages,
    LogTemplates,
)
from discord_stream_player.infrastructure.discord.guards.voice_guards import (
    get_member,
    require_voice_channel,
)
from discord_stream_player.utils.reply import format_queue, truncate

if TYPE_CHECKING:
    from ....application.interfaces.track_resolver import TrackResolver
    from ....application.services.playback_controller import PlaybackController
    from ....config.container import Container

logger = logging.getLogger(__name__)


def unwrap_command_error(error: BaseException) -> BaseException:
    """Strip discord.py's invoke wrappers down to the exception the command raised."""
    while isinstance(
        error,
        commands.HybridCommandError | commands.CommandInvokeError | app_commands.CommandInvokeError,
    ):
        error = error.original
    return error


def error_reply(error: DomainError) -> str:
    """Map a domain error to the message shown to the invoking user."""
    if isinstance(error, NotInVoiceChannel):
        return DiscordUIMessages.ERROR_NOT_IN_VOICE
    if isinstance(error, NothingPlaying):
        return DiscordUIMessages.ERROR_NOTHING_PLAYING
    if isinstance(error, NotConnected):
        return DiscordUIMessages.ERROR_NOT_CONNECTED
    if isinstance(error, ResolutionFailed):
        return DiscordUIMessages.ERROR_TRACK_NOT_FOUND.format(query=truncate(error.query))
    if isinstance(error, ToolMissing):
        return DiscordUIMessages.ERROR_TOOL_MISSING.format(tool=error.tool)
    if isinstance(error, ConnectionTimeout):
        return DiscordUIMessages.ERROR_CONNECTION_TIMEOUT
    if isinstance(error, VoiceConnectionError):
        return DiscordUIMessages.ERROR_COULD_NOT_JOIN_VOICE
    return DiscordUIMessages.ERROR_OCCURRED.format(error=error.message)


class MusicCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

        # Channel of the most recent command per guild; receives notifications.
        self._notify_channels: dict[int, discord.abc.Messageable] = {}

    @property
    def controller(self) -> PlaybackController:
        return self.container.playback_controller

    @property
    def resolver(self) -> TrackResolver:
        return self.container.track_resolver

    @property
    def prefix(self) -> str:
        return self.container.settings.discord.command_prefix

    async def cog_load(self) -> None:
        bus = self.container.event_bus
        bus.subscribe(TrackStarted, self._on_track_started)
        bus.subscribe(TrackFailed, self._on_track_failed)
        bus.subscribe(QueueExhausted, self._on_queue_exhausted)
        bus.subscribe(PlaybackAbandoned, self._on_playback_abandoned)

    async def cog_unload(self) -> None:
        bus = self.container.event_bus
        bus.unsubscribe(TrackStarted, self._on_track_started)
        bus.unsubscribe(TrackFailed, self._on_track_failed)
        bus.unsubscribe(QueueExhausted, self._on_queue_exhausted)
        bus.unsubscribe(PlaybackAbandoned, self._on_playback_abandoned)
        self._notify_channels.clear()

    async def cog_before_invoke(self, ctx: commands.Context) -> None:
        if ctx.guild is not None:
            self._notify_channels[ctx.guild.id] = ctx.channel

    async def cog_command_error(self, ctx: commands.Context, error: Exception) -> None:
        original = unwrap_command_error(error)
        if not isinstance(original, DomainError):
            # Left to the bot-wide handler.
            return

        logger.info(LogTemplates.BOT_COMMAND_ERROR, ctx.command, original)
        try:
            await ctx.send(error_reply(original))
        except discord.HTTPException:
            logger.warning(LogTemplates.BOT_ERROR_MESSAGE_SEND_FAILED)

    # ─────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────

    @commands.hybrid_command(name="help", description="List the music commands.")
    async def help(self, ctx: commands.Context) -> None:
        await ctx.send(DiscordUIMessages.HELP.format(prefix=self.prefix))

    @commands.hybrid_command(name="join", description="Bring the bot into your voice channel.")
    async def join(self, ctx: commands.Context) -> None:
        member = await get_member(ctx)
        if member is None:
            return

        channel = require_voice_channel(member)
        await ctx.defer()
        await self.controller.join(member.guild.id, channel.id)
        await ctx.send(DiscordUIMessages.ACTION_JOINED)

    @commands.hybrid_command(name="play", description="Play a track from YouTube.")
    @app_commands.describe(query="YouTube link or search terms")
    async def play(self, ctx: commands.Context, *, query: str | None = None) -> None:
        if not query or not query.strip():
            await ctx.send(DiscordUIMessages.USAGE_PLAY.format(prefix=self.prefix))
            return

        member = await get_member(ctx)
        if member is None:
            return

        channel = require_voice_channel(member)
        await ctx.defer()

        guild_id = member.guild.id
        await self.controller.join(guild_id, channel.id)
        track = await self.resolver.resolve(query.strip(), member.display_name)
        result = await self.controller.enqueue(guild_id, track)

        if result.started:
            await ctx.send(DiscordUIMessages.ACTION_NOW_STARTING.format(title=track.title))
        else:
            await ctx.send(
                DiscordUIMessages.ACTION_ENQUEUED.format(
                    title=track.title, position=result.position + 1
                )
            )

    @commands.hybrid_command(name="skip", description="Skip the current track.")
    async def skip(self, ctx: commands.Context) -> None:
        if ctx.guild is None:
            await ctx.send(DiscordUIMessages.ERROR_SERVER_ONLY)
            return

        skipped = await self.controller.skip(ctx.guild.id)
        title = skipped.title if skipped is not None else ""
        await ctx.send(DiscordUIMessages.ACTION_SKIPPED.format(title=title))

    @commands.hybrid_command(name="stop", description="Stop playback and clear the queue.")
    async def stop(self, ctx: commands.Context) -> None:
        if ctx.guild is None:
            await ctx.send(DiscordUIMessages.ERROR_SERVER_ONLY)
            return

        await self.controller.stop(ctx.guild.id)
        await ctx.send(DiscordUIMessages.ACTION_STOPPED)

    @commands.hybrid_command(name="queue", description="Show the queue.")
    async def queue(self, ctx: commands.Context) -> None:
        if ctx.guild is None:
            await ctx.send(DiscordUIMessages.ERROR_SERVER_ONLY)
            return

        snapshot = self.controller.snapshot(ctx.guild.id)
        await ctx.send(format_queue(snapshot))

    @commands.hybrid_command(name="leave", description="Leave the voice channel.")
    async def leave(self, ctx: commands.Context) -> None:
        if ctx.guild is None:
            await ctx.send(DiscordUIMessages.ERROR_SERVER_ONLY)
            return

        await self.controller.leave(ctx.guild.id)
        self._notify_channels.pop(ctx.guild.id, None)
        await ctx.send(DiscordUIMessages.ACTION_LEFT)

    # ─────────────────────────────────────────────────────────────────
    # Voice state
    # ─────────────────────────────────────────────────────────────────

    @commands.Cog.listener()
    async def on_voice_state_update(
        self, member: discord.Member, before: discord.VoiceState, after: discord.VoiceState
    ) -> None:
        if self.bot.user is None or member.id != self.bot.user.id:
            return
        if before.channel is None or after.channel is not None:
            return

        guild_id = member.guild.id
        if self.controller.get_session(guild_id) is None:
            return

        logger.info(LogTemplates.VOICE_EXTERNAL_DISCONNECT, guild_id)
        try:
            await self.controller.leave(guild_id, disconnect=False)
        except NotConnected:
            return
        self._notify_channels.pop(guild_id, None)

    # ─────────────────────────────────────────────────────────────────
    # Notifications
    # ─────────────────────────────────────────────────────────────────

    async def _notify(self, guild_id: int, message: str) -> None:
        channel = self._notify_channels.get(guild_id)
        if channel is None:
            return

        try:
            await channel.send(message)
        except discord.HTTPException as exc:
            logger.warning(LogTemplates.NOTIFY_FAILED, getattr(channel, "id", None), exc)

    async def _on_track_started(self, event: TrackStarted) -> None:
        await self._notify(
            event.guild_id,
            DiscordUIMessages.NOTIFY_NOW_PLAYING.format(
                title=truncate(event.track_title), requested_by=event.requested_by
            ),
        )

    async def _on_track_failed(self, event: TrackFailed) -> None:
        await self._notify(
            event.guild_id,
            DiscordUIMessages.NOTIFY_TRACK_FAILED.format(
                title=truncate(event.track_title), reason=truncate(event.error_message, 150)
            ),
        )

    async def _on_queue_exhausted(self, event: QueueExhausted) -> None:
        await self._notify(event.guild_id, DiscordUIMessages.NOTIFY_QUEUE_FINISHED)

    async def _on_playback_abandoned(self, event: PlaybackAbandoned) -> None:
        await self._notify(
            event.guild_id,
            DiscordUIMessages.NOTIFY_GIVING_UP.format(
                failures=event.consecutive_failures, dropped=event.dropped_tracks
            ),
        )


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(MusicCog(bot, container))
