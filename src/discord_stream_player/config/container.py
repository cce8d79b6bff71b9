"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for the playback services and their adapters.
Components are created on-demand and cached for reuse throughout the application.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from discord_stream_player.domain.shared.messages import ErrorMessages

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from discord.ext.commands import Bot

    from ..application.interfaces.media_pipeline import MediaPipeline
    from ..application.interfaces.track_resolver import TrackResolver
    from ..application.interfaces.voice_adapter import VoiceAdapter
    from ..application.services.playback_controller import PlaybackController
    from ..application.services.session_registry import SessionRegistry
    from ..domain.shared.events import EventBus
    from ..infrastructure.http.health_server import HealthServer
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed. The voice
    adapter and everything built on it need the bot, so ``set_bot`` must
    be called before they are touched.
    """

    settings: Settings
    _bot: Bot | None = None

    # Shared kernel
    _event_bus: EventBus | None = None

    # Infrastructure adapters
    _track_resolver: TrackResolver | None = None
    _media_pipeline: MediaPipeline | None = None
    _voice_adapter: VoiceAdapter | None = None
    _health_server: HealthServer | None = None

    # Application services
    _session_registry: SessionRegistry | None = None
    _playback_controller: PlaybackController | None = None

    def set_bot(self, bot: Bot) -> None:
        """Set the Discord bot instance."""
        self._bot = bot

    @property
    def bot(self) -> Bot:
        """Get the Discord bot instance."""
        if self._bot is None:
            raise RuntimeError(ErrorMessages.BOT_NOT_INITIALIZED)
        return self._bot

    # === Shared ===

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            from ..domain.shared.events import EventBus

            self._event_bus = EventBus()
        return self._event_bus

    # === Adapters ===

    @property
    def track_resolver(self) -> TrackResolver:
        """Get the yt-dlp backed track resolver."""
        if self._track_resolver is None:
            from ..infrastructure.audio.ytdlp_resolver import YtDlpTrackResolver

            self._track_resolver = YtDlpTrackResolver(self.settings.pipeline)
        return self._track_resolver

    @property
    def media_pipeline(self) -> MediaPipeline:
        """Get the subprocess fetch+transcode pipeline."""
        if self._media_pipeline is None:
            from ..infrastructure.audio.subprocess_pipeline import SubprocessMediaPipeline

            self._media_pipeline = SubprocessMediaPipeline(self.settings.pipeline)
        return self._media_pipeline

    @property
    def voice_adapter(self) -> VoiceAdapter:
        """Get the Discord voice adapter."""
        if self._voice_adapter is None:
            from ..infrastructure.discord.adapters.voice_adapter import DiscordVoiceAdapter

            self._voice_adapter = DiscordVoiceAdapter(self.bot, self.settings.voice)
        return self._voice_adapter

    @property
    def health_server(self) -> HealthServer:
        if self._health_server is None:
            from ..infrastructure.http.health_server import HealthServer

            self._health_server = HealthServer(self.settings.health)
        return self._health_server

    # === Application Services ===

    @property
    def session_registry(self) -> SessionRegistry:
        if self._session_registry is None:
            from ..application.services.session_registry import SessionRegistry

            self._session_registry = SessionRegistry()
        return self._session_registry

    @property
    def playback_controller(self) -> PlaybackController:
        """Get the per-guild playback controller."""
        if self._playback_controller is None:
            from ..application.services.playback_controller import PlaybackController

            self._playback_controller = PlaybackController(
                registry=self.session_registry,
                pipeline=self.media_pipeline,
                voice_adapter=self.voice_adapter,
                event_bus=self.event_bus,
                max_consecutive_failures=self.settings.pipeline.max_consecutive_failures,
            )
        return self._playback_controller

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Build the playback graph eagerly so wiring errors surface at startup."""
        _ = self.playback_controller

    async def shutdown(self) -> None:
        """Tear down every playback session, then stop the health server."""
        if self._playback_controller is not None:
            await self._playback_controller.shutdown()

        if self._health_server is not None:
            await self._health_server.stop()

        if self._event_bus is not None:
            self._event_bus.clear()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
