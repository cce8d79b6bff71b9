"""Per-guild playback state machine.

The controller owns every mutation of a ``GuildSession``. Each public
operation takes the session's lock, so a teardown-then-start sequence for
one guild is never interleaved with another. Pipeline start-up happens in a
loader task outside the lock; when it completes the loader re-acquires the
lock and checks its generation token before attaching the stream, so a
load that was overtaken by skip/stop/leave only releases its own handle.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import TYPE_CHECKING

from discord_stream_player.application.services.playback_models import (
    EnqueueResult,
    QueueSnapshot,
)
from discord_stream_player.domain.music.events import (
    PlaybackAbandoned,
    QueueExhausted,
    TrackFailed,
    TrackStarted,
)
from discord_stream_player.domain.music.value_objects import PlaybackState
from discord_stream_player.domain.shared.exceptions import (
    NothingPlaying,
    NotConnected,
    PipelineError,
)
from discord_stream_player.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...domain.music.entities import GuildSession, Track
    from ...domain.shared.events import DomainEvent, EventBus
    from ..interfaces.media_pipeline import MediaPipeline, PipelineHandle
    from ..interfaces.voice_adapter import VoiceAdapter
    from .session_registry import SessionRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONSECUTIVE_FAILURES = 5


class PlaybackController:
    def __init__(
        self,
        *,
        registry: SessionRegistry,
        pipeline: MediaPipeline,
        voice_adapter: VoiceAdapter,
        event_bus: EventBus,
        max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES,
    ) -> None:
        self._registry = registry
        self._pipeline = pipeline
        self._voice_adapter = voice_adapter
        self._event_bus = event_bus
        self._max_consecutive_failures = max_consecutive_failures

        self._registry.set_event_handler(self.handle_sink_event)

    # ─────────────────────────────────────────────────────────────────
    # Session lifecycle
    # ─────────────────────────────────────────────────────────────────

    async def join(self, guild_id: int, channel_id: int) -> GuildSession:
        """Connect to a voice channel and return the guild's session.

        Connection errors propagate before any session state is touched.
        """
        await self._voice_adapter.ensure_connected(guild_id, channel_id)
        return self._registry.get_or_create(
            guild_id, partial(self._voice_adapter.create_sink, guild_id)
        )

    async def leave(self, guild_id: int, *, disconnect: bool = True) -> None:
        """Tear down the guild's session and remove it from the registry.

        Raises:
            NotConnected: the guild has no session; nothing is mutated.
        """
        session = self._registry.get(guild_id)
        if session is None:
            raise NotConnected(guild_id)

        async with session.lock:
            self._ensure_open(session)
            session.closed = True
            session.clear_queue()
            await self._teardown_locked(session)
            self._registry.remove(guild_id)

        if disconnect:
            await self._voice_adapter.disconnect(guild_id)
        logger.info(LogTemplates.SESSION_LEFT, guild_id)

    async def shutdown(self) -> None:
        """Leave every guild, releasing all pipelines."""
        for guild_id in self._registry.guild_ids():
            try:
                await self.leave(guild_id)
            except NotConnected:
                continue

    def get_session(self, guild_id: int) -> GuildSession | None:
        return self._registry.get(guild_id)

    def _require_session(self, guild_id: int) -> GuildSession:
        session = self._registry.get(guild_id)
        if session is None:
            raise NotConnected(guild_id)
        return session

    @staticmethod
    def _ensure_open(session: GuildSession) -> None:
        """Reject a session that was left while the caller waited for its lock."""
        if session.closed:
            raise NotConnected(session.guild_id)

    # ─────────────────────────────────────────────────────────────────
    # Control actions
    # ─────────────────────────────────────────────────────────────────

    async def enqueue(self, guild_id: int, track: Track) -> EnqueueResult:
        """Append ``track``; start loading it straight away if the session is idle."""
        session = self._require_session(guild_id)

        async with session.lock:
            self._ensure_open(session)
            position = session.enqueue(track)
            logger.info(LogTemplates.PLAYBACK_ENQUEUED, track.title, position, guild_id)

            if session.is_idle:
                self._start_next_locked(session)

            started = session.playing is track
            result = EnqueueResult(
                track=track,
                started=started,
                position=0 if started else len(session.queue) - 1,
                queue_length=len(session.queue),
            )

        return result

    async def skip(self, guild_id: int) -> Track | None:
        """Drop the current track and advance. The rest of the queue is untouched."""
        session = self._require_session(guild_id)
        events: list[DomainEvent] = []

        async with session.lock:
            self._ensure_open(session)
            if not session.state.is_active:
                raise NothingPlaying(guild_id)

            skipped = session.playing
            await self._teardown_locked(session)
            logger.info(LogTemplates.PLAYBACK_SKIPPED, getattr(skipped, "title", None), guild_id)
            self._advance_locked(session, events, last=skipped)

        await self._publish(events)
        return skipped

    async def stop(self, guild_id: int) -> int:
        """Clear the queue and return to IDLE. Returns the number of tracks cleared."""
        session = self._require_session(guild_id)

        async with session.lock:
            self._ensure_open(session)
            if not session.state.is_active and not session.queue:
                raise NothingPlaying(guild_id)

            cleared = session.clear_queue()
            await self._teardown_locked(session)
            session.consecutive_failures = 0

        logger.info(LogTemplates.PLAYBACK_STOPPED, guild_id, cleared)
        return cleared

    def snapshot(self, guild_id: int) -> QueueSnapshot:
        session = self._require_session(guild_id)
        return QueueSnapshot(
            state=session.state,
            playing=session.playing,
            upcoming=list(session.queue),
        )

    # ─────────────────────────────────────────────────────────────────
    # Sink events
    # ─────────────────────────────────────────────────────────────────

    async def handle_sink_event(
        self, guild_id: int, token: int, error: Exception | None
    ) -> None:
        """Single dispatch point for a sink reporting the end of a stream.

        A clean finish and a sink error are handled identically: tear down
        and advance. If the pipeline reports its own failure (the transcoder
        exiting non-zero) the track counts as failed instead. Events for an
        older generation are ignored.
        """
        session = self._registry.get(guild_id)
        if session is None:
            return

        events: list[DomainEvent] = []
        async with session.lock:
            if (
                session.closed
                or token != session.generation
                or session.state != PlaybackState.PLAYING
            ):
                logger.debug(
                    LogTemplates.PLAYBACK_STALE_EVENT, token, session.generation, guild_id
                )
                return

            finished = session.playing
            handle = session.active_pipeline
            pipeline_error = handle.error if handle is not None else None

            if finished is not None and pipeline_error is not None:
                await self._fail_locked(session, finished, pipeline_error, events)
            else:
                title = getattr(finished, "title", None)
                if error is not None:
                    logger.warning(LogTemplates.PLAYBACK_SINK_ERROR, title, guild_id, error)
                else:
                    logger.info(LogTemplates.PLAYBACK_FINISHED, title, guild_id)

                await self._teardown_locked(session)
                session.consecutive_failures = 0
                self._advance_locked(session, events, last=finished)

        await self._publish(events)

    # ─────────────────────────────────────────────────────────────────
    # Internals (callers hold session.lock)
    # ─────────────────────────────────────────────────────────────────

    def _start_next_locked(self, session: GuildSession) -> Track | None:
        track = session.pop_next()
        if track is None:
            return None

        generation = session.next_generation()
        session.playing = track
        session.transition_to(PlaybackState.LOADING)
        logger.info(LogTemplates.PLAYBACK_LOADING, track.title, session.guild_id, generation)

        loader = asyncio.create_task(
            self._load(session, track, generation),
            name=f"pipeline-load-{session.guild_id}-{generation}",
        )
        loader.add_done_callback(partial(self._on_loader_done, session.guild_id))
        session.loader = loader
        return track

    def _advance_locked(
        self, session: GuildSession, events: list[DomainEvent], *, last: Track | None
    ) -> None:
        if self._start_next_locked(session) is not None:
            return

        logger.info(LogTemplates.PLAYBACK_QUEUE_EXHAUSTED, session.guild_id)
        if last is not None:
            events.append(
                QueueExhausted(guild_id=session.guild_id, last_track_title=last.title)
            )

    async def _teardown_locked(self, session: GuildSession) -> None:
        """Release the current load or stream and return the session to IDLE.

        Safe to call in any state; every step tolerates already-released resources.
        """
        loader, session.loader = session.loader, None
        if loader is not None and loader is not asyncio.current_task() and not loader.done():
            loader.cancel()
            await asyncio.wait([loader])

        session.sink.stop()

        handle, session.active_pipeline = session.active_pipeline, None
        if handle is not None:
            await handle.stop()

        session.playing = None
        session.transition_to(PlaybackState.IDLE)

    async def _fail_locked(
        self,
        session: GuildSession,
        track: Track,
        error: Exception,
        events: list[DomainEvent],
    ) -> None:
        logger.warning(LogTemplates.PLAYBACK_FAILED, track.title, session.guild_id, error)
        await self._teardown_locked(session)
        session.consecutive_failures += 1

        events.append(
            TrackFailed(
                guild_id=session.guild_id,
                track_title=track.title,
                error_code=getattr(error, "code", type(error).__name__),
                error_message=getattr(error, "message", str(error)),
                consecutive_failures=session.consecutive_failures,
            )
        )

        if session.consecutive_failures >= self._max_consecutive_failures:
            failures = session.consecutive_failures
            dropped = session.clear_queue()
            session.consecutive_failures = 0
            logger.error(LogTemplates.PLAYBACK_ABANDONED, session.guild_id, failures, dropped)
            events.append(
                PlaybackAbandoned(
                    guild_id=session.guild_id,
                    consecutive_failures=failures,
                    dropped_tracks=dropped,
                )
            )
            return

        self._advance_locked(session, events, last=None)

    # ─────────────────────────────────────────────────────────────────
    # Loader task
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _is_stale_load(session: GuildSession, generation: int) -> bool:
        return (
            session.closed
            or session.generation != generation
            or session.state != PlaybackState.LOADING
        )

    async def _load(self, session: GuildSession, track: Track, generation: int) -> None:
        try:
            handle = await self._pipeline.start(track, guild_id=session.guild_id)
        except PipelineError as exc:
            await self._on_load_failed(session, track, generation, exc)
            return
        except Exception as exc:
            logger.exception(LogTemplates.PLAYBACK_LOADER_ERROR, session.guild_id)
            await self._on_load_failed(session, track, generation, exc)
            return

        await self._attach(session, track, generation, handle)

    async def _attach(
        self,
        session: GuildSession,
        track: Track,
        generation: int,
        handle: PipelineHandle,
    ) -> None:
        events: list[DomainEvent] = []
        attached = False
        try:
            async with session.lock:
                if self._is_stale_load(session, generation):
                    logger.debug(LogTemplates.PLAYBACK_STALE_LOAD, generation, session.guild_id)
                    return

                if session.loader is asyncio.current_task():
                    session.loader = None
                session.active_pipeline = handle
                attached = True

                try:
                    session.sink.play(handle, token=generation)
                except Exception as exc:
                    logger.warning(LogTemplates.PLAYBACK_SINK_PLAY_FAILED, session.guild_id, exc)
                    await self._fail_locked(session, track, exc, events)
                else:
                    session.transition_to(PlaybackState.PLAYING)
                    logger.info(LogTemplates.PLAYBACK_STARTED, track.title, session.guild_id)
                    events.append(
                        TrackStarted(
                            guild_id=session.guild_id,
                            track_title=track.title,
                            requested_by=track.requested_by,
                        )
                    )
        finally:
            if not attached:
                await handle.stop()

        await self._publish(events)

    async def _on_load_failed(
        self,
        session: GuildSession,
        track: Track,
        generation: int,
        error: Exception,
    ) -> None:
        events: list[DomainEvent] = []
        async with session.lock:
            if self._is_stale_load(session, generation):
                logger.debug(LogTemplates.PLAYBACK_STALE_LOAD, generation, session.guild_id)
                return

            if session.loader is asyncio.current_task():
                session.loader = None
            await self._fail_locked(session, track, error, events)

        await self._publish(events)

    @staticmethod
    def _on_loader_done(guild_id: int, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                LogTemplates.PLAYBACK_LOADER_ERROR,
                guild_id,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def _publish(self, events: list[DomainEvent]) -> None:
        for event in events:
            await self._event_bus.publish(event)
