import asyncio
from unittest.mock import MagicMock

import pytest

from discord_stream_player.application.interfaces.media_pipeline import (
    MediaPipeline,
    PipelineHandle,
)
from discord_stream_player.application.interfaces.playback_sink import PlaybackSink
from discord_stream_player.application.interfaces.voice_adapter import VoiceAdapter
from discord_stream_player.application.services.playback_controller import PlaybackController
from discord_stream_player.application.services.session_registry import SessionRegistry
from discord_stream_player.domain.music.entities import Track
from discord_stream_player.domain.music.events import (
    PlaybackAbandoned,
    QueueExhausted,
    TrackFailed,
    TrackStarted,
)
from discord_stream_player.domain.shared.events import EventBus

GUILD_ID = 111111111111111111
CHANNEL_ID = 222222222222222222


# ============================================================================
# Fakes
# ============================================================================


class FakeHandle(PipelineHandle):
    """Pipeline handle that records teardown instead of killing processes."""

    def __init__(self, track: Track) -> None:
        self.track = track
        self.stop_calls = 0
        self.failure: Exception | None = None
        self._source = MagicMock(name=f"source-{track.title}")
        self._stopped = False

    @property
    def source(self):
        return self._source

    @property
    def error(self):
        return None if self._stopped else self.failure

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def stop(self) -> None:
        self.stop_calls += 1
        self._stopped = True
        await asyncio.sleep(0)


class FakePipeline(MediaPipeline):
    """Pipeline whose start can be gated or made to fail per locator."""

    def __init__(self) -> None:
        self.started: list[Track] = []
        self.handles: list[FakeHandle] = []
        self.failures: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}

    def live_handles(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.stopped]

    async def start(self, track: Track, *, guild_id: int) -> FakeHandle:
        self.started.append(track)
        gate = self.gates.get(track.locator)
        if gate is not None:
            await gate.wait()

        failure = self.failures.get(track.locator)
        if failure is not None:
            raise failure

        handle = FakeHandle(track)
        self.handles.append(handle)
        return handle


class FakeSink(PlaybackSink):
    """Sink that records what it was asked to play and lets tests end streams."""

    def __init__(self) -> None:
        self.handler = None
        self.subscribe_calls = 0
        self.played: list[tuple[FakeHandle, int]] = []
        self.stop_calls = 0
        self.fail_next: Exception | None = None
        self._playing = False

    def subscribe(self, handler) -> None:
        self.subscribe_calls += 1
        self.handler = handler

    def play(self, handle, *, token: int) -> None:
        if self.fail_next is not None:
            exc, self.fail_next = self.fail_next, None
            raise exc
        self.played.append((handle, token))
        self._playing = True

    def stop(self) -> None:
        self.stop_calls += 1
        self._playing = False

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def current_token(self) -> int:
        return self.played[-1][1]

    async def finish(self, error: Exception | None = None, token: int | None = None) -> None:
        """Simulate the voice client reporting the end of a stream."""
        self._playing = False
        await self.handler(self.current_token if token is None else token, error)


class FakeVoiceAdapter(VoiceAdapter):
    def __init__(self) -> None:
        self.connected: dict[int, int] = {}
        self.sinks: dict[int, FakeSink] = {}
        self.connect_error: Exception | None = None
        self.disconnect_calls: list[int] = []

    async def ensure_connected(self, guild_id: int, channel_id: int) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected[guild_id] = channel_id

    async def disconnect(self, guild_id: int) -> bool:
        self.disconnect_calls.append(guild_id)
        return self.connected.pop(guild_id, None) is not None

    def is_connected(self, guild_id: int) -> bool:
        return guild_id in self.connected

    def create_sink(self, guild_id: int) -> FakeSink:
        sink = FakeSink()
        self.sinks[guild_id] = sink
        return sink


# ============================================================================
# Helpers
# ============================================================================


def make_track(name: str, requested_by: str = "tester") -> Track:
    return Track(
        locator=f"https://www.youtube.com/watch?v={name}",
        title=name,
        requested_by=requested_by,
    )


async def settle(session, rounds: int = 20) -> None:
    """Wait for the session's loader chain to go quiet."""
    while True:
        loader = session.loader
        if loader is None:
            break
        await asyncio.wait([loader])
        if session.loader is loader:
            break
    for _ in range(rounds):
        await asyncio.sleep(0)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def pipeline():
    return FakePipeline()


@pytest.fixture
def voice_adapter():
    return FakeVoiceAdapter()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def published(event_bus):
    """Every playback event published on the bus, in order."""
    events = []

    async def record(event):
        events.append(event)

    for event_type in (TrackStarted, TrackFailed, QueueExhausted, PlaybackAbandoned):
        event_bus.subscribe(event_type, record)
    return events


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def controller(registry, pipeline, voice_adapter, event_bus, published):
    return PlaybackController(
        registry=registry,
        pipeline=pipeline,
        voice_adapter=voice_adapter,
        event_bus=event_bus,
        max_consecutive_failures=3,
    )


@pytest.fixture
def sample_track():
    return make_track("lofi-beats")
