"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters. These are the "ports" in
hexagonal architecture.
"""

from discord_stream_player.application.interfaces.media_pipeline import (
    MediaPipeline,
    PipelineHandle,
)
from discord_stream_player.application.interfaces.playback_sink import (
    PlaybackSink,
    SinkEventHandler,
)
from discord_stream_player.application.interfaces.track_resolver import TrackResolver
from discord_stream_player.application.interfaces.voice_adapter import VoiceAdapter

__all__ = [
    "MediaPipeline",
    "PipelineHandle",
    "PlaybackSink",
    "SinkEventHandler",
    "TrackResolver",
    "VoiceAdapter",
]
