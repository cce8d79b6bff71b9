"""
Shared Domain Kernel

Contains exceptions, types and events shared across the domain.
"""

from discord_stream_player.domain.shared.exceptions import (
    ConnectionTimeout,
    DomainError,
    FetchFailed,
    NothingPlaying,
    NotConnected,
    NotInVoiceChannel,
    PipelineError,
    ResolutionFailed,
    ToolMissing,
    TranscodeFailed,
    ValidationError,
    VoiceConnectionError,
)

__all__ = [
    "DomainError",
    "ValidationError",
    "ResolutionFailed",
    "PipelineError",
    "ToolMissing",
    "FetchFailed",
    "TranscodeFailed",
    "ConnectionTimeout",
    "VoiceConnectionError",
    "NotConnected",
    "NothingPlaying",
    "NotInVoiceChannel",
]
