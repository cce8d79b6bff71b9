"""Audio infrastructure - yt-dlp resolver and subprocess fetch/transcode pipeline."""

from discord_stream_player.infrastructure.audio.models import YtDlpOpts, YtDlpTrackInfo
from discord_stream_player.infrastructure.audio.subprocess_pipeline import (
    SubprocessMediaPipeline,
    SubprocessPipelineHandle,
    TranscodeConfig,
)
from discord_stream_player.infrastructure.audio.ytdlp_resolver import YtDlpTrackResolver

__all__ = [
    "SubprocessMediaPipeline",
    "SubprocessPipelineHandle",
    "TranscodeConfig",
    "YtDlpOpts",
    "YtDlpTrackInfo",
    "YtDlpTrackResolver",
]
