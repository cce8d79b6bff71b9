"""
Unit Tests for SubprocessMediaPipeline

Tests for:
- ffmpeg option construction (TranscodeConfig)
- Stream strategy: yt-dlp -g URL selection and error mapping
- Download strategy: temp file handling
- TrackedOpusAudio exit status capture
- SubprocessPipelineHandle teardown (idempotence, grace period, cleanup)

asyncio.create_subprocess_exec and discord.py's ffmpeg spawn are patched
throughout; no real executables run.
"""

import asyncio
import io
import shlex
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from conftest import make_track
from discord_stream_player.config.settings import PipelineSettings
from discord_stream_player.domain.shared.exceptions import (
    FetchFailed,
    ToolMissing,
    TranscodeFailed,
)
from discord_stream_player.infrastructure.audio.subprocess_pipeline import (
    SubprocessMediaPipeline,
    SubprocessPipelineHandle,
    TrackedOpusAudio,
    TranscodeConfig,
)

EXEC_PATH = "discord_stream_player.infrastructure.audio.subprocess_pipeline.asyncio.create_subprocess_exec"
WHICH_PATH = "discord_stream_player.infrastructure.audio.subprocess_pipeline.shutil.which"


def make_process(stdout: bytes = b"", stderr: bytes = b"", returncode: int | None = 0):
    process = MagicMock()
    process.pid = 4242
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.wait = AsyncMock(return_value=returncode or 0)
    process.stderr = None
    return process


def make_ffmpeg(exit_code: int = 0, audio: bytes = b""):
    """A stand-in for the Popen discord.py would start for ffmpeg."""
    process = MagicMock()
    process.pid = 5151
    process.stdout = io.BytesIO(audio)
    process.wait.return_value = exit_code
    process.poll.return_value = exit_code
    return process


def spawn_ffmpeg(process=None, **kwargs):
    mock = MagicMock(return_value=process if process is not None else make_ffmpeg(), **kwargs)
    return patch.object(discord.FFmpegAudio, "_spawn_process", mock)


def exec_args(mock_exec, call_index: int) -> list[str]:
    return list(mock_exec.call_args_list[call_index].args)


def ffmpeg_args(mock_spawn) -> list[str]:
    return list(mock_spawn.call_args.args[0])


# =============================================================================
# TranscodeConfig
# =============================================================================


class TestTranscodeConfig:
    """Tests for ffmpeg option construction."""

    def test_remote_input_enables_reconnect(self):
        """Should add reconnect flags and the user agent for HTTP sources."""
        opts = shlex.split(
            TranscodeConfig().get_before_options(
                "https://cdn.example/a.m4a", user_agent="Mozilla/5.0 (X11)"
            )
        )

        assert "-reconnect" in opts
        assert opts[opts.index("-reconnect_streamed") + 1] == "1"
        assert opts[opts.index("-user_agent") + 1] == "Mozilla/5.0 (X11)"

    def test_local_input_has_no_reconnect(self):
        """Should read local files without network options."""
        opts = TranscodeConfig().get_before_options("/tmp/1-2.audio", user_agent="UA/1.0")

        assert "-reconnect" not in opts
        assert "-user_agent" not in opts

    def test_options_drop_video(self):
        assert TranscodeConfig().get_options() == "-vn"
        assert TranscodeConfig(disable_video=False).get_options() == ""


# =============================================================================
# Stream strategy
# =============================================================================


class TestStreamStrategy:
    """Tests for the default stream strategy."""

    @pytest.fixture
    def pipeline(self):
        return SubprocessMediaPipeline(PipelineSettings(kill_grace_seconds=0.01))

    def test_default_strategy_is_stream(self):
        assert SubprocessMediaPipeline().strategy == "stream"

    @pytest.mark.asyncio
    async def test_start_uses_last_url_line(self, pipeline):
        """Should hand ffmpeg the last non-empty line yt-dlp prints."""
        fetch = make_process(stdout=b"https://video.example/v\nhttps://audio.example/a\n\n")
        ffmpeg = make_ffmpeg()

        with (
            patch(EXEC_PATH, AsyncMock(return_value=fetch)) as mock_exec,
            spawn_ffmpeg(ffmpeg) as mock_spawn,
        ):
            handle = await pipeline.start(make_track("song"), guild_id=1)

        fetch_args = exec_args(mock_exec, 0)
        args = ffmpeg_args(mock_spawn)

        assert fetch_args[0] == "yt-dlp"
        assert "-g" in fetch_args
        assert fetch_args[-1] == "https://www.youtube.com/watch?v=song"
        assert args[0] == "ffmpeg"
        assert args[args.index("-i") + 1] == "https://audio.example/a"
        assert args.index("-reconnect") < args.index("-i")
        assert args[args.index("-b:a") + 1] == "128k"
        assert "-vn" in args
        assert args[-1] == "pipe:1"
        assert handle.fetch_process is fetch
        assert isinstance(handle.source, TrackedOpusAudio)
        assert handle.source.is_opus()
        assert handle.error is None

        await handle.stop()

        assert handle.stopped
        ffmpeg.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises_fetch_failed(self, pipeline):
        """Should surface yt-dlp's exit code and stderr and never start ffmpeg."""
        fetch = make_process(stderr=b"ERROR: Video unavailable\n", returncode=1)

        with (
            patch(EXEC_PATH, AsyncMock(return_value=fetch)) as mock_exec,
            spawn_ffmpeg() as mock_spawn,
        ):
            with pytest.raises(FetchFailed) as exc_info:
                await pipeline.start(make_track("gone"), guild_id=1)

        assert mock_exec.call_count == 1
        mock_spawn.assert_not_called()
        assert "code 1" in exc_info.value.message
        assert "Video unavailable" in exc_info.value.diagnostics

    @pytest.mark.asyncio
    async def test_empty_output_raises_fetch_failed(self, pipeline):
        """Should treat a successful exit with no URL as a fetch failure."""
        fetch = make_process(stdout=b"\n  \n")

        with patch(EXEC_PATH, AsyncMock(return_value=fetch)):
            with pytest.raises(FetchFailed, match="empty url"):
                await pipeline.start(make_track("empty"), guild_id=1)

    @pytest.mark.asyncio
    async def test_missing_fetch_tool(self, pipeline):
        """Should raise ToolMissing naming yt-dlp when it is not installed."""
        with patch(EXEC_PATH, AsyncMock(side_effect=FileNotFoundError("yt-dlp"))):
            with pytest.raises(ToolMissing) as exc_info:
                await pipeline.start(make_track("x"), guild_id=1)

        assert exc_info.value.tool == "yt-dlp"

    @pytest.mark.asyncio
    async def test_missing_transcode_tool(self):
        """Should raise ToolMissing naming ffmpeg, using only the executable's base name."""
        pipeline = SubprocessMediaPipeline(PipelineSettings(ffmpeg_binary="/opt/bin/ffmpeg"))
        fetch = make_process(stdout=b"https://audio.example/a\n")
        not_found = discord.ClientException("/opt/bin/ffmpeg was not found.")

        with (
            patch(EXEC_PATH, AsyncMock(return_value=fetch)),
            spawn_ffmpeg(side_effect=not_found),
            patch(WHICH_PATH, return_value=None),
        ):
            with pytest.raises(ToolMissing) as exc_info:
                await pipeline.start(make_track("x"), guild_id=1)

        assert exc_info.value.tool == "ffmpeg"

    @pytest.mark.asyncio
    async def test_transcode_spawn_error(self, pipeline):
        """Should map other spawn errors to TranscodeFailed and release the fetch stage."""
        fetch = make_process(stdout=b"https://audio.example/a\n")
        popen_failed = discord.ClientException("Popen failed: OSError: denied")

        with (
            patch(EXEC_PATH, AsyncMock(return_value=fetch)),
            spawn_ffmpeg(side_effect=popen_failed),
            patch(WHICH_PATH, return_value="/usr/bin/ffmpeg"),
        ):
            with pytest.raises(TranscodeFailed, match="denied"):
                await pipeline.start(make_track("x"), guild_id=1)

    @pytest.mark.asyncio
    async def test_cancel_during_fetch_leaves_no_process(self, pipeline):
        """Should terminate the fetch process when start is cancelled."""
        fetch = make_process(returncode=None)
        gate = asyncio.Event()

        async def slow_communicate():
            await gate.wait()
            return b"", b""

        fetch.communicate = AsyncMock(side_effect=slow_communicate)

        with patch(EXEC_PATH, AsyncMock(return_value=fetch)):
            task = asyncio.create_task(pipeline.start(make_track("x"), guild_id=1))
            for _ in range(5):
                await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        fetch.terminate.assert_called_once()

    @pytest.mark.asyncio
    async def test_cancel_during_spawn_still_reaps_process(self, pipeline):
        """Should record and terminate a fetch process whose spawn outlived the cancel."""
        fetch = make_process(returncode=None)
        gate = asyncio.Event()

        async def slow_spawn(*args, **kwargs):
            await gate.wait()
            return fetch

        with patch(EXEC_PATH, AsyncMock(side_effect=slow_spawn)):
            task = asyncio.create_task(pipeline.start(make_track("x"), guild_id=1))
            for _ in range(5):
                await asyncio.sleep(0)
            task.cancel()
            for _ in range(5):
                await asyncio.sleep(0)
            gate.set()
            with pytest.raises(asyncio.CancelledError):
                await task

        fetch.terminate.assert_called_once()
        fetch.communicate.assert_not_called()


# =============================================================================
# Download strategy
# =============================================================================


class TestDownloadStrategy:
    """Tests for the download strategy."""

    @pytest.fixture
    def pipeline(self, tmp_path):
        return SubprocessMediaPipeline(
            PipelineSettings(strategy="download", temp_dir=tmp_path, kill_grace_seconds=0.01)
        )

    @pytest.mark.asyncio
    async def test_transcodes_downloaded_file_and_removes_it(self, pipeline, tmp_path):
        """Should feed ffmpeg the temp file and delete it on stop."""
        fetch = make_process()

        async def fake_exec(*args, **kwargs):
            Path(args[list(args).index("-o") + 1]).write_bytes(b"media")
            return fetch

        with (
            patch(EXEC_PATH, AsyncMock(side_effect=fake_exec)),
            spawn_ffmpeg() as mock_spawn,
        ):
            handle = await pipeline.start(make_track("dl"), guild_id=7)

        args = ffmpeg_args(mock_spawn)

        assert handle.temp_path is not None
        assert handle.temp_path.parent == tmp_path
        assert handle.temp_path.name.startswith("7-")
        assert args[args.index("-i") + 1] == str(handle.temp_path)
        assert "-reconnect" not in args

        await handle.stop()

        assert not handle.temp_path.exists()

    @pytest.mark.asyncio
    async def test_missing_file_raises_fetch_failed(self, pipeline, tmp_path):
        """Should fail when yt-dlp exits cleanly without writing anything."""
        with patch(EXEC_PATH, AsyncMock(return_value=make_process())):
            with pytest.raises(FetchFailed, match="did not produce"):
                await pipeline.start(make_track("dl"), guild_id=7)

        assert list(tmp_path.iterdir()) == []


# =============================================================================
# Transcoder exit status
# =============================================================================


class TestTranscoderExit:
    """Tests for how ffmpeg's own exit is surfaced after playback starts."""

    def _handle(self, process) -> SubprocessPipelineHandle:
        handle = SubprocessPipelineHandle(guild_id=1, kill_grace_seconds=0.01)
        with spawn_ffmpeg(process):
            handle.audio = TrackedOpusAudio("https://audio.example/a")
        return handle

    def test_failed_exit_is_reported_as_transcode_failure(self):
        """Should turn a non-zero ffmpeg exit at end of stream into TranscodeFailed."""
        handle = self._handle(make_ffmpeg(exit_code=1))

        assert handle.source.read() == b""

        error = handle.error
        assert isinstance(error, TranscodeFailed)
        assert "ffmpeg exited with code 1" in error.message

    def test_clean_exit_is_not_an_error(self):
        handle = self._handle(make_ffmpeg(exit_code=0))

        handle.source.read()

        assert handle.error is None

    def test_no_error_before_end_of_stream(self):
        """Should not guess at a failure while ffmpeg is still producing audio."""
        process = make_ffmpeg(exit_code=1)
        handle = self._handle(process)

        assert handle.error is None
        process.wait.assert_not_called()

    @pytest.mark.asyncio
    async def test_stopped_handle_reports_no_error(self):
        """Should not report the exit caused by our own teardown."""
        handle = self._handle(make_ffmpeg(exit_code=1))
        handle.source.read()

        await handle.stop()

        assert handle.error is None


# =============================================================================
# Handle teardown
# =============================================================================


class TestPipelineHandle:
    """Tests for SubprocessPipelineHandle.stop."""

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        """Should terminate each process once however often stop is called."""
        handle = SubprocessPipelineHandle(guild_id=1, kill_grace_seconds=0.01)
        process = make_process(returncode=None)
        handle.fetch_process = process

        await handle.stop()
        await handle.stop()

        process.terminate.assert_called_once()
        assert handle.stopped

    @pytest.mark.asyncio
    async def test_exited_process_is_left_alone(self):
        handle = SubprocessPipelineHandle(guild_id=1, kill_grace_seconds=0.01)
        process = make_process(returncode=0)
        handle.fetch_process = process

        await handle.stop()

        process.terminate.assert_not_called()

    @pytest.mark.asyncio
    async def test_vanished_process_tolerated(self):
        """Should ignore a process that exited between the check and the signal."""
        handle = SubprocessPipelineHandle(guild_id=1, kill_grace_seconds=0.01)
        process = make_process(returncode=None)
        process.terminate.side_effect = ProcessLookupError()
        handle.fetch_process = process

        await handle.stop()

        process.kill.assert_not_called()

    @pytest.mark.asyncio
    async def test_kill_after_grace_period(self):
        """Should escalate to kill when the process ignores terminate."""
        handle = SubprocessPipelineHandle(guild_id=1, kill_grace_seconds=0.01)
        process = make_process(returncode=None)
        calls = 0

        async def wait():
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(1)
            return -9

        process.wait = AsyncMock(side_effect=wait)
        handle.fetch_process = process

        await handle.stop()

        process.terminate.assert_called_once()
        process.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_stop_cleans_up_audio_source(self):
        """Should kill ffmpeg through the source's cleanup and drop the source."""
        ffmpeg = make_ffmpeg()
        handle = SubprocessPipelineHandle(guild_id=1, kill_grace_seconds=0.01)
        with spawn_ffmpeg(ffmpeg):
            handle.audio = TrackedOpusAudio("/tmp/a.audio")

        await handle.stop()
        await handle.stop()

        ffmpeg.kill.assert_called_once()
        with pytest.raises(RuntimeError):
            _ = handle.source
