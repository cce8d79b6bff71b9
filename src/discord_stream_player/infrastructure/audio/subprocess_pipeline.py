"""MediaPipeline implementation driving the yt-dlp and ffmpeg executables.

Two strategies are supported:

* ``stream``: ``yt-dlp -g`` resolves a direct media URL and ffmpeg reads
  it over HTTP. Lowest latency; the default.
* ``download``: yt-dlp writes the media to a per-guild temporary file and
  ffmpeg reads that file. Slower to start, but immune to URL expiry.

The fetch stage is an asyncio subprocess. The transcode stage is
discord.py's ``FFmpegOpusAudio``, which runs ffmpeg to produce 48 kHz
stereo Opus in Ogg and feeds the packets straight to the voice client.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

import discord

from discord_stream_player.application.interfaces.media_pipeline import (
    MediaPipeline,
    PipelineHandle,
)
from discord_stream_player.config.settings import PipelineSettings
from discord_stream_player.domain.shared.exceptions import (
    FetchFailed,
    ToolMissing,
    TranscodeFailed,
)
from discord_stream_player.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ...domain.music.entities import Track

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS: Final[int] = 2000
TEMP_FILE_SUFFIX: Final[str] = ".audio"
EXIT_WAIT_SECONDS: Final[float] = 2.0


@dataclass(frozen=True)
class TranscodeConfig:
    """ffmpeg options handed to ``FFmpegOpusAudio``.

    Codec, sample rate, channel count and the Ogg container are fixed by
    discord.py; only the bitrate and the input options are ours.
    """

    bitrate: int = 128
    reconnect_delay_max: int = 5
    disable_video: bool = True

    def get_before_options(self, source: str, *, user_agent: str) -> str:
        opts = ["-hide_banner"]
        if _is_remote(source):
            opts += [
                "-reconnect 1",
                "-reconnect_streamed 1",
                f"-reconnect_delay_max {self.reconnect_delay_max}",
                f"-user_agent {shlex.quote(user_agent)}",
            ]
        return " ".join(opts)

    def get_options(self) -> str:
        return "-vn" if self.disable_video else ""


def _is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _tool_name(binary: str) -> str:
    return Path(binary).name or binary


def _tail(text: str) -> str:
    text = text.strip()
    return text[-STDERR_TAIL_CHARS:]


class TrackedOpusAudio(discord.FFmpegOpusAudio):
    """FFmpegOpusAudio that remembers how ffmpeg exited on its own.

    discord.py kills and forgets the process in ``cleanup``, so the exit
    status of a natural end of stream is captured when ``read`` hits EOF.
    Runs on the voice client's audio thread.
    """

    def __init__(self, source: str, **kwargs) -> None:
        super().__init__(source, **kwargs)
        self.process: subprocess.Popen[bytes] = self._process
        self.returncode: int | None = None

    def read(self) -> bytes:
        packet = super().read()
        if not packet and self.returncode is None:
            try:
                self.returncode = self.process.wait(timeout=EXIT_WAIT_SECONDS)
            except subprocess.TimeoutExpired:
                logger.debug(LogTemplates.PIPELINE_TRANSCODE_EXIT_PENDING, self.process.pid)
        return packet


class SubprocessPipelineHandle(PipelineHandle):
    """Owns the fetch process, the ffmpeg audio source and any temp file."""

    def __init__(
        self,
        *,
        guild_id: int,
        kill_grace_seconds: float,
        temp_path: Path | None = None,
        transcode_tool: str = "ffmpeg",
    ) -> None:
        self.guild_id = guild_id
        self.temp_path = temp_path
        self.fetch_process: asyncio.subprocess.Process | None = None
        self.audio: TrackedOpusAudio | None = None
        self._transcode_tool = transcode_tool
        self._kill_grace_seconds = kill_grace_seconds
        self._stopped = False

    @property
    def source(self) -> TrackedOpusAudio:
        if self.audio is None:
            raise RuntimeError("Pipeline has no audio source attached")
        return self.audio

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def error(self) -> TranscodeFailed | None:
        if self._stopped or self.audio is None:
            return None

        code = self.audio.returncode
        if code is None or code == 0:
            return None
        return TranscodeFailed(
            ErrorMessages.TRANSCODE_NONZERO_EXIT.format(tool=self._transcode_tool, code=code)
        )

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True

        await self._terminate(self.fetch_process)

        audio, self.audio = self.audio, None
        if audio is not None:
            # cleanup() kills ffmpeg and may block while it is reaped.
            await asyncio.to_thread(audio.cleanup)

        if self.temp_path is not None:
            try:
                self.temp_path.unlink(missing_ok=True)
                logger.debug(LogTemplates.PIPELINE_TEMPFILE_REMOVED, self.temp_path)
            except OSError as exc:
                logger.debug(LogTemplates.PIPELINE_TEMPFILE_CLEANUP_ERROR, self.temp_path, exc)

        logger.debug(LogTemplates.PIPELINE_STOPPED, self.guild_id)

    async def _terminate(self, process: asyncio.subprocess.Process | None) -> None:
        if process is None or process.returncode is not None:
            return

        try:
            process.terminate()
        except ProcessLookupError:
            return
        except OSError as exc:
            logger.debug(LogTemplates.PIPELINE_PROCESS_CLEANUP_ERROR, process.pid, exc)

        try:
            await asyncio.wait_for(process.wait(), timeout=self._kill_grace_seconds)
        except TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                return
            except OSError as exc:
                logger.debug(LogTemplates.PIPELINE_PROCESS_CLEANUP_ERROR, process.pid, exc)
                return
            await process.wait()


class SubprocessMediaPipeline(MediaPipeline):
    def __init__(
        self,
        settings: PipelineSettings | None = None,
        transcode_config: TranscodeConfig | None = None,
    ) -> None:
        self._settings = settings or PipelineSettings()
        self._transcode = transcode_config or TranscodeConfig()

    @property
    def strategy(self) -> str:
        return self._settings.strategy

    async def start(self, track: Track, *, guild_id: int) -> SubprocessPipelineHandle:
        handle = SubprocessPipelineHandle(
            guild_id=guild_id,
            kill_grace_seconds=self._settings.kill_grace_seconds,
            temp_path=self._make_temp_path(guild_id) if self.strategy == "download" else None,
            transcode_tool=_tool_name(self._settings.ffmpeg_binary),
        )

        try:
            logger.info(
                LogTemplates.PIPELINE_FETCH_STARTED,
                track.locator,
                _tool_name(self._settings.ytdlp_binary),
                self.strategy,
                guild_id,
            )
            if handle.temp_path is not None:
                source = await self._download(track, handle, handle.temp_path)
            else:
                source = await self._resolve_direct_url(track, handle)
            logger.debug(LogTemplates.PIPELINE_FETCH_RESOLVED, source, guild_id)

            self._open_transcoder(handle, source)
        except BaseException:
            logger.debug(LogTemplates.PIPELINE_START_ABORTED, guild_id)
            await handle.stop()
            raise

        return handle

    def _make_temp_path(self, guild_id: int) -> Path:
        stamp = int(time.time() * 1000)
        return self._settings.temp_dir / f"{guild_id}-{stamp}{TEMP_FILE_SUFFIX}"

    # ── Fetch stage ────────────────────────────────────────────────────

    def _fetch_args(self) -> list[str]:
        return [
            self._settings.ytdlp_binary,
            "--no-playlist",
            "-f", self._settings.ytdlp_format,
        ]

    async def _spawn_fetch(
        self, args: list[str], handle: SubprocessPipelineHandle
    ) -> asyncio.subprocess.Process:
        """Spawn yt-dlp and record it on ``handle`` even if the caller is cancelled."""
        tool = _tool_name(self._settings.ytdlp_binary)
        spawn = asyncio.ensure_future(
            asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        )

        try:
            process = await asyncio.shield(spawn)
        except FileNotFoundError as exc:
            raise ToolMissing(tool) from exc
        except OSError as exc:
            raise FetchFailed(str(exc)) from exc
        except asyncio.CancelledError:
            try:
                handle.fetch_process = await spawn
            except OSError as exc:
                logger.debug(LogTemplates.PIPELINE_SPAWN_ABANDONED, tool, exc)
            raise

        handle.fetch_process = process
        return process

    async def _run_fetch(
        self, args: list[str], handle: SubprocessPipelineHandle
    ) -> tuple[str, str]:
        tool = _tool_name(self._settings.ytdlp_binary)
        process = await self._spawn_fetch(args, handle)

        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode(errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode(errors="replace") if stderr_bytes else ""

        for line in stderr.splitlines():
            if line.strip():
                logger.debug(LogTemplates.PIPELINE_FETCH_STDERR, tool, line.rstrip())

        if process.returncode != 0:
            raise FetchFailed(
                ErrorMessages.FETCH_NONZERO_EXIT.format(
                    tool=tool, code=process.returncode, stderr=_tail(stderr)
                ),
                diagnostics=stderr,
            )
        return stdout, stderr

    async def _resolve_direct_url(self, track: Track, handle: SubprocessPipelineHandle) -> str:
        args = [*self._fetch_args(), "-g", track.locator]
        stdout, stderr = await self._run_fetch(args, handle)

        lines = [line.strip() for line in stdout.splitlines() if line.strip()]
        if not lines:
            raise FetchFailed(
                ErrorMessages.FETCH_EMPTY_URL.format(tool=_tool_name(self._settings.ytdlp_binary)),
                diagnostics=stderr,
            )
        # Separate audio/video formats print one URL each; the last is the audio one.
        return lines[-1]

    async def _download(
        self, track: Track, handle: SubprocessPipelineHandle, path: Path
    ) -> str:
        args = [*self._fetch_args(), "--no-part", "-o", str(path), track.locator]
        _, stderr = await self._run_fetch(args, handle)

        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        if size == 0:
            raise FetchFailed(
                ErrorMessages.FETCH_EMPTY_FILE.format(
                    tool=_tool_name(self._settings.ytdlp_binary), path=path
                ),
                diagnostics=stderr,
            )
        return str(path)

    # ── Transcode stage ────────────────────────────────────────────────

    def _open_transcoder(self, handle: SubprocessPipelineHandle, source: str) -> None:
        binary = self._settings.ffmpeg_binary
        tool = _tool_name(binary)

        try:
            audio = TrackedOpusAudio(
                source,
                executable=binary,
                bitrate=self._transcode.bitrate,
                before_options=self._transcode.get_before_options(
                    source, user_agent=self._settings.user_agent
                ),
                options=self._transcode.get_options(),
            )
        except (discord.ClientException, OSError) as exc:
            # discord.py reports a missing executable as a ClientException.
            if shutil.which(binary) is None:
                raise ToolMissing(tool) from exc
            raise TranscodeFailed(
                ErrorMessages.TRANSCODE_SPAWN_FAILED.format(tool=tool, error=exc)
            ) from exc

        handle.audio = audio
        logger.info(LogTemplates.PIPELINE_TRANSCODE_STARTED, audio.process.pid, handle.guild_id)
