"""Base exception classes for domain-level errors."""

from __future__ import annotations

from discord_stream_player.domain.shared.messages import ErrorMessages


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ValidationError(DomainError):
    """Raised when domain validation fails."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


# === Resolution ===


class ResolutionFailed(DomainError):
    """Raised when no playable track can be found for a query."""

    def __init__(self, query: str, message: str | None = None) -> None:
        msg = message or ErrorMessages.TRACK_NOT_FOUND.format(query=query)
        super().__init__(msg, code="RESOLUTION_FAILED")
        self.query = query


# === Pipeline ===


class PipelineError(DomainError):
    """Base for failures of the fetch/transcode pipeline.

    The playback controller absorbs these: the queue advances and the
    failure is reported as a notification instead of being raised.
    """

    def __init__(self, message: str, code: str | None = None, diagnostics: str = "") -> None:
        super().__init__(message, code=code)
        self.diagnostics = diagnostics


class ToolMissing(PipelineError):
    """Raised when a required external executable cannot be found."""

    def __init__(self, tool: str) -> None:
        super().__init__(ErrorMessages.TOOL_MISSING.format(tool=tool), code="TOOL_MISSING")
        self.tool = tool


class FetchFailed(PipelineError):
    """Raised when the fetch stage exits non-zero or yields nothing usable."""

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message, code="FETCH_FAILED", diagnostics=diagnostics)


class TranscodeFailed(PipelineError):
    """Raised when the transcode stage cannot be started or exits non-zero."""

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message, code="TRANSCODE_FAILED", diagnostics=diagnostics)


# === Voice / Session ===


class ConnectionTimeout(DomainError):
    """Raised when the voice transport does not become ready in time."""

    def __init__(self, channel_id: int, timeout: float) -> None:
        msg = ErrorMessages.CONNECTION_TIMEOUT.format(channel_id=channel_id, timeout=timeout)
        super().__init__(msg, code="CONNECTION_TIMEOUT")
        self.channel_id = channel_id
        self.timeout = timeout


class VoiceConnectionError(DomainError):
    """Raised when the voice transport refuses the connection outright."""

    def __init__(self, channel_id: int, message: str) -> None:
        super().__init__(message, code="VOICE_CONNECTION_ERROR")
        self.channel_id = channel_id


class NotConnected(DomainError):
    """Raised when a control action targets a guild with no session."""

    def __init__(self, guild_id: int) -> None:
        super().__init__(ErrorMessages.NOT_CONNECTED.format(guild_id=guild_id), code="NOT_CONNECTED")
        self.guild_id = guild_id


class NothingPlaying(DomainError):
    """Raised when skip/stop is issued while the session is idle."""

    def __init__(self, guild_id: int) -> None:
        super().__init__(
            ErrorMessages.NOTHING_PLAYING.format(guild_id=guild_id), code="NOTHING_PLAYING"
        )
        self.guild_id = guild_id


class NotInVoiceChannel(DomainError):
    """Raised when the invoking user is not in a voice channel."""

    def __init__(self) -> None:
        super().__init__(ErrorMessages.NOT_IN_VOICE, code="NOT_IN_VOICE")
