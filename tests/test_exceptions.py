"""
Unit Tests for Domain Exceptions

Tests error codes, messages and the attributes callers rely on.
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


class TestDomainErrors:
    """Tests for the domain exception hierarchy."""

    def test_domain_error_defaults_code_to_class_name(self):
        error = DomainError("Something went wrong")

        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.code == "DomainError"

    def test_validation_error_records_field(self):
        error = ValidationError("bad", field="guild_id")

        assert error.code == "VALIDATION_ERROR"
        assert error.field == "guild_id"

    def test_resolution_failed_default_message(self):
        error = ResolutionFailed("lofi beats")

        assert error.query == "lofi beats"
        assert "lofi beats" in error.message
        assert error.code == "RESOLUTION_FAILED"

    def test_resolution_failed_custom_message(self):
        assert ResolutionFailed("q", "custom").message == "custom"

    def test_pipeline_errors_share_base(self):
        """Should let the controller catch every pipeline failure as PipelineError."""
        for error in (ToolMissing("yt-dlp"), FetchFailed("x"), TranscodeFailed("y")):
            assert isinstance(error, PipelineError)
            assert isinstance(error, DomainError)

    def test_tool_missing_names_tool(self):
        error = ToolMissing("ffmpeg")

        assert error.tool == "ffmpeg"
        assert error.code == "TOOL_MISSING"
        assert "ffmpeg" in str(error)

    def test_fetch_failed_keeps_diagnostics(self):
        error = FetchFailed("yt-dlp exited with code 1", diagnostics="ERROR: Video unavailable")

        assert error.code == "FETCH_FAILED"
        assert error.diagnostics == "ERROR: Video unavailable"

    def test_transcode_failed_code(self):
        assert TranscodeFailed("ffmpeg exited with code 1").code == "TRANSCODE_FAILED"

    def test_connection_timeout(self):
        error = ConnectionTimeout(55, 15.0)

        assert error.channel_id == 55
        assert error.timeout == 15.0
        assert "15.0" in error.message

    def test_voice_connection_error(self):
        error = VoiceConnectionError(55, "refused")

        assert error.channel_id == 55
        assert error.message == "refused"

    def test_session_errors(self):
        assert NotConnected(9).guild_id == 9
        assert NotConnected(9).code == "NOT_CONNECTED"
        assert NothingPlaying(9).code == "NOTHING_PLAYING"
        assert NotInVoiceChannel().code == "NOT_IN_VOICE"
