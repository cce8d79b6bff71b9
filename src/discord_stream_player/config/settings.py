"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.messages import ErrorMessages
from ..domain.shared.types import (
    CommandPrefixStr,
    ConnectTimeoutS,
    FailureCap,
    KillGraceS,
    NonEmptyStr,
    PortInt,
)
from ..domain.shared.validators import validate_discord_snowflake

DEFAULT_YTDLP_FORMAT = (
    "bestaudio[ext=m4a]/bestaudio[acodec^=mp4a]/bestaudio[ext=mp4]/bestaudio/best"
)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)


class DiscordSettings(BaseModel):
    """Discord bot configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    token: SecretStr = Field(
        default=SecretStr(""), validation_alias=AliasChoices("token", "bot_token", "discord_token")
    )
    command_prefix: CommandPrefixStr = Field(
        default="!",
        validation_alias=AliasChoices("command_prefix", "prefix"),
    )
    test_guild_ids: tuple[int, ...] = Field(
        default_factory=tuple, validation_alias=AliasChoices("test_guild_ids", "test_guilds")
    )
    sync_on_startup: bool = False

    @field_validator("test_guild_ids", mode="before")
    @classmethod
    def validate_snowflake_ids(cls, v: tuple[int, ...] | list[int]) -> tuple[int, ...]:
        """Validate Discord snowflake IDs and convert lists to tuples."""
        # Convert list to tuple if needed (from JSON array in env vars)
        if isinstance(v, list):
            v = tuple(v)
        for snowflake in v:
            validate_discord_snowflake(snowflake)
        return v


class PipelineSettings(BaseModel):
    """Fetch/transcode pipeline configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    strategy: Literal["stream", "download"] = "stream"
    ytdlp_binary: NonEmptyStr = Field(
        default="yt-dlp", validation_alias=AliasChoices("ytdlp_binary", "ytdlp_path")
    )
    ffmpeg_binary: NonEmptyStr = Field(
        default="ffmpeg", validation_alias=AliasChoices("ffmpeg_binary", "ffmpeg_path")
    )
    ytdlp_format: NonEmptyStr = DEFAULT_YTDLP_FORMAT
    user_agent: NonEmptyStr = DEFAULT_USER_AGENT
    temp_dir: Path = Field(default_factory=lambda: Path("/tmp"))
    kill_grace_seconds: KillGraceS = 1.0
    max_consecutive_failures: FailureCap = 5

    @field_validator("temp_dir", mode="before")
    @classmethod
    def coerce_temp_dir(cls, v: str | Path) -> Path:
        """Accept plain strings from the environment."""
        return Path(v)


class VoiceSettings(BaseModel):
    """Voice connection configuration."""

    model_config = SettingsConfigDict(frozen=True)

    connect_timeout: ConnectTimeoutS = 15.0


class HealthSettings(BaseModel):
    """Health-check HTTP listener configuration."""

    model_config = SettingsConfigDict(frozen=True)

    enabled: bool = True
    host: NonEmptyStr = "0.0.0.0"
    port: PortInt = 3000


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DISCORD__TOKEN, DISCORD__COMMAND_PREFIX, etc. (nested with ``__``)
    - DISCORD_TOKEN (flat alias, checked at startup)
    - PIPELINE__STRATEGY, PIPELINE__FFMPEG_BINARY, ...
    - PORT (flat alias for HEALTH__PORT)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False
    log_level: str = "INFO"

    discord_token: SecretStr | None = None
    port: PortInt | None = None

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    voice: VoiceSettings = Field(default_factory=VoiceSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels)
            )
        return v_upper

    @model_validator(mode="after")
    def apply_flat_aliases(self) -> Settings:
        """Fold the flat DISCORD_TOKEN and PORT variables into their nested groups."""
        if self.discord_token is not None and not self.discord.token.get_secret_value():
            self.discord = self.discord.model_copy(update={"token": self.discord_token})
        if self.port is not None:
            self.health = self.health.model_copy(update={"port": self.port})
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
