#!/usr/bin/env python3
"""Entry point: configure logging, check the pipeline executables, run the bot."""

from __future__ import annotations

import json
import logging
import logging.config
import shutil
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from discord_stream_player.domain.shared.exceptions import ToolMissing
from discord_stream_player.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from discord_stream_player.config.settings import PipelineSettings, Settings

_LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"

logger = logging.getLogger(__name__)


def _load_logging_config() -> dict | None:
    try:
        with open(_LOGGING_CONFIG_PATH) as f:
            return json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        return None


def setup_logging(log_level: str = "INFO") -> None:
    """Apply logging_config.json, or a plain format when it is unusable.

    ``log_level`` always wins over the root level in the file.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    config = _load_logging_config()

    if config is not None:
        try:
            logging.config.dictConfig(config)
        except ValueError:
            config = None

    if config is None:
        logging.basicConfig(
            level=level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.warning(LogTemplates.LOGGING_CONFIG_FALLBACK, _LOGGING_CONFIG_PATH)

    logging.getLogger().setLevel(level)


def check_pipeline_tools(pipeline: PipelineSettings) -> list[ToolMissing]:
    """Report the fetch/transcode executables that are not on PATH.

    Missing tools do not stop startup; every track fails with the same
    ``ToolMissing`` until the executable is installed.
    """
    missing = []
    for binary in (pipeline.ytdlp_binary, pipeline.ffmpeg_binary):
        found = shutil.which(binary)
        if found is None:
            error = ToolMissing(Path(binary).name or binary)
            logger.warning(LogTemplates.BOT_TOOL_MISSING, error.message)
            missing.append(error)
        else:
            logger.debug(LogTemplates.BOT_TOOL_FOUND, binary, found)
    return missing


def _announce(settings: Settings) -> None:
    logger.info(
        LogTemplates.BOT_STARTING,
        settings.pipeline.strategy,
        settings.health.host,
        settings.health.port,
    )


def main() -> int:
    from discord_stream_player.config.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)

    token_value = settings.discord.token.get_secret_value()
    if not token_value:
        logger.error(ErrorMessages.DISCORD_TOKEN_REQUIRED)
        return 1

    _announce(settings)
    check_pipeline_tools(settings.pipeline)

    from discord_stream_player.config.container import create_container
    from discord_stream_player.infrastructure.discord.bot import create_bot

    bot = create_bot(create_container(settings), settings)

    try:
        logger.info(LogTemplates.BOT_STARTING_RUN)
        bot.run_with_graceful_shutdown(token_value)
    except KeyboardInterrupt:
        logger.info(LogTemplates.BOT_KEYBOARD_INTERRUPT)
    except Exception as e:
        logger.exception(LogTemplates.BOT_FATAL_ERROR, e)
        return 1
    else:
        logger.info(LogTemplates.BOT_STOPPED)
    return 0


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
