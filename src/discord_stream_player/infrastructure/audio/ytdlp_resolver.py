"""TrackResolver implementation using the yt-dlp library for lookups."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Final, cast

from yt_dlp import YoutubeDL

from discord_stream_player.application.interfaces.track_resolver import TrackResolver
from discord_stream_player.config.settings import PipelineSettings
from discord_stream_player.domain.music.entities import Track
from discord_stream_player.domain.shared.exceptions import ResolutionFailed
from discord_stream_player.domain.shared.messages import ErrorMessages, LogTemplates
from discord_stream_player.infrastructure.audio.models import YtDlpOpts, YtDlpTrackInfo
from discord_stream_player.utils.reply import truncate

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH: Final[int] = 500

URL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^https?://(www\.)?(youtube\.com|youtu\.be)/", re.IGNORECASE
)


class YtDlpTrackResolver(TrackResolver):
    def __init__(self, settings: PipelineSettings | None = None) -> None:
        self._settings = settings or PipelineSettings()
        self._base_opts = YtDlpOpts(format=self._settings.ytdlp_format)

    def _get_opts(self, **overrides: Any) -> YtDlpOpts:
        if overrides:
            return self._base_opts.model_copy(update=overrides)
        return self._base_opts

    def _extract_info_sync(self, url: str) -> YtDlpTrackInfo | None:
        try:
            with YoutubeDL(params=cast(Any, self._get_opts().model_dump())) as ydl:
                data = ydl.extract_info(url, download=False)
                return YtDlpTrackInfo.model_validate(dict(data)) if isinstance(data, dict) else None
        except Exception as exc:
            logger.warning(LogTemplates.RESOLVER_METADATA_FAILED, url, exc)
            return None

    def _search_sync(self, query: str, limit: int = 1) -> list[YtDlpTrackInfo]:
        try:
            search_query = f"ytsearch{limit}:{query}"
            opts = self._get_opts(extract_flat="in_playlist")
            with YoutubeDL(params=cast(Any, opts.model_dump())) as ydl:
                data = ydl.extract_info(search_query, download=False)

                if not isinstance(data, dict):
                    return []

                entries = data.get("entries") or []
                return [
                    YtDlpTrackInfo.model_validate(dict(e)) for e in entries if isinstance(e, dict)
                ]
        except Exception:
            logger.exception(LogTemplates.RESOLVER_SEARCH_FAILED, query)
            return []

    async def resolve(self, query: str, requester: str) -> Track:
        query = query.strip()

        if self.is_url(query):
            # Metadata is best-effort: a recognised URL always yields a track.
            info = await asyncio.to_thread(self._extract_info_sync, query)
            title = info.title if info is not None and info.title else query
            track = Track(
                locator=query,
                title=truncate(title, MAX_TITLE_LENGTH),
                requested_by=requester,
                duration_seconds=info.duration if info is not None else None,
            )
            logger.info(LogTemplates.RESOLVER_RESOLVED, query, track.title)
            return track

        results = await asyncio.to_thread(self._search_sync, query, 1)
        if not results:
            raise ResolutionFailed(query)

        top = results[0]
        locator = top.locator
        if not locator:
            raise ResolutionFailed(
                query, ErrorMessages.TRACK_HAS_NO_LOCATOR.format(query=query)
            )

        track = Track(
            locator=locator,
            title=truncate(top.title or query, MAX_TITLE_LENGTH),
            requested_by=requester,
            duration_seconds=top.duration,
        )
        logger.info(LogTemplates.RESOLVER_RESOLVED, query, track.title)
        return track

    def is_url(self, query: str) -> bool:
        return URL_PATTERN.match(query.strip()) is not None
