"""Keyed store of one GuildSession per guild."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterator
from functools import partial
from typing import TYPE_CHECKING

from discord_stream_player.domain.music.entities import GuildSession
from discord_stream_player.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ..interfaces.playback_sink import PlaybackSink

logger = logging.getLogger(__name__)

SessionEventHandler = Callable[[int, int, Exception | None], Awaitable[None]]
"""``(guild_id, token, error)`` handler bound to every new session's sink."""


class SessionRegistry:
    """Owns the guild -> session mapping.

    Only touched from the event loop thread, so the mapping itself needs no
    lock; per-session state is guarded by ``GuildSession.lock``.
    """

    def __init__(self) -> None:
        self._sessions: dict[int, GuildSession] = {}
        self._event_handler: SessionEventHandler | None = None

    def set_event_handler(self, handler: SessionEventHandler) -> None:
        """Set the handler that new sinks are subscribed to."""
        self._event_handler = handler

    def get_or_create(
        self, guild_id: int, sink_factory: Callable[[], PlaybackSink]
    ) -> GuildSession:
        session = self._sessions.get(guild_id)
        if session is not None:
            return session

        sink = sink_factory()
        session = GuildSession(guild_id=guild_id, sink=sink)
        if self._event_handler is not None:
            sink.subscribe(partial(self._event_handler, guild_id))

        self._sessions[guild_id] = session
        logger.info(LogTemplates.SESSION_CREATED, guild_id)
        return session

    def get(self, guild_id: int) -> GuildSession | None:
        return self._sessions.get(guild_id)

    def remove(self, guild_id: int) -> GuildSession | None:
        session = self._sessions.pop(guild_id, None)
        if session is not None:
            logger.info(LogTemplates.SESSION_REMOVED, guild_id)
        return session

    def guild_ids(self) -> list[int]:
        return list(self._sessions)

    def __contains__(self, guild_id: object) -> bool:
        return guild_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[GuildSession]:
        return iter(list(self._sessions.values()))
