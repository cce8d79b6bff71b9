"""Utility functions for formatting Discord messages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from discord_stream_player.domain.music.value_objects import PlaybackState
from discord_stream_player.domain.shared.messages import DiscordUIMessages

if TYPE_CHECKING:
    from ..application.services.playback_models import QueueSnapshot

QUEUE_PREVIEW_LIMIT = 10


def truncate(text: str, max_length: int = 90) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def format_queue(snapshot: QueueSnapshot, limit: int = QUEUE_PREVIEW_LIMIT) -> str:
    """Render the queue as a plain-text listing.

    Shows the current (or loading) track, then up to ``limit`` upcoming
    entries as ``n. title (req: name)``.
    """
    lines: list[str] = []

    if snapshot.playing is not None:
        template = (
            DiscordUIMessages.QUEUE_NOW_PLAYING
            if snapshot.state is PlaybackState.PLAYING
            else DiscordUIMessages.QUEUE_LOADING
        )
        lines.append(template.format(title=truncate(snapshot.playing.title)))

    if not snapshot.upcoming:
        lines.append(DiscordUIMessages.QUEUE_EMPTY)
        return "\n".join(lines)

    for index, track in enumerate(snapshot.upcoming[:limit], start=1):
        lines.append(
            DiscordUIMessages.QUEUE_ENTRY.format(
                index=index, title=truncate(track.title), requested_by=track.requested_by
            )
        )

    remaining = len(snapshot.upcoming) - limit
    if remaining > 0:
        lines.append(DiscordUIMessages.QUEUE_MORE.format(count=remaining))

    return "\n".join(lines)
