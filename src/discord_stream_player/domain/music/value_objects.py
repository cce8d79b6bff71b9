"""Value objects for the music domain."""

from __future__ import annotations

from enum import Enum


class PlaybackState(Enum):
    """Per-guild playback state with enforced transitions.

    State transitions:
    - IDLE -> LOADING (a track was dequeued and its pipeline is starting)
    - LOADING -> PLAYING (pipeline ready, sink consuming the stream)
    - LOADING -> IDLE (pipeline failed, or skip/stop/leave)
    - PLAYING -> IDLE (finished, sink error, skip/stop/leave)

    Auto-advance always passes through IDLE, after teardown.
    """

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"

    def can_transition_to(self, target: PlaybackState) -> bool:
        """Check if transition to target state is valid."""
        valid_transitions = {
            PlaybackState.IDLE: {PlaybackState.LOADING},
            PlaybackState.LOADING: {PlaybackState.PLAYING, PlaybackState.IDLE},
            PlaybackState.PLAYING: {PlaybackState.IDLE},
        }
        return target in valid_transitions.get(self, set())

    @property
    def is_active(self) -> bool:
        return self in {PlaybackState.LOADING, PlaybackState.PLAYING}

