"""
Unit Tests for SessionRegistry

Tests for:
- Lazy session creation with a sink factory
- Sink subscription to the registry's event handler
- Lookup, removal and iteration
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeSink
from discord_stream_player.application.services.session_registry import SessionRegistry


class TestSessionRegistry:
    """Unit tests for SessionRegistry."""

    def test_get_or_create_builds_session_once(self):
        """Should call the sink factory only for the first lookup."""
        registry = SessionRegistry()
        factory = MagicMock(side_effect=FakeSink)

        first = registry.get_or_create(1, factory)
        second = registry.get_or_create(1, factory)

        assert first is second
        assert factory.call_count == 1
        assert first.guild_id == 1

    def test_sink_subscribed_once(self):
        """Should subscribe each new sink to the event handler exactly once."""
        registry = SessionRegistry()
        registry.set_event_handler(AsyncMock())

        session = registry.get_or_create(1, FakeSink)
        registry.get_or_create(1, FakeSink)

        assert session.sink.subscribe_calls == 1

    @pytest.mark.asyncio
    async def test_sink_events_carry_guild_id(self):
        """Should bind the guild id in front of the sink's (token, error) arguments."""
        registry = SessionRegistry()
        handler = AsyncMock()
        registry.set_event_handler(handler)

        session = registry.get_or_create(42, FakeSink)
        await session.sink.handler(7, None)

        handler.assert_awaited_once_with(42, 7, None)

    def test_no_handler_means_no_subscription(self):
        """Should leave the sink unsubscribed when no handler is set."""
        registry = SessionRegistry()

        session = registry.get_or_create(1, FakeSink)

        assert session.sink.subscribe_calls == 0

    def test_get_missing_returns_none(self):
        assert SessionRegistry().get(1) is None

    def test_remove(self):
        """Should remove and return the session."""
        registry = SessionRegistry()
        session = registry.get_or_create(1, FakeSink)

        assert registry.remove(1) is session
        assert registry.remove(1) is None
        assert 1 not in registry

    def test_container_protocol(self):
        """Should support len, membership, iteration and guild_ids."""
        registry = SessionRegistry()
        a = registry.get_or_create(1, FakeSink)
        b = registry.get_or_create(2, FakeSink)

        assert len(registry) == 2
        assert 1 in registry
        assert 3 not in registry
        assert list(registry) == [a, b]
        assert registry.guild_ids() == [1, 2]
