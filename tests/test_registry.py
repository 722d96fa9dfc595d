"""Tests for waypoint.realtime.registry — SessionRegistry."""

import threading

import pytest

from waypoint.realtime.registry import SessionRegistry
from waypoint.realtime.session import StreamSession
from waypoint.testing import MemoryResponseStream


def _session(session_id: str) -> StreamSession:
    return StreamSession("/messages", MemoryResponseStream(), session_id=session_id)


class TestSessionRegistry:
    async def test_add_and_get(self) -> None:
        registry = SessionRegistry()
        session = _session("a")
        registry.add(session)
        assert registry.get("a") is session
        assert "a" in registry
        assert len(registry) == 1

    async def test_get_unknown(self) -> None:
        assert SessionRegistry().get("missing") is None

    async def test_duplicate_id_rejected(self) -> None:
        registry = SessionRegistry()
        registry.add(_session("a"))
        with pytest.raises(ValueError, match="already registered"):
            registry.add(_session("a"))

    async def test_discard(self) -> None:
        registry = SessionRegistry()
        registry.add(_session("a"))
        registry.discard("a")
        registry.discard("a")
        assert "a" not in registry
        assert len(registry) == 0

    async def test_concurrent_adds(self) -> None:
        registry = SessionRegistry()
        sessions = [_session(f"s{i}") for i in range(200)]

        def add_range(start: int) -> None:
            for session in sessions[start::4]:
                registry.add(session)

        threads = [threading.Thread(target=add_range, args=(i,)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(registry) == 200
