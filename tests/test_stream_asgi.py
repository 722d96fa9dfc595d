"""Tests for waypoint.realtime.stream — ASGIResponseStream."""

from typing import Any

import anyio
import pytest

from waypoint.realtime.stream import ASGIResponseStream, ResponseStream
from waypoint.testing import ASGIConnection, MemoryResponseStream


class TestProtocol:
    async def test_asgi_stream_satisfies_protocol(self) -> None:
        conn = ASGIConnection()
        assert isinstance(ASGIResponseStream(conn.send, conn.receive), ResponseStream)

    async def test_memory_stream_satisfies_protocol(self) -> None:
        assert isinstance(MemoryResponseStream(), ResponseStream)


class TestASGIResponseStream:
    async def test_start_response_encodes_headers(self) -> None:
        conn = ASGIConnection()
        stream = ASGIResponseStream(conn.send, conn.receive)
        await stream.start_response(200, [("Content-Type", "text/event-stream")])
        assert conn.messages[0] == {
            "type": "http.response.start",
            "status": 200,
            "headers": [(b"content-type", b"text/event-stream")],
        }

    async def test_start_response_twice(self) -> None:
        conn = ASGIConnection()
        stream = ASGIResponseStream(conn.send, conn.receive)
        await stream.start_response(200, [])
        with pytest.raises(RuntimeError):
            await stream.start_response(200, [])

    async def test_write_sends_body_chunk(self) -> None:
        conn = ASGIConnection()
        stream = ASGIResponseStream(conn.send, conn.receive)
        await stream.start_response(200, [])
        assert await stream.write(b"data: x\n\n") is True
        assert conn.messages[-1] == {
            "type": "http.response.body",
            "body": b"data: x\n\n",
            "more_body": True,
        }

    async def test_end_finishes_response_once(self) -> None:
        conn = ASGIConnection()
        stream = ASGIResponseStream(conn.send, conn.receive)
        closed: list[BaseException | None] = []
        stream.on_close(closed.append)
        await stream.start_response(200, [])
        await stream.end()
        await stream.end()
        assert conn.finished
        assert sum(1 for m in conn.messages if m["type"] == "http.response.body") == 1
        assert closed == [None]

    async def test_write_after_end(self) -> None:
        conn = ASGIConnection()
        stream = ASGIResponseStream(conn.send, conn.receive)
        await stream.start_response(200, [])
        await stream.end()
        with pytest.raises(RuntimeError):
            await stream.write(b"late")

    async def test_send_failure_reported(self) -> None:
        async def broken_send(message: Any) -> None:
            if message["type"] == "http.response.body":
                raise OSError("peer gone")

        conn = ASGIConnection()
        stream = ASGIResponseStream(broken_send, conn.receive)
        errors: list[BaseException | None] = []
        stream.on_close(errors.append)
        await stream.start_response(200, [])
        with pytest.raises(OSError):
            await stream.write(b"x")
        assert len(errors) == 1
        assert isinstance(errors[0], OSError)
        assert stream.closed

    async def test_watch_disconnect(self) -> None:
        conn = ASGIConnection()
        stream = ASGIResponseStream(conn.send, conn.receive)
        closed: list[BaseException | None] = []
        stream.on_close(closed.append)

        async with anyio.create_task_group() as tg:
            tg.start_soon(stream.watch_disconnect)
            await anyio.sleep(0.01)
            conn.disconnect()

        assert closed == [None]
        assert stream.closed

    async def test_unsubscribe(self) -> None:
        conn = ASGIConnection()
        stream = ASGIResponseStream(conn.send, conn.receive)
        closed: list[BaseException | None] = []
        unsubscribe = stream.on_close(closed.append)
        unsubscribe()
        unsubscribe()
        await stream.end()
        assert closed == []

    async def test_drain_returns_immediately(self) -> None:
        conn = ASGIConnection()
        stream = ASGIResponseStream(conn.send, conn.receive)
        with anyio.fail_after(1):
            await stream.drain()
