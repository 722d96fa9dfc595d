"""Writable response streams consumed by ``StreamSession``.

``ResponseStream`` is the collaborator contract: set status and headers,
write bytes with an accepted/backpressure signal, wait for drain, register
for close/error, and end. ``ASGIResponseStream`` implements it over an
ASGI ``send``/``receive`` pair.
"""

import contextlib
import logging
from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

from waypoint._internal.asgi import Receive, Send

logger = logging.getLogger("waypoint.transport")

CloseCallback = Callable[[BaseException | None], None]


@runtime_checkable
class ResponseStream(Protocol):
    """A long-lived, writable HTTP response."""

    async def start_response(self, status: int, headers: Sequence[tuple[str, str]]) -> None:
        """Send the status line and headers."""
        ...

    async def write(self, data: bytes) -> bool:
        """Write one chunk.

        Returns False when the chunk was buffered but the stream is over its
        high-water mark; the caller should ``drain()`` before writing more.
        Raises on a failed write.
        """
        ...

    async def drain(self) -> None:
        """Wait until the stream accepts writes again."""
        ...

    def on_close(self, callback: CloseCallback) -> Callable[[], None]:
        """Register *callback* for close (``None``) or error (the exception).

        Returns a function that unregisters it.
        """
        ...

    async def end(self) -> None:
        """Finish the response. Safe to call more than once."""
        ...


class ASGIResponseStream:
    """``ResponseStream`` over an ASGI HTTP connection.

    Each ``write`` is one ``http.response.body`` message with
    ``more_body=True``. ASGI ``send`` applies flow control by not returning
    until the server has taken the chunk, so writes are always accepted.
    ``watch_disconnect()`` must run alongside the session to notice the
    client going away.
    """

    __slots__ = ("_callbacks", "_closed", "_ended", "_receive", "_send", "_started")

    def __init__(self, send: Send, receive: Receive) -> None:
        self._send = send
        self._receive = receive
        self._callbacks: list[CloseCallback] = []
        self._started = False
        self._ended = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def start_response(self, status: int, headers: Sequence[tuple[str, str]]) -> None:
        if self._started:
            msg = "Response already started."
            raise RuntimeError(msg)
        self._started = True
        await self._send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": [
                    (name.lower().encode("latin-1"), value.encode("latin-1"))
                    for name, value in headers
                ],
            }
        )

    async def write(self, data: bytes) -> bool:
        if self._ended or self._closed:
            msg = "Response already closed."
            raise RuntimeError(msg)
        try:
            await self._send({"type": "http.response.body", "body": data, "more_body": True})
        except Exception as exc:
            self._fire(exc)
            raise
        return True

    async def drain(self) -> None:
        return None

    def on_close(self, callback: CloseCallback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._callbacks.remove(callback)

        return unsubscribe

    async def watch_disconnect(self) -> None:
        """Return once the client disconnects, notifying close listeners."""
        while not self._closed:
            message = await self._receive()
            if message.get("type") == "http.disconnect":
                logger.debug("Client disconnected")
                self._fire(None)
                return

    async def end(self) -> None:
        if self._ended:
            return
        self._ended = True
        if self._started and not self._closed:
            # The peer may already be gone; there is nobody left to tell.
            with contextlib.suppress(OSError, RuntimeError):
                await self._send({"type": "http.response.body", "body": b"", "more_body": False})
        self._fire(None)

    def _fire(self, error: BaseException | None) -> None:
        if self._closed:
            return
        self._closed = True
        for callback in list(self._callbacks):
            callback(error)
        self._callbacks.clear()
