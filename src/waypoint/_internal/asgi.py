"""Typed ASGI definitions.

Raw ASGI callables plus a small typed view of the HTTP scope for the
session handlers. Users never see these.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from dataclasses import dataclass
from typing import Any, TypeAlias
from urllib.parse import parse_qs

# Raw ASGI callables
Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class HTTPScope:
    """Typed HTTP scope parsed from a raw ASGI scope dict."""

    method: str
    path: str
    query_string: bytes
    headers: tuple[tuple[bytes, bytes], ...]

    @classmethod
    def from_scope(cls, scope: Scope) -> "HTTPScope":
        """Parse raw ASGI scope into typed object."""
        return cls(
            method=scope.get("method", "GET"),
            path=scope.get("path", "/"),
            query_string=scope.get("query_string", b""),
            headers=tuple(scope.get("headers", ())),
        )

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), decoded as latin-1."""
        wanted = name.lower().encode("latin-1")
        for key, value in self.headers:
            if key.lower() == wanted:
                return value.decode("latin-1")
        return None

    def query_param(self, name: str) -> str | None:
        """First value of query parameter *name*, or None."""
        values = parse_qs(self.query_string.decode("latin-1"), keep_blank_values=True).get(name)
        if values:
            return values[0]
        return None


async def read_body(receive: Receive, *, limit: int | None = None) -> bytes:
    """Collect the full request body from ASGI ``http.request`` messages.

    Stops reading once *limit* is exceeded; callers compare the length
    against the limit to reject oversize bodies.
    """
    chunks: list[bytes] = []
    size = 0
    while True:
        message = await receive()
        if message.get("type") == "http.disconnect":
            break
        chunk = message.get("body", b"")
        if chunk:
            chunks.append(chunk)
            size += len(chunk)
            if limit is not None and size > limit:
                break
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


async def send_text(send: Send, status: int, body: str) -> None:
    """Send a complete ``text/plain`` response."""
    payload = body.encode("utf-8")
    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": [
                (b"content-type", b"text/plain; charset=utf-8"),
                (b"content-length", str(len(payload)).encode("latin-1")),
            ],
        }
    )
    await send({"type": "http.response.body", "body": payload})
