"""Server-push stream session.

One ``StreamSession`` owns one long-lived ``text/event-stream`` response.
It allocates a session id, performs the endpoint handshake that tells the
client where to POST follow-up messages, frames outgoing messages, and
tracks teardown through a single explicit state machine::

    PENDING --start()--> STARTED --close / peer gone / write failure--> CLOSED
       \\__________________ close / peer gone ___________________________/

Illegal transitions (a second ``start()``, ``send()`` before the handshake
or after close) raise ``SessionStateError`` instead of being tolerated.

Concurrency:
    ``start``, ``send`` and ``close`` serialize on an ``anyio.Lock``, so
    writes reach the stream in call order. The state check and the call to
    ``write`` happen with no await in between; once ``CLOSED`` is visible
    no further write is started. A peer disconnect reported while a write
    is in flight flips the state immediately; that write either completes
    or fails as ``TransportError``.
"""

import dataclasses
import json as json_module
import logging
import uuid
from collections.abc import Callable
from enum import Enum
from typing import Any

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream

from waypoint.config import StreamConfig
from waypoint.errors import InvalidMessageError, SessionStateError, TransportError
from waypoint.realtime.events import endpoint_frame, message_frame
from waypoint.realtime.stream import ResponseStream

logger = logging.getLogger("waypoint.transport")


class SessionState(Enum):
    PENDING = "pending"
    STARTED = "started"
    CLOSED = "closed"


def new_session_id() -> str:
    """Opaque, URL-safe session token."""
    return uuid.uuid4().hex


def augment_endpoint(endpoint: str, session_id: str, *, param: str = "SessionID") -> str:
    """Append the session id to *endpoint* as the last query parameter.

    The fragment (everything after the first ``#``) is set aside and
    re-appended unchanged. Existing query parameters are kept byte-for-byte.
    The path is made absolute, so an empty endpoint becomes ``/``::

        augment_endpoint("/messages?key=value#s2", "X")
        # "/messages?key=value&SessionID=X#s2"
    """
    location, hash_sign, fragment = endpoint.partition("#")
    path, question, query = location.partition("?")
    if not path.startswith("/"):
        path = "/" + path
    pair = f"{param}={session_id}"
    if question and query:
        query = f"{query}&{pair}"
    else:
        query = pair
    return f"{path}?{query}{hash_sign}{fragment}"


def serialize_message(message: Any) -> str:
    """Serialize an outbound message for a ``data:`` line.

    ``str``/``bytes`` are taken as already serialized; dataclasses,
    mappings and sequences become compact JSON.
    """
    if isinstance(message, str):
        return message
    if isinstance(message, bytes | bytearray):
        return bytes(message).decode("utf-8")
    if dataclasses.is_dataclass(message) and not isinstance(message, type):
        message = dataclasses.asdict(message)
    return json_module.dumps(message, separators=(",", ":"), default=str)


def decode_post_body(body: bytes, content_type: str | None, *, max_size: int) -> Any:
    """Validate and decode an inbound POST body.

    Raises ``InvalidMessageError`` for a wrong content type, an oversize
    body, undecodable text, malformed JSON, or a JSON scalar.
    """
    media_type, params = _parse_content_type(content_type or "")
    if media_type != "application/json":
        raise InvalidMessageError(f"Unsupported content-type: {media_type or '(none)'}")
    if len(body) > max_size:
        raise InvalidMessageError(f"Message exceeds maximum size of {max_size} bytes")

    charset = params.get("charset", "utf-8")
    try:
        text = body.decode(charset)
    except (LookupError, UnicodeDecodeError) as exc:
        raise InvalidMessageError(f"Cannot decode body as {charset}: {exc}") from exc

    try:
        message = json_module.loads(text)
    except json_module.JSONDecodeError as exc:
        raise InvalidMessageError(f"Invalid JSON: {exc.msg}") from exc

    if not isinstance(message, dict | list):
        raise InvalidMessageError("Message must be a JSON object or array")
    return message


def _parse_content_type(value: str) -> tuple[str, dict[str, str]]:
    media_type, *raw_params = value.split(";")
    params: dict[str, str] = {}
    for raw in raw_params:
        key, sep, param_value = raw.partition("=")
        if sep:
            params[key.strip().lower()] = param_value.strip().strip('"')
    return media_type.strip().lower(), params


class StreamSession:
    """One client's server-push stream.

    Usage::

        session = StreamSession("/messages", stream)
        await session.start()          # event: endpoint / data: /messages?SessionID=...
        await session.send({"jsonrpc": "2.0", "method": "ping"})
        async for message in session.incoming:
            ...
        await session.close()

    ``on_close`` fires exactly once when the session reaches ``CLOSED``;
    ``on_error`` fires before it when the close was caused by a failure.
    """

    __slots__ = (
        "_backpressured",
        "_config",
        "_endpoint",
        "_inbound_receive",
        "_inbound_send",
        "_lock",
        "_session_id",
        "_state",
        "_stream",
        "_unsubscribe",
        "on_close",
        "on_error",
    )

    def __init__(
        self,
        endpoint: str,
        stream: ResponseStream,
        *,
        config: StreamConfig | None = None,
        session_id: str | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._stream = stream
        self._config = config or StreamConfig()
        self._session_id = session_id or new_session_id()
        self._state = SessionState.PENDING
        self._lock = anyio.Lock()
        self._unsubscribe: Callable[[], None] | None = None
        self._backpressured = False
        self._inbound_send, self._inbound_receive = anyio.create_memory_object_stream[Any](
            self._config.inbound_buffer
        )
        self.on_close: Callable[[], None] | None = None
        self.on_error: Callable[[Exception], None] | None = None

    def __repr__(self) -> str:
        return f"StreamSession(id={self._session_id!r}, state={self._state.value!r})"

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def backpressured(self) -> bool:
        """True while the last write was buffered over the stream's high-water mark."""
        return self._backpressured

    @property
    def incoming(self) -> MemoryObjectReceiveStream[Any]:
        """Inbound messages delivered via ``handle_message``; ends on close."""
        return self._inbound_receive

    # -- Outbound -----------------------------------------------------------

    async def start(self) -> None:
        """Send headers and the endpoint handshake. Only valid once, from ``PENDING``."""
        async with self._lock:
            self._require(SessionState.PENDING, "start")
            url = augment_endpoint(
                self._endpoint, self._session_id, param=self._config.session_param
            )
            try:
                await self._stream.start_response(self._config.status, self._config.headers)
                self._unsubscribe = self._stream.on_close(self._on_stream_closed)
                accepted = await self._stream.write(endpoint_frame(url))
            except Exception as exc:
                raise self._fail("handshake", exc) from exc

            if self._state is SessionState.CLOSED:
                msg = f"Stream closed during handshake (session {self._session_id})"
                raise TransportError(msg)
            self._state = SessionState.STARTED
            self._backpressured = not accepted

        logger.info("Session %s started; endpoint %s", self._session_id, url)

    async def send(self, message: Any) -> bool:
        """Frame and write one message. Only valid from ``STARTED``.

        Returns False when the stream signalled backpressure; the message
        was still handed to the stream. Await ``drain()`` before sending
        more if that matters to the caller.
        """
        async with self._lock:
            self._require(SessionState.STARTED, "send")
            frame = message_frame(serialize_message(message))
            try:
                accepted = await self._stream.write(frame)
            except Exception as exc:
                raise self._fail("send", exc) from exc
            self._backpressured = not accepted

        if not accepted:
            logger.debug("Session %s stream over high-water mark", self._session_id)
        return accepted

    async def drain(self) -> None:
        """Wait until the stream accepts writes again."""
        await self._stream.drain()
        self._backpressured = False

    async def close(self) -> None:
        """Shut the session down from any state. Idempotent."""
        async with self._lock:
            if self._state is SessionState.CLOSED:
                return
            self._mark_closed(None)
            await self._stream.end()

    # -- Inbound ------------------------------------------------------------

    async def handle_message(self, message: Any) -> None:
        """Deliver a decoded inbound payload to ``incoming`` without waiting.

        Raises ``InvalidMessageError`` (status 503) when ``inbound_buffer``
        messages are already waiting to be read.
        """
        self._require(SessionState.STARTED, "deliver a message to")
        try:
            self._inbound_send.send_nowait(message)
        except anyio.WouldBlock as exc:
            logger.warning("Session %s inbound queue full; message rejected", self._session_id)
            msg = f"Inbound queue full ({self._config.inbound_buffer} messages pending)"
            raise InvalidMessageError(msg, status=503) from exc
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as exc:
            raise SessionStateError(
                "deliver a message to", self._state, session_id=self._session_id
            ) from exc

    async def handle_post_message(
        self,
        body: bytes,
        *,
        content_type: str | None = "application/json",
    ) -> None:
        """Validate, decode and deliver the body of a client POST.

        Raises ``InvalidMessageError`` (also reported to ``on_error``) when
        the body cannot be accepted.
        """
        self._require(SessionState.STARTED, "deliver a message to")
        try:
            message = decode_post_body(
                body, content_type, max_size=self._config.max_message_size
            )
        except InvalidMessageError as error:
            if self.on_error is not None:
                self._notify(self.on_error, error)
            raise
        await self.handle_message(message)

    # -- Internals ----------------------------------------------------------

    def _require(self, expected: SessionState, operation: str) -> None:
        if self._state is not expected:
            raise SessionStateError(operation, self._state, session_id=self._session_id)

    def _on_stream_closed(self, error: BaseException | None) -> None:
        if error is None:
            self._mark_closed(None)
            return
        if not isinstance(error, TransportError):
            error = TransportError(f"Stream failed: {error}", cause=error)
        self._mark_closed(error)

    def _fail(self, operation: str, exc: Exception) -> TransportError:
        msg = f"Stream {operation} failed for session {self._session_id}: {exc}"
        error = TransportError(msg, cause=exc)
        logger.warning("Session %s %s failed: %s", self._session_id, operation, exc)
        self._mark_closed(error)
        return error

    def _mark_closed(self, error: TransportError | None) -> None:
        if self._state is SessionState.CLOSED:
            return
        previous = self._state
        self._state = SessionState.CLOSED
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._inbound_send.close()
        logger.info("Session %s closed (was %s)", self._session_id, previous.value)

        if error is not None and self.on_error is not None:
            self._notify(self.on_error, error)
        if self.on_close is not None:
            self._notify(self.on_close)

    def _notify(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("Session %s callback %r failed", self._session_id, callback)
