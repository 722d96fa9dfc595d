"""ASGI handlers for the two halves of the stream transport.

``handle_session_stream`` serves the long-lived GET: it opens a
``StreamSession`` over the connection, registers it, and keeps it alive
until the client disconnects or the application's ``on_session``
coroutine returns. ``handle_session_post`` serves the companion POST
endpoint advertised in the handshake and routes the body to the session
named by its ``SessionID`` query parameter.

Both are plain ASGI callables once the keyword arguments are bound::

    registry = SessionRegistry()

    async def app(scope, receive, send):
        if scope["method"] == "GET":
            await handle_session_stream(
                scope, receive, send,
                registry=registry, endpoint="/messages", on_session=serve,
            )
        else:
            await handle_session_post(scope, receive, send, registry=registry)
"""

import logging
from collections.abc import Awaitable, Callable

import anyio

from waypoint._internal.asgi import HTTPScope, Receive, Scope, Send, read_body, send_text
from waypoint.config import StreamConfig
from waypoint.errors import InvalidMessageError, SessionStateError, TransportError
from waypoint.realtime.registry import SessionRegistry
from waypoint.realtime.session import SessionState, StreamSession
from waypoint.realtime.stream import ASGIResponseStream

logger = logging.getLogger("waypoint.transport")

SessionHandler = Callable[[StreamSession], Awaitable[None]]

_NOT_ESTABLISHED = "SSE connection not established"


async def handle_session_stream(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    registry: SessionRegistry,
    endpoint: str,
    config: StreamConfig | None = None,
    on_session: SessionHandler | None = None,
) -> None:
    """Serve one server-push stream over an ASGI connection.

    1. Creates a session over the connection and registers it.
    2. Sends headers and the endpoint handshake.
    3. Runs ``on_session(session)`` alongside a disconnect monitor.
       Whichever finishes first ends the stream.
    4. Closes the session and removes it from *registry*.
    """
    stream = ASGIResponseStream(send, receive)
    session = StreamSession(endpoint, stream, config=config)
    registry.add(session)
    try:
        try:
            await session.start()
        except TransportError as exc:
            logger.warning("Session %s failed to start: %s", session.session_id, exc)
            return

        async with anyio.create_task_group() as tg:

            async def monitor_disconnect() -> None:
                await stream.watch_disconnect()
                tg.cancel_scope.cancel()

            tg.start_soon(monitor_disconnect)
            if on_session is not None:
                try:
                    await on_session(session)
                except (TransportError, SessionStateError) as exc:
                    logger.debug("Session %s ended by transport: %s", session.session_id, exc)
                tg.cancel_scope.cancel()
    finally:
        registry.discard(session.session_id)
        with anyio.CancelScope(shield=True):
            await session.close()


async def handle_session_post(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    registry: SessionRegistry,
    config: StreamConfig | None = None,
) -> None:
    """Deliver one client POST to the session it names.

    Responds 400 for a missing session id or an invalid body, 404 for an
    unknown session, 500 when the session's stream is not live, and 202
    once the message has been handed to the session.
    """
    config = config or StreamConfig()
    request = HTTPScope.from_scope(scope)

    session_id = request.query_param(config.session_param)
    if not session_id:
        await send_text(send, 400, f"Missing {config.session_param} query parameter")
        return

    session = registry.get(session_id)
    if session is None:
        await send_text(send, 404, "Session not found")
        return
    if session.state is not SessionState.STARTED:
        await send_text(send, 500, _NOT_ESTABLISHED)
        return

    body = await read_body(receive, limit=config.max_message_size)
    try:
        await session.handle_post_message(body, content_type=request.header("content-type"))
    except InvalidMessageError as exc:
        await send_text(send, exc.status, exc.detail)
        return
    except SessionStateError:
        await send_text(send, 500, _NOT_ESTABLISHED)
        return

    await send_text(send, 202, "Accepted")
