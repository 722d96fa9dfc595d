"""Server-push stream sessions over Server-Sent Events.

A session advertises a per-session POST endpoint in its first frame,
then carries protocol messages as ``message`` events::

    from waypoint.realtime import StreamSession

    session = StreamSession("/messages", stream)
    await session.start()
    await session.send({"jsonrpc": "2.0", "method": "ping"})
"""

from waypoint.realtime.events import SSEEvent, endpoint_frame, message_frame, parse_frames
from waypoint.realtime.handler import handle_session_post, handle_session_stream
from waypoint.realtime.registry import SessionRegistry
from waypoint.realtime.session import (
    SessionState,
    StreamSession,
    augment_endpoint,
    decode_post_body,
    new_session_id,
    serialize_message,
)
from waypoint.realtime.stream import ASGIResponseStream, ResponseStream

__all__ = [
    "ASGIResponseStream",
    "ResponseStream",
    "SSEEvent",
    "SessionRegistry",
    "SessionState",
    "StreamSession",
    "augment_endpoint",
    "decode_post_body",
    "endpoint_frame",
    "handle_session_post",
    "handle_session_stream",
    "message_frame",
    "new_session_id",
    "parse_frames",
    "serialize_message",
]
