"""Live session lookup for the POST side of the transport.

The stream handler registers each session on start; the POST handler
resolves the ``SessionID`` query parameter against it. Sessions remove
themselves when they close.

Free-threading safety:
    - The session map is guarded by a ``threading.Lock``
    - Lookups return the session object; callers never see the dict
"""

import threading

from waypoint.realtime.session import StreamSession


class SessionRegistry:
    """Thread-safe map of session id to live ``StreamSession``."""

    __slots__ = ("_lock", "_sessions")

    def __init__(self) -> None:
        self._sessions: dict[str, StreamSession] = {}
        self._lock = threading.Lock()

    def add(self, session: StreamSession) -> None:
        """Register *session*. Replacing a live id is a programming error."""
        with self._lock:
            if session.session_id in self._sessions:
                msg = f"Session {session.session_id!r} is already registered"
                raise ValueError(msg)
            self._sessions[session.session_id] = session

    def get(self, session_id: str) -> StreamSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions
