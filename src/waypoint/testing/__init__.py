"""Test utilities for waypoint sessions.

In-memory stand-ins for the two things a session talks to: a response
stream and an ASGI connection::

    from waypoint.testing import MemoryResponseStream, ASGIConnection
"""

from waypoint.testing.asgi import ASGIConnection
from waypoint.testing.stream import MemoryResponseStream

__all__ = [
    "ASGIConnection",
    "MemoryResponseStream",
]
