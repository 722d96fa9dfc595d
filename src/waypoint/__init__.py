"""Waypoint: URI templates and server-push stream sessions.

Compile an RFC 6570-style template once, then expand and match with it::

    from waypoint import compile_template

    template = compile_template("/users/{id}/posts{?page,limit}")
    template.expand({"id": 42, "page": 2})     # "/users/42/posts?page=2"
    template.match("/users/42/posts?page=2&limit=10")
    # {"id": "42", "page": "2", "limit": "10"}

Stream messages to a client over Server-Sent Events::

    from waypoint import StreamSession

    session = StreamSession("/messages", stream)
    await session.start()
    await session.send({"jsonrpc": "2.0", "method": "ping"})
"""

__version__ = "0.1.0"
__all__ = [
    "CompiledTemplate",
    "InvalidMessageError",
    "SessionError",
    "SessionRegistry",
    "SessionState",
    "SessionStateError",
    "StreamConfig",
    "StreamSession",
    "TemplateError",
    "TemplateLimitError",
    "TemplateLimits",
    "TemplateSyntaxError",
    "TransportError",
    "WaypointError",
    "augment_endpoint",
    "compile_template",
    "is_template_like",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import waypoint`` fast; the transport pulls in anyio only when
    it is actually used.
    """
    if name in ("CompiledTemplate", "compile_template", "is_template_like"):
        from waypoint import uri as _uri

        return getattr(_uri, name)

    if name in ("SessionState", "StreamSession", "augment_endpoint"):
        from waypoint.realtime import session as _session

        return getattr(_session, name)

    if name == "SessionRegistry":
        from waypoint.realtime.registry import SessionRegistry

        return SessionRegistry

    if name in ("StreamConfig", "TemplateLimits"):
        from waypoint import config as _config

        return getattr(_config, name)

    if name in (
        "InvalidMessageError",
        "SessionError",
        "SessionStateError",
        "TemplateError",
        "TemplateLimitError",
        "TemplateSyntaxError",
        "TransportError",
        "WaypointError",
    ):
        from waypoint import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
