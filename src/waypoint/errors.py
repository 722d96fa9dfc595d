"""Waypoint exception hierarchy.

Shared by the URI template engine and the streaming transport so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class WaypointError(Exception):
    """Base for all waypoint-specific errors."""


# ---------------------------------------------------------------------------
# URI templates
# ---------------------------------------------------------------------------


class TemplateError(WaypointError):
    """Base for errors raised while compiling a URI template.

    Never raised by ``expand()`` or ``match()``.
    """


class TemplateSyntaxError(TemplateError):
    """The template string is malformed.

    ``position`` is the index of the offending ``{`` in ``template``.
    """

    def __init__(self, message: str, *, template: str = "", position: int | None = None) -> None:
        super().__init__(message)
        self.template = template
        self.position = position

    def __str__(self) -> str:
        message = super().__str__()
        if self.position is not None:
            return f"{message} (at position {self.position})"
        return message


class TemplateLimitError(TemplateError):
    """The template exceeds a configured ``TemplateLimits`` bound."""


# ---------------------------------------------------------------------------
# Streaming sessions
# ---------------------------------------------------------------------------


class SessionError(WaypointError):
    """Base for stream session errors."""


class SessionStateError(SessionError):
    """An operation was attempted in a state that does not allow it.

    Raised for a second ``start()``, or ``send()`` before the handshake
    or after the stream closed. The session is left untouched.
    """

    def __init__(self, operation: str, state: object, *, session_id: str = "") -> None:
        state_name = getattr(state, "value", state)
        detail = f"Cannot {operation} session in state {state_name!r}"
        if session_id:
            detail = f"{detail} (session {session_id})"
        super().__init__(detail)
        self.operation = operation
        self.state = state
        self.session_id = session_id


class TransportError(SessionError):
    """The underlying response stream failed.

    The session transitions to ``closed`` before this is raised.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


@dataclass(frozen=True, slots=True)
class InvalidMessageError(SessionError):
    """An inbound POST body could not be accepted.

    Maps directly to an HTTP status for the POST handler.
    """

    detail: str
    status: int = 400

    def __str__(self) -> str:
        return f"{self.status}: {self.detail}"
