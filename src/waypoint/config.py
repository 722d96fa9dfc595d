"""Engine and transport configuration.

Frozen dataclasses: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TemplateLimits:
    """Upper bounds enforced when compiling a URI template.

    Exceeding one raises ``TemplateLimitError`` at compile time. ``match()``
    treats a URI longer than ``max_template_length`` as a non-match instead
    of raising::

        limits = TemplateLimits(max_expressions=500)
        compiled = compile_template(source, limits=limits)
    """

    max_template_length: int = 1_000_000
    max_variable_length: int = 1_000_000
    max_expressions: int = 100_000


DEFAULT_LIMITS = TemplateLimits()


@dataclass(frozen=True, slots=True)
class StreamConfig:
    """Server-push stream session configuration.

    All fields have sensible defaults. Override what you need::

        config = StreamConfig(max_message_size=64 * 1024)
    """

    # Handshake response
    status: int = 200
    headers: tuple[tuple[str, str], ...] = (
        ("content-type", "text/event-stream"),
        ("cache-control", "no-cache, no-transform"),
        ("connection", "keep-alive"),
        ("x-accel-buffering", "no"),  # Disable proxy buffering
    )

    # Query parameter that carries the session id on the POST endpoint
    session_param: str = "SessionID"

    # Inbound messages
    max_message_size: int = 4 * 1024 * 1024  # 4 MiB
    inbound_buffer: int = 64
