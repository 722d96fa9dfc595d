"""Server-Sent Event frames.

``SSEEvent`` is a frozen dataclass the session encodes to the wire. The
two frames a stream session emits have fixed layouts::

    event: endpoint\\ndata: /messages?SessionID=<id>\\n\\n
    event: message\\ndata: {"jsonrpc":"2.0",...}\\n\\n
"""

import contextlib
import re
from dataclasses import dataclass

ENDPOINT_EVENT = "endpoint"
MESSAGE_EVENT = "message"

# SSE recognises CRLF, CR and LF as line terminators.
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True, slots=True)
class SSEEvent:
    """A single Server-Sent Event."""

    data: str
    event: str | None = None
    id: str | None = None
    retry: int | None = None

    def encode(self) -> str:
        """Serialize to SSE wire format.

        Multi-line data becomes one ``data:`` line per line, so a payload
        can never terminate the frame early.
        """
        lines: list[str] = []
        if self.event:
            lines.append(f"event: {self.event}")
        if self.id:
            lines.append(f"id: {self.id}")
        if self.retry is not None:
            lines.append(f"retry: {self.retry}")
        lines.extend(f"data: {line}" for line in _LINE_BREAK.split(self.data))
        return "\n".join(lines) + "\n\n"

    def encode_bytes(self) -> bytes:
        return self.encode().encode("utf-8")


def endpoint_frame(url: str) -> bytes:
    """Handshake frame telling the client where to POST messages."""
    return SSEEvent(data=url, event=ENDPOINT_EVENT).encode_bytes()


def message_frame(payload: str) -> bytes:
    """Frame carrying one serialized protocol message."""
    return SSEEvent(data=payload, event=MESSAGE_EVENT).encode_bytes()


def parse_frames(raw: str) -> list[SSEEvent]:
    """Parse SSE text into events.

    Blocks are separated by blank lines; comment lines (``:``) are skipped.
    Used by clients and tests to read back what a session wrote.
    """
    events: list[SSEEvent] = []
    for block in raw.split("\n\n"):
        if not block.strip():
            continue

        event_type: str | None = None
        event_id: str | None = None
        retry: int | None = None
        data_lines: list[str] = []

        for line in block.split("\n"):
            if line.startswith(":"):
                continue
            field_name, _, value = line.partition(":")
            value = value.removeprefix(" ")
            if field_name == "event":
                event_type = value
            elif field_name == "data":
                data_lines.append(value)
            elif field_name == "id":
                event_id = value
            elif field_name == "retry":
                with contextlib.suppress(ValueError):
                    retry = int(value)

        if data_lines:
            events.append(
                SSEEvent(data="\n".join(data_lines), event=event_type, id=event_id, retry=retry)
            )
    return events
