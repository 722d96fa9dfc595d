"""Template expansion: bindings -> URI string.

Expressions render independently except for one piece of cross-expression
state: whether a query component has already been opened. That flag is
threaded explicitly through the render loop so a second ``{?...}``
expression continues the query with ``&`` instead of opening a new one::

    "{?a}{?b}{?c}" + {a: 1, b: 2, c: 3} -> "?a=1&b=2&c=3"
"""

from collections.abc import Iterable, Mapping
from typing import Any, TypeAlias

from waypoint.uri.encoding import encode_value
from waypoint.uri.parts import Expression, Literal, Operator, Segment, VarSpec

Bindings: TypeAlias = Mapping[str, Any]


def expand_segments(segments: Iterable[Segment], bindings: Bindings) -> str:
    """Render *segments* in order against *bindings*."""
    out: list[str] = []
    query_open = False
    for segment in segments:
        if isinstance(segment, Literal):
            out.append(segment.text)
            continue
        rendered, query_open = expand_expression(segment, bindings, query_open)
        if rendered:
            out.append(rendered)
    return "".join(out)


def expand_expression(
    expression: Expression,
    bindings: Bindings,
    query_open: bool,
) -> tuple[str, bool]:
    """Render one expression.

    Returns the rendered text and the updated query-open flag. An expression
    whose variables are all absent or empty renders ``""`` with no prefix.
    """
    operator = expression.operator
    rendered: list[str] = []

    for spec in expression.varspecs:
        values = resolve(bindings, spec)
        if not values:
            continue
        joined = ",".join(
            encode_value(value, allow_reserved=operator.allow_reserved) for value in values
        )
        rendered.append(f"{spec.name}={joined}" if operator.named else joined)

    if not rendered:
        return "", query_open

    if operator.named:
        lead = "&" if query_open or operator is Operator.CONTINUATION else "?"
        return lead + "&".join(rendered), True

    return operator.prefix + ",".join(rendered), query_open


def resolve(bindings: Bindings, spec: VarSpec) -> list[str]:
    """Look up *spec* in *bindings* as a list of raw (unencoded) strings.

    Missing, ``None``, ``""`` and sequences with no non-empty item all
    resolve to ``[]``.
    A prefix modifier truncates scalar values only.
    """
    value = bindings.get(spec.name)
    if value is None:
        return []
    if isinstance(value, str):
        if not value:
            return []
        return [value[: spec.prefix] if spec.prefix is not None else value]
    if isinstance(value, bytes | bytearray):
        text = bytes(value).decode("utf-8", errors="replace")
        return [text] if text else []
    if isinstance(value, Iterable):
        items = [item if isinstance(item, str) else str(item) for item in value]
        return items if any(items) else []
    text = str(value)
    return [text[: spec.prefix] if spec.prefix is not None else text]
