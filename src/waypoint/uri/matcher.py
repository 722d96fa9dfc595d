"""Template matching: URI -> variable bindings.

Each compiled template is translated once into an anchored regular
expression. Literal segments are matched exactly; every expression becomes
one capturing unit (one per variable for query expressions).

Backtracking safety:
    Expression captures use *possessive* character classes (``[^...]++``)
    that exclude the URI delimiters ``/ ? #`` plus the first character of
    whatever renders next. Because a capture stops exactly where its class
    ends, giving characters back could never produce a match, and the
    possessive form guarantees the engine never tries. The single exception
    is the last reserved/fragment expression followed by a literal or the
    end of input, which keeps an ordinary greedy ``.+`` so that
    ``{+path}/here`` can match ``/foo/bar/here``. With at most one
    backtracking quantifier in the pattern, matching stays near-linear
    even against adversarial input.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from waypoint.uri.parts import Expression, Literal, Operator, Segment, VarSpec

logger = logging.getLogger("waypoint.uri")

# Structural URI delimiters that a simple/label/path value is always
# percent-encoded away from.
_DELIMITERS = "/?#"

MatchResult = dict[str, str | list[str]]


@dataclass(frozen=True, slots=True)
class _Capture:
    """Variables bound from one capturing group, in declaration order."""

    varspecs: tuple[VarSpec, ...]


class TemplateMatcher:
    """Anchored matcher derived from a template's segments.

    Usage::

        matcher = TemplateMatcher.build(compiled.segments)
        matcher.match("/users/42")  # {"id": "42"} or None
    """

    __slots__ = ("_captures", "_max_length", "_pattern")

    def __init__(
        self,
        pattern: re.Pattern[str] | None,
        captures: tuple[_Capture, ...],
        *,
        max_length: int | None = None,
    ) -> None:
        self._pattern = pattern
        self._captures = captures
        self._max_length = max_length

    @property
    def pattern(self) -> str | None:
        """The generated regular expression source, for introspection."""
        return self._pattern.pattern if self._pattern is not None else None

    @classmethod
    def build(cls, segments: Sequence[Segment], *, max_length: int | None = None) -> "TemplateMatcher":
        """Translate *segments* into a compiled, anchored pattern.

        A pattern the regex engine refuses is logged and yields a matcher
        that never matches, so ``match()`` keeps its no-raise contract.
        """
        source, captures = build_pattern(segments)
        try:
            pattern = re.compile(source, re.DOTALL)
        except (re.error, RecursionError, OverflowError, MemoryError) as exc:
            logger.warning("URI template pattern could not be compiled: %s", exc)
            pattern = None
        return cls(pattern, captures, max_length=max_length)

    def match(self, uri: str) -> MatchResult | None:
        """Match the whole of *uri*; None when it does not match."""
        if self._pattern is None or not isinstance(uri, str):
            return None
        if self._max_length is not None and len(uri) > self._max_length:
            return None

        found = self._pattern.fullmatch(uri)
        if found is None:
            return None

        result: MatchResult = {}
        for capture, text in zip(self._captures, found.groups(), strict=True):
            _bind(capture.varspecs, text, result)
        return result


def build_pattern(segments: Sequence[Segment]) -> tuple[str, tuple[_Capture, ...]]:
    """Return the regex source for *segments* and the capture layout."""
    stops = _stop_characters(segments)
    greedy_index = _greedy_reserved_index(segments)

    parts: list[str] = []
    captures: list[_Capture] = []
    query_open = False

    for index, segment in enumerate(segments):
        if isinstance(segment, Literal):
            parts.append(re.escape(segment.text))
            continue
        if not segment.varspecs:
            continue

        operator = segment.operator
        if operator.named:
            for position, spec in enumerate(segment.varspecs):
                first = position == 0 and not query_open and operator is Operator.QUERY
                lead = "?" if first else "&"
                parts.append(re.escape(f"{lead}{spec.name}=") + "([^&#]++)")
                captures.append(_Capture((spec,)))
            query_open = True
            continue

        parts.append(re.escape(operator.prefix))
        parts.append(f"({_capture_unit(segment, stops[index], greedy=index == greedy_index)})")
        captures.append(_Capture(segment.varspecs))

    return "".join(parts), tuple(captures)


def _capture_unit(expression: Expression, stop: str, *, greedy: bool) -> str:
    """Character class (and quantifier) for one non-query expression."""
    if expression.operator.allow_reserved:
        if greedy:
            return ".+"
        return f"[^{_class_escape(stop)}]++" if stop else ".++"

    excluded = _DELIMITERS + stop
    specs = expression.varspecs
    if len(specs) == 1 and not specs[0].explode:
        excluded += ","
    return f"[^{_class_escape(excluded)}]++"


def _class_escape(chars: str) -> str:
    return "".join(re.escape(char) for char in dict.fromkeys(chars))


def _stop_characters(segments: Sequence[Segment]) -> list[str]:
    """For each segment, the characters that can begin whatever renders next.

    Computed in one backwards pass. Expressions that can never render
    (no variables) are transparent. An adjacent simple/reserved expression
    contributes nothing, since its first character is unknown.
    """
    stops = [""] * len(segments)
    following = ""
    for index in range(len(segments) - 1, -1, -1):
        stops[index] = following
        segment = segments[index]
        if isinstance(segment, Literal):
            if segment.text:
                following = segment.text[0]
        elif segment.varspecs:
            operator = segment.operator
            if operator.named:
                following = "?&"
            else:
                following = operator.prefix
    return stops


def _greedy_reserved_index(segments: Sequence[Segment]) -> int | None:
    """Index of the last reserved/fragment expression not followed by another expression."""
    for index in range(len(segments) - 1, -1, -1):
        segment = segments[index]
        if not isinstance(segment, Expression) or not segment.varspecs:
            continue
        if not segment.operator.allow_reserved:
            continue
        following = next(
            (
                nxt
                for nxt in segments[index + 1 :]
                if isinstance(nxt, Literal) or nxt.varspecs
            ),
            None,
        )
        if following is None or isinstance(following, Literal):
            return index
        return None
    return None


def _bind(varspecs: tuple[VarSpec, ...], text: str, result: MatchResult) -> None:
    """Decompose one captured string into its variables."""
    if len(varspecs) == 1:
        spec = varspecs[0]
        result[spec.name] = text.split(",") if spec.explode else text
        return

    pieces = text.split(",", len(varspecs) - 1)
    for spec, piece in zip(varspecs, pieces, strict=False):
        result[spec.name] = piece.split(",") if spec.explode else piece
