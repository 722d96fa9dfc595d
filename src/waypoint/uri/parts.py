"""Template segments: Operator, VarSpec, Literal and Expression.

Frozen dataclasses produced by the compiler and shared read-only by the
expander and the matcher.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias


class Operator(Enum):
    """Expression operator, keyed by its leading character."""

    SIMPLE = ""
    RESERVED = "+"
    FRAGMENT = "#"
    LABEL = "."
    PATH = "/"
    QUERY = "?"
    CONTINUATION = "&"

    @classmethod
    def from_body(cls, body: str) -> "Operator":
        """Return the operator that *body* starts with (``SIMPLE`` if none)."""
        if body:
            try:
                return cls(body[0])
            except ValueError:
                pass
        return cls.SIMPLE

    @property
    def prefix(self) -> str:
        """Character emitted once before a non-empty expansion."""
        if self is Operator.RESERVED:
            return ""
        return self.value

    @property
    def named(self) -> bool:
        """Whether values render as ``name=value`` pairs."""
        return self in (Operator.QUERY, Operator.CONTINUATION)

    @property
    def allow_reserved(self) -> bool:
        """Whether RFC 3986 reserved characters pass through unencoded."""
        return self in (Operator.RESERVED, Operator.FRAGMENT)


@dataclass(frozen=True, slots=True)
class VarSpec:
    """A single variable reference inside an expression.

    ``{list*}``  -> VarSpec("list", explode=True)
    ``{var:3}``  -> VarSpec("var", prefix=3)
    """

    name: str
    explode: bool = False
    prefix: int | None = None


@dataclass(frozen=True, slots=True)
class Literal:
    """Text copied verbatim on expansion and matched exactly."""

    text: str


@dataclass(frozen=True, slots=True)
class Expression:
    """A ``{...}`` unit: one operator applied to zero or more variables."""

    operator: Operator
    varspecs: tuple[VarSpec, ...] = ()

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.varspecs)


Segment: TypeAlias = Literal | Expression
