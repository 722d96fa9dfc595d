"""CompiledTemplate: the immutable product of ``compile_template()``.

Compiled once, then reused for any number of ``expand()`` and ``match()``
calls. Both are pure functions of the compiled form and their input; the
only derived state is the matcher, built lazily on first ``match()`` and
cached for the lifetime of the template.
"""

from dataclasses import dataclass, field
from functools import cached_property

from waypoint.config import DEFAULT_LIMITS, TemplateLimits
from waypoint.uri.expander import Bindings, expand_segments
from waypoint.uri.matcher import MatchResult, TemplateMatcher
from waypoint.uri.parts import Segment


@dataclass(frozen=True)
class CompiledTemplate:
    """A parsed URI template.

    Usage::

        tpl = compile_template("/users/{id}{?fields*}")
        tpl.variable_names                  # ("id", "fields")
        tpl.expand({"id": "42", "fields": ["name", "email"]})
        # "/users/42?fields=name,email"
        tpl.match("/users/42?fields=name,email")
        # {"id": "42", "fields": ["name", "email"]}
    """

    source: str
    segments: tuple[Segment, ...]
    variable_names: tuple[str, ...]
    limits: TemplateLimits = field(default=DEFAULT_LIMITS, repr=False, compare=False)

    def __str__(self) -> str:
        return self.source

    def expand(self, bindings: Bindings | None = None) -> str:
        """Render the template against *bindings* (name -> str or list of str)."""
        return expand_segments(self.segments, bindings or {})

    def match(self, uri: str) -> MatchResult | None:
        """Extract variables from *uri*, or None if it does not match.

        The whole URI must match. Never raises.
        """
        return self.matcher.match(uri)

    @cached_property
    def matcher(self) -> TemplateMatcher:
        return TemplateMatcher.build(self.segments, max_length=self.limits.max_template_length)
