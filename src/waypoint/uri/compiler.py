"""Template compiler: template string -> CompiledTemplate.

A single left-to-right scan with ``str.find`` keeps compilation linear in
the template length, even for tens of thousands of expressions or very
long variable names.

Examples::

    "/users/{id}"       -> [Literal("/users/"), Expression(SIMPLE, (VarSpec("id"),))]
    "{/list*}"          -> [Expression(PATH, (VarSpec("list", explode=True),))]
    "/search{?q,limit}" -> [Literal("/search"), Expression(QUERY, (q, limit))]
    "{var:3}"           -> [Expression(SIMPLE, (VarSpec("var", prefix=3),))]
"""

import re

from waypoint.config import DEFAULT_LIMITS, TemplateLimits
from waypoint.errors import TemplateLimitError, TemplateSyntaxError
from waypoint.uri.parts import Expression, Literal, Operator, Segment, VarSpec
from waypoint.uri.template import CompiledTemplate

# A brace pair wrapping at least one non-brace, non-whitespace character.
# The class excludes "{" so every scan stops at the next opening brace.
_TEMPLATE_LIKE = re.compile(r"\{[^{}\s]+\}")

# RFC 6570 caps prefix lengths at 9999.
_MAX_PREFIX_DIGITS = 4


def is_template_like(value: object) -> bool:
    """Return True if *value* contains at least one non-empty expression.

    ``"{}"`` and ``"{ }"`` do not count. Never compiles and never raises,
    so it is safe on arbitrary or malformed input.
    """
    if not isinstance(value, str):
        return False
    return _TEMPLATE_LIKE.search(value) is not None


def compile_template(template: str, *, limits: TemplateLimits = DEFAULT_LIMITS) -> CompiledTemplate:
    """Compile *template* into an immutable, reusable ``CompiledTemplate``.

    Raises ``TemplateSyntaxError`` when a ``{`` has no closing ``}``.
    Raises ``TemplateLimitError`` when *limits* are exceeded.
    """
    if len(template) > limits.max_template_length:
        msg = (
            f"Template exceeds maximum length of {limits.max_template_length} "
            f"characters (got {len(template)})"
        )
        raise TemplateLimitError(msg)

    segments: list[Segment] = []
    names: list[str] = []
    expression_count = 0
    pos = 0
    end_of_template = len(template)

    while pos < end_of_template:
        start = template.find("{", pos)
        if start == -1:
            segments.append(Literal(template[pos:]))
            break
        if start > pos:
            segments.append(Literal(template[pos:start]))

        close = template.find("}", start + 1)
        if close == -1:
            raise TemplateSyntaxError(
                "Unclosed template expression", template=template, position=start
            )

        expression_count += 1
        if expression_count > limits.max_expressions:
            msg = f"Template contains too many expressions (max {limits.max_expressions})"
            raise TemplateLimitError(msg)

        expression = parse_expression(template[start + 1 : close], limits=limits)
        segments.append(expression)
        names.extend(expression.names)
        pos = close + 1

    return CompiledTemplate(
        source=template,
        segments=tuple(segments),
        variable_names=tuple(names),
        limits=limits,
    )


def parse_expression(body: str, *, limits: TemplateLimits = DEFAULT_LIMITS) -> Expression:
    """Parse the text between ``{`` and ``}``.

    Empty tokens (``{}``, ``{,}``, ``{ }``) contribute no variable.
    A leading character that is not an operator stays part of the name.
    """
    operator = Operator.from_body(body)
    if operator is not Operator.SIMPLE:
        body = body[1:]

    varspecs: list[VarSpec] = []
    for token in body.split(","):
        spec = _parse_varspec(token)
        if spec is None:
            continue
        if len(spec.name) > limits.max_variable_length:
            msg = (
                f"Variable name exceeds maximum length of {limits.max_variable_length} "
                f"characters (got {len(spec.name)})"
            )
            raise TemplateLimitError(msg)
        varspecs.append(spec)

    return Expression(operator=operator, varspecs=tuple(varspecs))


def _parse_varspec(token: str) -> VarSpec | None:
    """Parse ``name``, ``name*`` or ``name:N``; None for an empty token."""
    token = token.strip(" \t")
    if token.endswith("*"):
        name = token[:-1].rstrip(" \t")
        return VarSpec(name=name, explode=True) if name else None

    name, sep, digits = token.rpartition(":")
    if (
        sep
        and name
        and 0 < len(digits) <= _MAX_PREFIX_DIGITS
        and digits.isascii()
        and digits.isdigit()
    ):
        return VarSpec(name=name, prefix=int(digits))

    return VarSpec(name=token) if token else None
