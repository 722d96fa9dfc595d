"""URI templates: RFC 6570-style compile, expand and match.

Templates are compiled once into an immutable ``CompiledTemplate`` that
is safe to share across threads and tasks.
"""

from waypoint.uri.compiler import compile_template, is_template_like
from waypoint.uri.parts import Expression, Literal, Operator, VarSpec
from waypoint.uri.template import CompiledTemplate

__all__ = [
    "CompiledTemplate",
    "Expression",
    "Literal",
    "Operator",
    "VarSpec",
    "compile_template",
    "is_template_like",
]
