"""Tests for waypoint.uri.compiler — template parsing, limits, is_template_like."""

import pytest

from waypoint.config import TemplateLimits
from waypoint.errors import TemplateError, TemplateLimitError, TemplateSyntaxError
from waypoint.uri.compiler import compile_template, is_template_like, parse_expression
from waypoint.uri.parts import Expression, Literal, Operator, VarSpec


class TestCompileSegments:
    def test_plain_literal(self) -> None:
        tpl = compile_template("/static/path")
        assert tpl.segments == (Literal("/static/path"),)
        assert tpl.variable_names == ()

    def test_empty_template(self) -> None:
        tpl = compile_template("")
        assert tpl.segments == ()
        assert tpl.expand({}) == ""

    def test_simple_expression(self) -> None:
        tpl = compile_template("/users/{id}")
        assert tpl.segments == (
            Literal("/users/"),
            Expression(Operator.SIMPLE, (VarSpec("id"),)),
        )
        assert tpl.variable_names == ("id",)

    def test_trailing_literal(self) -> None:
        tpl = compile_template("/users/{id}/posts")
        assert tpl.segments[-1] == Literal("/posts")

    @pytest.mark.parametrize(
        ("template", "operator"),
        [
            ("{var}", Operator.SIMPLE),
            ("{+var}", Operator.RESERVED),
            ("{#var}", Operator.FRAGMENT),
            ("{.var}", Operator.LABEL),
            ("{/var}", Operator.PATH),
            ("{?var}", Operator.QUERY),
            ("{&var}", Operator.CONTINUATION),
        ],
    )
    def test_operators(self, template: str, operator: Operator) -> None:
        (expression,) = compile_template(template).segments
        assert isinstance(expression, Expression)
        assert expression.operator is operator
        assert expression.names == ("var",)

    def test_multiple_variables(self) -> None:
        tpl = compile_template("/search{?q,limit,offset}")
        assert tpl.variable_names == ("q", "limit", "offset")

    def test_variable_names_in_template_order(self) -> None:
        tpl = compile_template("{b}/{a}{?c}{&a}")
        assert tpl.variable_names == ("b", "a", "c", "a")

    def test_explode_modifier(self) -> None:
        (expression,) = compile_template("{/list*}").segments
        assert expression.varspecs == (VarSpec("list", explode=True),)

    def test_prefix_modifier(self) -> None:
        (expression,) = compile_template("{var:3}").segments
        assert expression.varspecs == (VarSpec("var", prefix=3),)

    def test_prefix_with_too_many_digits_is_part_of_name(self) -> None:
        (expression,) = compile_template("{var:12345}").segments
        assert expression.varspecs == (VarSpec("var:12345"),)

    def test_whitespace_around_names_is_stripped(self) -> None:
        (expression,) = compile_template("{ a , b }").segments
        assert expression.names == ("a", "b")

    def test_str_returns_source(self) -> None:
        assert str(compile_template("/a/{b}")) == "/a/{b}"

    def test_compiled_template_is_immutable(self) -> None:
        tpl = compile_template("/a/{b}")
        with pytest.raises(AttributeError):
            tpl.source = "/other"  # type: ignore[misc]


class TestEmptyExpressions:
    @pytest.mark.parametrize("template", ["{}", "{,}", "{ }", "x{}y", "{?}"])
    def test_empty_expression_compiles(self, template: str) -> None:
        tpl = compile_template(template)
        assert tpl.variable_names == ()

    def test_empty_expression_renders_nothing(self) -> None:
        assert compile_template("x{}y").expand({}) == "xy"

    def test_empty_tokens_skipped(self) -> None:
        expression = parse_expression("a,,b")
        assert expression.names == ("a", "b")


class TestSyntaxErrors:
    @pytest.mark.parametrize("template", ["{unclosed", "{a}{", "/users/{id", "{"])
    def test_unclosed_expression(self, template: str) -> None:
        with pytest.raises(TemplateSyntaxError):
            compile_template(template)

    def test_error_reports_position(self) -> None:
        with pytest.raises(TemplateSyntaxError) as exc_info:
            compile_template("/a/{b}/{c")
        assert exc_info.value.position == 7
        assert exc_info.value.template == "/a/{b}/{c"
        assert "position 7" in str(exc_info.value)

    def test_stray_closing_brace_is_literal(self) -> None:
        tpl = compile_template("a}b")
        assert tpl.segments == (Literal("a}b"),)

    def test_syntax_error_is_template_error(self) -> None:
        with pytest.raises(TemplateError):
            compile_template("{x")


class TestLimits:
    def test_template_too_long(self) -> None:
        limits = TemplateLimits(max_template_length=10)
        with pytest.raises(TemplateLimitError, match="maximum length"):
            compile_template("/" * 11, limits=limits)

    def test_template_at_limit(self) -> None:
        limits = TemplateLimits(max_template_length=10)
        compile_template("/" * 10, limits=limits)

    def test_too_many_expressions(self) -> None:
        limits = TemplateLimits(max_expressions=3)
        with pytest.raises(TemplateLimitError, match="too many expressions"):
            compile_template("{a}{b}{c}{d}", limits=limits)

    def test_variable_name_too_long(self) -> None:
        limits = TemplateLimits(max_variable_length=5)
        with pytest.raises(TemplateLimitError, match="Variable name"):
            compile_template("{abcdef}", limits=limits)

    def test_limits_are_kept_on_template(self) -> None:
        limits = TemplateLimits(max_template_length=50)
        assert compile_template("/a", limits=limits).limits is limits


class TestIsTemplateLike:
    @pytest.mark.parametrize(
        "value",
        ["{id}", "/users/{id}", "{?q}", "a{+path}b", "{a}{b}"],
    )
    def test_template_like(self, value: str) -> None:
        assert is_template_like(value) is True

    @pytest.mark.parametrize(
        "value",
        ["", "plain", "{}", "{ }", "{\t}", "{unclosed", "closed}", "{a b}"],
    )
    def test_not_template_like(self, value: str) -> None:
        assert is_template_like(value) is False

    @pytest.mark.parametrize("value", [None, 42, b"{id}", ["{id}"]])
    def test_non_string_input(self, value: object) -> None:
        assert is_template_like(value) is False

    def test_pathological_input_completes(self) -> None:
        assert is_template_like("{" * 100_000) is False
        assert is_template_like("{" * 50_000 + "a" * 50_000) is False
