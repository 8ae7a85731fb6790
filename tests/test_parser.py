"""
Unit tests for the rumtpl parser.
"""

import pytest
from rumtpl import (
    tokenize, parse, parse_source, print_ast, TokenType,
    ParseError, TemplateSyntaxError, UnbalancedBlock,
)
from rumtpl.ast import (
    Template, Text, Output, RawOutput, ExpressionStatement, If, For,
    Literal, Identifier, ListLiteral, UnaryOp, BinaryOp, MethodCall,
    TupleIndex, IndexAccess, Call,
)


def parse_expr(source):
    """Parse a single output tag and return its expression."""
    template = parse_source(f"<%= {source} %>")
    assert len(template.nodes) == 1
    return template.nodes[0].expression


class TestTemplateNodes:
    """Test top-level node structure."""

    def test_empty_template(self):
        template = parse_source("")
        assert isinstance(template, Template)
        assert template.nodes == []

    def test_text_only(self):
        template = parse_source("<h1>True<h1>")
        assert len(template.nodes) == 1
        assert isinstance(template.nodes[0], Text)
        assert template.nodes[0].text == "<h1>True<h1>"

    def test_output_and_raw_output(self):
        template = parse_source("<%= a %><%- b %>")
        assert isinstance(template.nodes[0], Output)
        assert isinstance(template.nodes[1], RawOutput)

    def test_expression_statement(self):
        template = parse_source("<% items.len %>")
        assert isinstance(template.nodes[0], ExpressionStatement)

    def test_empty_statement_tag(self):
        """An empty statement tag produces no node."""
        template = parse_source("a<% %>b")
        assert [type(n) for n in template.nodes] == [Text, Text]

    def test_render_alias(self):
        """<%% path %> becomes a raw render() call."""
        template = parse_source("<%% 'partials/nav' %>")
        node = template.nodes[0]
        assert isinstance(node, RawOutput)
        assert isinstance(node.expression, Call)
        assert node.expression.name == "render"
        assert node.expression.arguments[0].value == "partials/nav"

    def test_template_keeps_name_and_source(self):
        template = parse_source("x <%= y %>", "page.html")
        assert template.name == "page.html"
        assert template.source_lines == ["x <%= y %>"]

    def test_parse_from_tokens(self):
        source = "<%= 1 %>"
        template = parse(tokenize(source), source=source)
        assert isinstance(template.nodes[0].expression, Literal)


class TestExpressions:
    """Test expression parsing and precedence."""

    def test_literals(self):
        assert parse_expr("42").value == 42
        assert parse_expr("2.5").literal_type == TokenType.FLOAT_LITERAL
        assert parse_expr("'s'").value == "s"
        assert parse_expr("true").value is True
        assert parse_expr("nil").literal_type == TokenType.NIL_LITERAL

    def test_identifier(self):
        expr = parse_expr("name")
        assert isinstance(expr, Identifier)
        assert expr.name == "name"

    def test_negative_literal_is_folded(self):
        expr = parse_expr("-5")
        assert isinstance(expr, Literal)
        assert expr.value == -5

    def test_unary_minus_binds_tighter_than_dot(self):
        """-5.abs parses as (-5).abs."""
        expr = parse_expr("-5.abs")
        assert isinstance(expr, MethodCall)
        assert expr.method == "abs"
        assert isinstance(expr.object, Literal)
        assert expr.object.value == -5

    def test_unary_minus_on_variable(self):
        expr = parse_expr("-x.abs")
        assert isinstance(expr, MethodCall)
        assert isinstance(expr.object, UnaryOp)

    def test_method_chain_is_left_to_right(self):
        expr = parse_expr("name.trim.upcase")
        assert isinstance(expr, MethodCall)
        assert expr.method == "upcase"
        assert expr.object.method == "trim"
        assert expr.object.object.name == "name"

    def test_method_with_arguments(self):
        expr = parse_expr("items.join(', ')")
        assert expr.method == "join"
        assert expr.arguments[0].value == ", "

    def test_float_method(self):
        """25.4.to_i is a float literal followed by a method."""
        expr = parse_expr("25.4.to_i")
        assert isinstance(expr, MethodCall)
        assert expr.object.value == 25.4

    def test_tuple_index(self):
        expr = parse_expr("pair.1")
        assert isinstance(expr, TupleIndex)
        assert expr.index == 1

    def test_nested_tuple_index(self):
        expr = parse_expr("t.0.1")
        assert isinstance(expr, TupleIndex)
        assert expr.index == 1
        assert isinstance(expr.object, TupleIndex)
        assert expr.object.index == 0

    def test_bracket_index(self):
        expr = parse_expr("user['name'].upcase")
        assert isinstance(expr, MethodCall)
        assert isinstance(expr.object, IndexAccess)

    def test_equality_is_lowest(self):
        expr = parse_expr("-5.abs == 5")
        assert isinstance(expr, BinaryOp)
        assert expr.operator == TokenType.EQ
        assert isinstance(expr.left, MethodCall)

    def test_not_equal(self):
        expr = parse_expr("a != b")
        assert expr.operator == TokenType.NE

    def test_list_literal(self):
        expr = parse_expr("[1, 2, 3].len")
        assert isinstance(expr.object, ListLiteral)
        assert len(expr.object.elements) == 3

    def test_empty_list_literal(self):
        expr = parse_expr("[]")
        assert isinstance(expr, ListLiteral)
        assert expr.elements == []

    def test_global_call(self):
        expr = parse_expr("rwf_turbo_stream('/ws')")
        assert isinstance(expr, Call)
        assert expr.name == "rwf_turbo_stream"

    def test_parenthesized(self):
        expr = parse_expr("(a == b)")
        assert isinstance(expr, BinaryOp)


class TestBlocks:
    """Test if/elsif/else/for blocks."""

    def test_if(self):
        template = parse_source("<% if ok %>yes<% end %>")
        node = template.nodes[0]
        assert isinstance(node, If)
        assert node.body[0].text == "yes"
        assert node.elif_branches == []
        assert node.else_body is None

    def test_if_elsif_else(self):
        template = parse_source(
            "<% if a %>A<% elsif b %>B<% elsif c %>C<% else %>D<% end %>"
        )
        node = template.nodes[0]
        assert [b.body[0].text for b in node.elif_branches] == ["B", "C"]
        assert node.else_body[0].text == "D"

    def test_for_single_target(self):
        template = parse_source("<% for item in items %><%= item %><% end %>")
        node = template.nodes[0]
        assert isinstance(node, For)
        assert node.targets == ["item"]

    def test_for_multiple_targets(self):
        template = parse_source("<% for i, v in list.enumerate %><% end %>")
        assert template.nodes[0].targets == ["i", "v"]
        assert template.nodes[0].body == []

    def test_nested_blocks(self):
        template = parse_source(
            "<% for x in xs %><% if x == 1 %>one<% end %><% end %>"
        )
        loop = template.nodes[0]
        assert isinstance(loop.body[0], If)

    def test_print_ast(self):
        template = parse_source("<% if a %><%= b %><% end %>")
        dump = print_ast(template)
        assert "If" in dump
        assert "Output" in dump


class TestParseErrors:
    """Test parser error reporting."""

    def test_missing_end(self):
        with pytest.raises(UnbalancedBlock) as exc_info:
            parse_source("<% if ok %>yes")
        assert "'if'" in exc_info.value.message
        assert exc_info.value.span.start.line == 1

    def test_missing_end_in_for(self):
        with pytest.raises(UnbalancedBlock) as exc_info:
            parse_source("<% for x in xs %>\n<% if x == 1 %>a<% end %>")
        assert "'for'" in exc_info.value.message

    def test_stray_end(self):
        with pytest.raises(UnbalancedBlock):
            parse_source("text<% end %>")

    def test_stray_else(self):
        with pytest.raises(UnbalancedBlock):
            parse_source("<% else %>")

    def test_else_in_for(self):
        with pytest.raises(UnbalancedBlock):
            parse_source("<% for x in xs %>a<% else %>b<% end %>")

    def test_elsif_after_else(self):
        with pytest.raises(UnbalancedBlock):
            parse_source("<% if a %>1<% else %>2<% elsif b %>3<% end %>")

    def test_missing_in(self):
        with pytest.raises(TemplateSyntaxError):
            parse_source("<% for x xs %><% end %>")

    def test_unexpected_token(self):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            parse_source("<%= a b %>")
        assert exc_info.value.diagnostic.code == "E101"

    def test_empty_output_tag(self):
        with pytest.raises(ParseError):
            parse_source("<%= %>")

    def test_dot_without_name(self):
        with pytest.raises(TemplateSyntaxError):
            parse_source("<%= a. %>")

    def test_diagnostic_includes_source_line(self):
        with pytest.raises(ParseError) as exc_info:
            parse_source("ok\n<%= a b %>", "page.html")
        formatted = exc_info.value.diagnostic.format()
        assert "page.html:2" in formatted
        assert "<%= a b %>" in formatted
