"""
Recursive descent parser for rumtpl templates.

Converts a token stream into a Template AST. Block constructs (if/for) are
closed by a matching <% end %> at the same nesting depth.
"""

import logging
from typing import List, Optional, Tuple
from .tokens import Token, TokenType, SourceSpan
from .ast import (
    # Expressions
    Expression, Literal, Identifier, ListLiteral, UnaryOp, BinaryOp,
    MethodCall, TupleIndex, IndexAccess, Call,
    # Template nodes
    Node, Text, Output, RawOutput, ExpressionStatement,
    If, ElifBranch, For, Template,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_unbalanced_block,
)

logger = logging.getLogger(__name__)

# Keywords that close or continue the body of an open block
BLOCK_CLOSERS = (TokenType.ELSIF, TokenType.ELSE, TokenType.END)

RENDER_FUNCTION = "render"


class Parser:
    """
    Recursive descent parser for rumtpl templates.

    Usage:
        parser = Parser(tokens, source=source)
        template = parser.parse_template()

    Expression precedence, lowest first:
        == !=
        postfix chain (.name, .name(args), .0, [index])
        unary -   (so -5.abs is (-5).abs)
        primary
    """

    EQUALITY = (TokenType.EQ, TokenType.NE)

    def __init__(self, tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None):
        self.tokens = tokens
        self.filename = filename
        self.source = source or ""
        self.pos = 0
        self._lines = self.source.split('\n') if self.source else []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        return self._current().type in token_types

    def _advance(self) -> Token:
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        if self._current().type in token_types:
            return self._advance()
        return None

    def _source_line(self, span: SourceSpan) -> Optional[str]:
        line_num = span.start.line
        if 1 <= line_num <= len(self._lines):
            return self._lines[line_num - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        found = token.lexeme if token.type == TokenType.TAG_END else token.type.name
        raise error_unexpected_token(expected, found, token.span, self._source_line(token.span))

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the previous token."""
        prev_pos = max(0, self.pos - 1)
        end_token = self.tokens[prev_pos]
        return SourceSpan(start.span.start, end_token.span.end)

    def _at_block_closer(self) -> bool:
        """Check for '<%' followed by end/else/elsif."""
        return self._check(TokenType.BLOCK_START) and self._peek(1).type in BLOCK_CLOSERS

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_equality()

    def _parse_equality(self) -> Expression:
        left = self._parse_postfix_expr()
        while self._check_any(*self.EQUALITY):
            op = self._advance()
            right = self._parse_postfix_expr()
            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op.type,
                right=right,
            )
        return left

    def _parse_postfix_expr(self) -> Expression:
        """Parse a primary followed by .name, .name(args), .N and [index]."""
        expr = self._parse_unary_expr()

        while True:
            if self._match(TokenType.DOT):
                if self._check(TokenType.INT_LITERAL):
                    index_tok = self._advance()
                    expr = TupleIndex(
                        span=SourceSpan(expr.span.start, index_tok.span.end),
                        object=expr,
                        index=index_tok.value,
                    )
                    continue
                name_tok = self._consume(TokenType.IDENTIFIER, "method name or tuple index")
                arguments = []
                if self._check(TokenType.LPAREN):
                    arguments = self._parse_arguments()
                expr = MethodCall(
                    span=SourceSpan(expr.span.start, self._peek(-1).span.end),
                    object=expr,
                    method=name_tok.value,
                    arguments=arguments,
                )
            elif self._match(TokenType.LBRACKET):
                index = self._parse_expression()
                close = self._consume(TokenType.RBRACKET, "']'")
                expr = IndexAccess(
                    span=SourceSpan(expr.span.start, close.span.end),
                    object=expr,
                    index=index,
                )
            else:
                break

        return expr

    def _parse_unary_expr(self) -> Expression:
        """Parse unary minus. A minus on a numeric literal folds into the literal."""
        if self._check(TokenType.MINUS):
            op = self._advance()
            operand = self._parse_unary_expr()
            span = SourceSpan(op.span.start, operand.span.end)
            if isinstance(operand, Literal) and operand.literal_type in (
                    TokenType.INT_LITERAL, TokenType.FLOAT_LITERAL):
                return Literal(span=span, value=-operand.value, literal_type=operand.literal_type)
            return UnaryOp(span=span, operator=op.type, operand=operand)

        return self._parse_primary_expr()

    def _parse_arguments(self) -> List[Expression]:
        """Parse a parenthesized, comma separated argument list."""
        self._consume(TokenType.LPAREN, "'('")
        arguments = []
        if not self._check(TokenType.RPAREN):
            arguments.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                arguments.append(self._parse_expression())
        self._consume(TokenType.RPAREN, "')'")
        return arguments

    def _parse_primary_expr(self) -> Expression:
        token = self._current()

        if token.type in (TokenType.INT_LITERAL, TokenType.FLOAT_LITERAL,
                          TokenType.STRING_LITERAL, TokenType.BOOL_LITERAL,
                          TokenType.NIL_LITERAL):
            self._advance()
            return Literal(span=token.span, value=token.value, literal_type=token.type)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._check(TokenType.LPAREN):
                arguments = self._parse_arguments()
                return Call(span=self._span_from(token), name=token.value, arguments=arguments)
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.LBRACKET:
            self._advance()
            elements = []
            while not self._check(TokenType.RBRACKET):
                elements.append(self._parse_expression())
                if not self._match(TokenType.COMMA):
                    break
            self._consume(TokenType.RBRACKET, "']'")
            return ListLiteral(span=self._span_from(token), elements=elements)

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "')'")
            return expr

        self._error("expression")

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_body(self, opener: Token, construct: str) -> Tuple[List[Node], Token]:
        """
        Parse nodes up to the next end/else/elsif at this depth.

        Returns the nodes and the closing keyword token; the '<%' in front of
        it is consumed, the trailing '%>' is left for the caller.
        """
        nodes = []
        while True:
            if self._is_at_end():
                raise error_unbalanced_block(construct, opener.span, self._source_line(opener.span))
            if self._at_block_closer():
                self._advance()  # consume '<%'
                return nodes, self._advance()
            node = self._parse_node()
            if node is not None:
                nodes.append(node)

    def _parse_if(self, start: Token) -> If:
        if_tok = self._advance()  # consume 'if'
        condition = self._parse_expression()
        self._consume(TokenType.TAG_END, "'%>'")
        body, closer = self._parse_body(if_tok, "if")

        elif_branches = []
        while closer.type == TokenType.ELSIF:
            elif_cond = self._parse_expression()
            self._consume(TokenType.TAG_END, "'%>'")
            elif_body, next_closer = self._parse_body(if_tok, "if")
            elif_branches.append(ElifBranch(
                span=SourceSpan(closer.span.start, elif_cond.span.end),
                condition=elif_cond,
                body=elif_body,
            ))
            closer = next_closer

        else_body = None
        if closer.type == TokenType.ELSE:
            self._consume(TokenType.TAG_END, "'%>'")
            else_body, closer = self._parse_body(if_tok, "if")
            if closer.type != TokenType.END:
                raise error_unbalanced_block(
                    closer.value, closer.span, self._source_line(closer.span),
                    detail=f"cannot follow the 'else' of the 'if' at {if_tok.span.start}",
                )

        self._consume(TokenType.TAG_END, "'%>'")
        return If(
            span=self._span_from(start),
            condition=condition,
            body=body,
            elif_branches=elif_branches,
            else_body=else_body,
        )

    def _parse_for(self, start: Token) -> For:
        for_tok = self._advance()  # consume 'for'
        targets = [self._consume(TokenType.IDENTIFIER, "loop variable").value]
        while self._match(TokenType.COMMA):
            targets.append(self._consume(TokenType.IDENTIFIER, "loop variable").value)
        self._consume(TokenType.IN, "'in'")
        iterable = self._parse_expression()
        self._consume(TokenType.TAG_END, "'%>'")

        body, closer = self._parse_body(for_tok, "for")
        if closer.type != TokenType.END:
            raise error_unbalanced_block(
                closer.value, closer.span, self._source_line(closer.span),
                detail=f"has no matching 'if' inside the 'for' at {for_tok.span.start}",
            )
        self._consume(TokenType.TAG_END, "'%>'")

        return For(
            span=self._span_from(start),
            targets=targets,
            iterable=iterable,
            body=body,
        )

    def _parse_render_alias(self, start: Token) -> RawOutput:
        """<%% "path" %> is shorthand for <%- render("path") %>."""
        arguments = []
        if not self._check(TokenType.TAG_END):
            arguments.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                arguments.append(self._parse_expression())
        self._consume(TokenType.TAG_END, "'%>'")
        span = self._span_from(start)
        return RawOutput(span=span, expression=Call(span=span, name=RENDER_FUNCTION, arguments=arguments))

    def _parse_node(self) -> Optional[Node]:
        """Parse one template node. Empty statement tags yield None."""
        token = self._advance()

        if token.type == TokenType.TEXT:
            return Text(span=token.span, text=token.value)

        if token.type == TokenType.OUTPUT_START:
            expr = self._parse_expression()
            self._consume(TokenType.TAG_END, "'%>'")
            return Output(span=self._span_from(token), expression=expr)

        if token.type == TokenType.RAW_OUTPUT_START:
            expr = self._parse_expression()
            self._consume(TokenType.TAG_END, "'%>'")
            return RawOutput(span=self._span_from(token), expression=expr)

        if token.type == TokenType.RENDER_START:
            return self._parse_render_alias(token)

        if token.type == TokenType.BLOCK_START:
            if self._check(TokenType.IF):
                return self._parse_if(token)
            if self._check(TokenType.FOR):
                return self._parse_for(token)
            if self._match(TokenType.TAG_END):
                return None
            expr = self._parse_expression()
            self._consume(TokenType.TAG_END, "'%>'")
            return ExpressionStatement(span=self._span_from(token), expression=expr)

        # Only reachable on a token stream that did not come from the Lexer
        self.pos -= 1
        self._error("text or tag")

    def parse_template(self, name: Optional[str] = None) -> Template:
        """Parse a complete template."""
        start = self._current()
        nodes = []

        while not self._is_at_end():
            if self._at_block_closer():
                stray = self._peek(1)
                raise error_unbalanced_block(
                    stray.value, stray.span, self._source_line(stray.span),
                    detail="has no matching 'if' or 'for'",
                )
            node = self._parse_node()
            if node is not None:
                nodes.append(node)

        logger.debug("parsed template %s: %d top-level nodes", name or self.filename or "<string>", len(nodes))
        return Template(
            span=SourceSpan(start.span.start, self._current().span.end),
            nodes=nodes,
            name=name or self.filename,
            source=self.source,
        )


def parse(tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None) -> Template:
    """
    Convenience function to parse tokens into a Template.

    Args:
        tokens: List of tokens from the lexer
        filename: Optional template name for error messages
        source: Optional original source for error messages

    Returns:
        Parsed Template AST

    Raises:
        ParseError: If parsing fails
    """
    parser = Parser(tokens, filename, source)
    return parser.parse_template()


def parse_source(source: str, filename: Optional[str] = None) -> Template:
    """Tokenize and parse template source in one step."""
    from .lexer import tokenize
    return parse(tokenize(source, filename), filename, source)
