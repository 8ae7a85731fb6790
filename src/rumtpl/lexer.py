"""
Lexer for rumtpl templates.

Converts template source into a stream of tokens for the parser.
Supports:
- Literal text runs outside of tags (TEXT tokens, copied verbatim)
- Tag openers: <%= (escaped output), <%- (raw output), <%% (render alias), <% (statement)
- Tag closer: %>
- Integer and float literals, double- or single-quoted strings (no escapes)
- Identifiers, keywords and the handful of operators expressions use
"""

from typing import List, Optional, Iterator
from .tokens import (
    Token, TokenType, SourceLocation, SourceSpan, KEYWORDS, TAG_OPENERS, TAG_CLOSE,
)
from .errors import (
    error_unterminated_tag,
    error_unexpected_character,
    error_unterminated_string,
    error_invalid_number_literal,
    error_integer_out_of_range,
)
from .runtime.values import I64_MAX


def _is_digit(ch: str) -> bool:
    """ASCII 0-9 only."""
    return "0" <= ch <= "9"


class Lexer:
    """
    Tokenizer for rumtpl templates.

    Usage:
        lexer = Lexer(source)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source)
        for token in lexer:
            process(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None

        # Tag tracking
        self.in_tag = False
        self.tag_start: Optional[SourceLocation] = None
        self.last_type: Optional[TokenType] = None

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _starts_with(self, text: str) -> bool:
        return self.source.startswith(text, self.pos)

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        self.last_type = token_type
        return Token(token_type, value, lexeme, span)

    # =========================================================================
    # Text mode
    # =========================================================================

    def _scan_text(self) -> Token:
        """Scan literal text up to the next tag opener or end of source."""
        start = self._location()
        while not self._is_at_end() and not self._starts_with("<%"):
            self._advance()
        text = self.source[start.offset:self.pos]
        return self._make_token(TokenType.TEXT, text, start, text)

    def _scan_tag_open(self) -> Token:
        start = self._location()
        for opener, token_type in TAG_OPENERS:
            if self._starts_with(opener):
                for _ in opener:
                    self._advance()
                self.in_tag = True
                self.tag_start = start
                return self._make_token(token_type, opener, start)
        # Unreachable: only called when the source starts with "<%"
        raise error_unexpected_character(self._peek(), self._span(start))

    # =========================================================================
    # Tag mode
    # =========================================================================

    def _unterminated(self) -> Exception:
        byte_offset = len(self.source[:self.tag_start.offset].encode("utf-8", "surrogatepass"))
        return error_unterminated_tag(
            SourceSpan(self.tag_start, self._location()),
            self.get_source_line(self.tag_start.line),
            byte_offset,
        )

    def _skip_whitespace(self) -> None:
        while self._peek() in ' \t\r\n' and not self._is_at_end():
            self._advance()

    def _scan_string(self) -> Token:
        """Scan a string literal. The content runs up to the matching quote."""
        start = self._location()
        quote = self._advance()  # consume opening quote

        while not self._is_at_end() and self._peek() != quote:
            self._advance()

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        value = self.source[start.offset + 1:self.pos]
        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING_LITERAL, value, start)

    def _scan_number(self) -> Token:
        """Scan a numeric literal (int or float)."""
        start = self._location()

        while _is_digit(self._peek()):
            self._advance()

        # Right after a dot only a tuple index is allowed, so "t.0.1" stays two indexes
        is_float = False
        if self.last_type != TokenType.DOT and self._peek() == '.' and _is_digit(self._peek(1)):
            is_float = True
            self._advance()  # consume '.'
            while _is_digit(self._peek()):
                self._advance()

        if self._peek().isalpha() or self._peek() == '_':
            while self._peek().isalnum() or self._peek() == '_':
                self._advance()
            lexeme = self.source[start.offset:self.pos]
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )

        lexeme = self.source[start.offset:self.pos]
        if is_float:
            return self._make_token(TokenType.FLOAT_LITERAL, float(lexeme), start, lexeme)
        value = int(lexeme)
        # Literals are unsigned here, so I64_MIN itself has no literal form
        if value > I64_MAX:
            raise error_integer_out_of_range(
                lexeme, self._span(start), self.get_source_line(start.line)
            )
        return self._make_token(TokenType.INT_LITERAL, value, start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        start = self._location()

        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start.offset:self.pos]

        # After a dot every word is a method name, even "end" or "if"
        if lexeme in KEYWORDS and self.last_type != TokenType.DOT:
            token_type = KEYWORDS[lexeme]
            if token_type == TokenType.BOOL_LITERAL:
                value = lexeme == "true"
            elif token_type == TokenType.NIL_LITERAL:
                value = None
            else:
                value = lexeme
            return self._make_token(token_type, value, start, lexeme)

        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_tag_token(self) -> Token:
        """Scan the next token inside a tag."""
        self._skip_whitespace()

        if self._is_at_end():
            raise self._unterminated()

        start = self._location()

        if self._starts_with(TAG_CLOSE):
            self._advance()
            self._advance()
            self.in_tag = False
            self.tag_start = None
            return self._make_token(TokenType.TAG_END, TAG_CLOSE, start)

        ch = self._peek()

        if ch in '"\'':
            return self._scan_string()

        if _is_digit(ch):
            return self._scan_number()

        if ch.isalpha() or ch == '_':
            return self._scan_identifier_or_keyword()

        self._advance()

        if ch == '=' and self._peek() == '=':
            self._advance()
            return self._make_token(TokenType.EQ, "==", start)
        if ch == '!' and self._peek() == '=':
            self._advance()
            return self._make_token(TokenType.NE, "!=", start)

        single_char_tokens = {
            '-': TokenType.MINUS,
            '(': TokenType.LPAREN,
            ')': TokenType.RPAREN,
            '[': TokenType.LBRACKET,
            ']': TokenType.RBRACKET,
            ',': TokenType.COMMA,
            '.': TokenType.DOT,
        }

        if ch in single_char_tokens:
            return self._make_token(single_char_tokens[ch], ch, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    # =========================================================================
    # Driver
    # =========================================================================

    def _scan_token(self) -> Token:
        """Scan the next token in whichever mode the lexer is in."""
        if self.in_tag:
            return self._scan_tag_token()
        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")
        if self._starts_with("<%"):
            return self._scan_tag_open()
        return self._scan_text()

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self._scan_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize template source.

    Args:
        source: The template source to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens

    Raises:
        ParseError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
