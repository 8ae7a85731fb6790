"""
Token types for the rumtpl template lexer.

A template is scanned in two modes: literal text between tags, and the
expression tokens inside a tag.
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the template lexer."""

    # --- Template structure ---
    TEXT = auto()               # literal markup between tags
    OUTPUT_START = auto()       # <%=
    RAW_OUTPUT_START = auto()   # <%-
    RENDER_START = auto()       # <%%
    BLOCK_START = auto()        # <%
    TAG_END = auto()            # %>

    # --- Literals ---
    INT_LITERAL = auto()        # 42
    FLOAT_LITERAL = auto()      # 3.14
    STRING_LITERAL = auto()     # "hello"
    BOOL_LITERAL = auto()       # true, false
    NIL_LITERAL = auto()        # nil

    # --- Identifiers ---
    IDENTIFIER = auto()

    # --- Keywords ---
    IF = auto()                 # if
    ELSIF = auto()              # elsif
    ELSE = auto()               # else
    FOR = auto()                # for
    IN = auto()                 # in
    END = auto()                # end

    # --- Operators ---
    EQ = auto()                 # ==
    NE = auto()                 # !=
    MINUS = auto()              # -

    # --- Delimiters ---
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COMMA = auto()              # ,
    DOT = auto()                # .

    # --- Special ---
    EOF = auto()


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in template source."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in template source."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # The actual value (int, float, str, etc.)
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type in (TokenType.INT_LITERAL, TokenType.FLOAT_LITERAL,
                         TokenType.STRING_LITERAL, TokenType.IDENTIFIER,
                         TokenType.TEXT):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


KEYWORDS: dict[str, TokenType] = {
    "if": TokenType.IF,
    "elsif": TokenType.ELSIF,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "end": TokenType.END,
    "true": TokenType.BOOL_LITERAL,
    "false": TokenType.BOOL_LITERAL,
    "nil": TokenType.NIL_LITERAL,
}

# Openers that start a tag, longest first so "<%=" wins over "<%"
TAG_OPENERS: tuple[tuple[str, TokenType], ...] = (
    ("<%%", TokenType.RENDER_START),
    ("<%=", TokenType.OUTPUT_START),
    ("<%-", TokenType.RAW_OUTPUT_START),
    ("<%", TokenType.BLOCK_START),
)

TAG_CLOSE = "%>"

