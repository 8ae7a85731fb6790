"""
Template exceptions and diagnostics.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Evaluation errors
- E5xx: Collaborator errors (partial loading, injectors)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E010, E402, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity = ErrorSeverity.ERROR
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # The actual line of template source
    hints: List[str] = field(default_factory=list)
    related: List["Diagnostic"] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        if self.span is not None:
            parts.append(f"{self.span.start}: {self.severity.value}[{self.code}]: {self.message}")
        else:
            parts.append(f"{self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.span is not None and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            if self.span.start.line == self.span.end.line:
                end_col = self.span.end.column
            else:
                end_col = len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        for related in self.related:
            where = f"{related.span.start}: " if related.span is not None else ""
            parts.append(f"    --> {where}{related.message}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        data = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": None,
            "hints": self.hints,
            "related": [r.to_json() for r in self.related],
        }
        if self.span is not None:
            data["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return data


class TemplateError(Exception):
    """Base exception for template errors."""

    code = "E000"

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return self.diagnostic.format()

    @property
    def span(self) -> Optional[SourceSpan]:
        return self.diagnostic.span

    @property
    def message(self) -> str:
        return self.diagnostic.message

    def locate(self, span: SourceSpan, source_line: Optional[str] = None) -> "TemplateError":
        """Attach a source location if the error does not carry one yet."""
        if self.diagnostic.span is None:
            self.diagnostic.span = span
            self.diagnostic.source_line = source_line
        return self

    @classmethod
    def create(cls, message: str, span: Optional[SourceSpan] = None,
               source_line: Optional[str] = None,
               hints: Optional[List[str]] = None) -> "TemplateError":
        """Build the exception together with its diagnostic."""
        diag = Diagnostic(
            code=cls.code,
            message=message,
            span=span,
            source_line=source_line,
            hints=list(hints or []),
        )
        return cls(diag)


# --- Parse errors (fatal for the template, no rendering attempted) ---

class ParseError(TemplateError):
    """Error while scanning or parsing a template."""
    code = "E100"


class UnterminatedTag(ParseError):
    """A tag was opened but never closed with '%>'."""
    code = "E010"

    byte_offset: Optional[int] = None

    @property
    def offset(self) -> Optional[int]:
        """UTF-8 byte offset where scanning of the tag began."""
        if self.byte_offset is not None:
            return self.byte_offset
        if self.diagnostic.span is None:
            return None
        return self.diagnostic.span.start.offset


class MalformedLiteral(ParseError):
    """Bad literal, identifier or stray character inside a tag."""
    code = "E001"


class TemplateSyntaxError(ParseError):
    """Unexpected token inside a tag."""
    code = "E101"


class UnbalancedBlock(ParseError):
    """An if/for block without matching 'end', or a stray end/else/elsif."""
    code = "E110"


# --- Evaluation errors (fatal for the render call) ---

class EvalError(TemplateError):
    """Error while rendering a template."""
    code = "E400"


class UndefinedVariable(EvalError):
    code = "E401"


class UnknownMethod(EvalError):
    code = "E402"


class ArityMismatch(EvalError):
    code = "E403"


class TypeMismatch(EvalError):
    code = "E404"


class IndexOutOfRange(EvalError):
    code = "E405"


class InvalidArgument(EvalError):
    code = "E406"


class UnknownGlobalFunction(EvalError):
    code = "E407"


# --- Collaborator errors (surfaced verbatim, wrapped with call location) ---

class CollaboratorError(TemplateError):
    """Error raised by, or while talking to, an external collaborator."""
    code = "E500"


class PartialNotFound(CollaboratorError):
    code = "E501"


class PartialParseError(CollaboratorError):
    code = "E502"


class LoadError(CollaboratorError):
    code = "E503"


class RecursionLimitExceeded(CollaboratorError):
    code = "E504"


class MissingCollaborator(CollaboratorError):
    code = "E505"


# --- Lexer error helpers ---

def error_unterminated_tag(span: SourceSpan, source_line: str = None,
                           byte_offset: Optional[int] = None) -> UnterminatedTag:
    """E010: Tag opened without closing '%>'."""
    if byte_offset is None:
        byte_offset = span.start.offset
    err = UnterminatedTag.create(
        f"unterminated tag starting at byte offset {byte_offset}",
        span,
        source_line,
        hints=["tags must be closed with '%>'"],
    )
    err.byte_offset = byte_offset
    return err


def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> MalformedLiteral:
    """E001: Unexpected character inside a tag."""
    return MalformedLiteral.create(f"unexpected character '{char}'", span, source_line)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> MalformedLiteral:
    """E002: Unterminated string literal."""
    err = MalformedLiteral.create(
        "unterminated string literal",
        span,
        source_line,
        hints=["string literals must be closed with matching quotes"],
    )
    err.diagnostic.code = "E002"
    return err


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> MalformedLiteral:
    """E006: Invalid number literal."""
    err = MalformedLiteral.create(f"invalid number literal '{text}'", span, source_line)
    err.diagnostic.code = "E006"
    return err


def error_integer_out_of_range(text: str, span: SourceSpan, source_line: str = None) -> MalformedLiteral:
    """E007: Integer literal outside the signed 64-bit range."""
    err = MalformedLiteral.create(
        f"integer literal '{text}' does not fit in 64 bits", span, source_line
    )
    err.diagnostic.code = "E007"
    return err


# --- Parser error helpers ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> TemplateSyntaxError:
    """E101: Unexpected token."""
    return TemplateSyntaxError.create(f"expected {expected}, found {found}", span, source_line)


def error_unexpected_eof(expected: str, span: SourceSpan) -> TemplateSyntaxError:
    """E102: Unexpected end of template."""
    err = TemplateSyntaxError.create(f"unexpected end of template, expected {expected}", span)
    err.diagnostic.code = "E102"
    return err


def error_unbalanced_block(construct: str, span: SourceSpan, source_line: str = None,
                           detail: str = "is never closed with 'end'") -> UnbalancedBlock:
    """E110: Block opener without 'end', or closer without opener."""
    return UnbalancedBlock.create(
        f"'{construct}' at {span.start} {detail}",
        span,
        source_line,
    )
