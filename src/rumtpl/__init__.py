"""
rumtpl - an embedded template expression engine.

This module provides:
- Lexer: Splits template source into text and tag tokens
- Parser: Builds a Template AST from tokens
- Renderer: Walks the AST against a context and produces text
- Template: Parse-once, render-many facade
- Loaders: Reference partial loaders for render("path")

Usage:
    from rumtpl import Template, render

    render("Hello <%= name.capitalize %>!", {"name": "ada"})   # 'Hello Ada!'

    page = Template.from_source('''
    <ul>
    <% for i, item in items.enumerate %>
      <li><%= i %>: <%= item %></li>
    <% end %>
    </ul>
    ''')
    page.render({"items": ["one", "two"]})
"""

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
    parse_source,
)

from .ast import (
    print_ast,
)

from .errors import (
    Diagnostic,
    ErrorSeverity,
    TemplateError,
    ParseError,
    UnterminatedTag,
    MalformedLiteral,
    TemplateSyntaxError,
    UnbalancedBlock,
    EvalError,
    UndefinedVariable,
    UnknownMethod,
    ArityMismatch,
    TypeMismatch,
    IndexOutOfRange,
    InvalidArgument,
    UnknownGlobalFunction,
    CollaboratorError,
    PartialNotFound,
    PartialParseError,
    LoadError,
    RecursionLimitExceeded,
    MissingCollaborator,
)

from .config import EngineConfig

from .runtime import (
    Value,
    ValueKind,
    NIL,
    wrap_value,
    unwrap_value,
    Collaborators,
    PartialLoader,
    Renderer,
    RenderResult,
    render_template,
)

from .loader import (
    DictLoader,
    FileSystemLoader,
)

from .template import (
    Template,
    render,
)

__version__ = "0.1.0"

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',

    # Lexer / parser
    'Lexer',
    'tokenize',
    'Parser',
    'parse',
    'parse_source',
    'print_ast',

    # Errors
    'Diagnostic',
    'ErrorSeverity',
    'TemplateError',
    'ParseError',
    'UnterminatedTag',
    'MalformedLiteral',
    'TemplateSyntaxError',
    'UnbalancedBlock',
    'EvalError',
    'UndefinedVariable',
    'UnknownMethod',
    'ArityMismatch',
    'TypeMismatch',
    'IndexOutOfRange',
    'InvalidArgument',
    'UnknownGlobalFunction',
    'CollaboratorError',
    'PartialNotFound',
    'PartialParseError',
    'LoadError',
    'RecursionLimitExceeded',
    'MissingCollaborator',

    # Config
    'EngineConfig',

    # Runtime
    'Value',
    'ValueKind',
    'NIL',
    'wrap_value',
    'unwrap_value',
    'Collaborators',
    'PartialLoader',
    'Renderer',
    'RenderResult',
    'render_template',

    # Loaders
    'DictLoader',
    'FileSystemLoader',

    # Facade
    'Template',
    'render',
]
