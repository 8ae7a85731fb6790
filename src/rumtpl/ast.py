"""
Abstract Syntax Tree (AST) node definitions for rumtpl templates.

A parsed template is an ordered list of nodes: literal text, output tags,
control-flow blocks and bare expression statements. The tree is built once
per source and is never mutated afterwards, so a single Template can be
rendered any number of times, from any number of threads.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Union
from abc import ABC
from .tokens import SourceSpan, TokenType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class Literal(Expression):
    """A literal value (int, float, string, bool, nil)."""
    value: Union[int, float, str, bool, None]
    literal_type: TokenType  # INT_LITERAL, FLOAT_LITERAL, STRING_LITERAL, BOOL_LITERAL, NIL_LITERAL


@dataclass
class Identifier(Expression):
    """A variable reference resolved against the context."""
    name: str


@dataclass
class ListLiteral(Expression):
    """A list literal (e.g., ["one", "two"])."""
    elements: List[Expression]


@dataclass
class UnaryOp(Expression):
    """Unary minus (e.g., -x). Numeric literals fold the sign at parse time."""
    operator: TokenType
    operand: Expression


@dataclass
class BinaryOp(Expression):
    """An equality comparison (a == b, a != b)."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass
class MethodCall(Expression):
    """A dotted method call (e.g., name.trim, items.enumerate, x.method(1))."""
    object: Expression
    method: str
    arguments: List[Expression] = field(default_factory=list)


@dataclass
class TupleIndex(Expression):
    """Positional tuple access with a literal index (e.g., pair.0)."""
    object: Expression
    index: int


@dataclass
class IndexAccess(Expression):
    """Bracket indexing (e.g., items[0], hash["key"])."""
    object: Expression
    index: Expression


@dataclass
class Call(Expression):
    """A global function call (render, rwf_head, rwf_turbo_stream)."""
    name: str
    arguments: List[Expression] = field(default_factory=list)


# =============================================================================
# Template Nodes
# =============================================================================

@dataclass
class Node(AstNode):
    """Base class for template-level nodes."""
    pass


@dataclass
class Text(Node):
    """Literal text, appended verbatim."""
    text: str


@dataclass
class Output(Node):
    """<%= expr %>: evaluated, converted to text and escaped."""
    expression: Expression


@dataclass
class RawOutput(Node):
    """<%- expr %>: evaluated and converted to text without escaping."""
    expression: Expression


@dataclass
class ExpressionStatement(Node):
    """<% expr %>: evaluated for its effects, result discarded."""
    expression: Expression


@dataclass
class ElifBranch(AstNode):
    """An elsif branch in an if block."""
    condition: Expression
    body: List[Node]


@dataclass
class If(Node):
    """<% if cond %>...<% elsif cond %>...<% else %>...<% end %>"""
    condition: Expression
    body: List[Node]
    elif_branches: List[ElifBranch] = field(default_factory=list)
    else_body: Optional[List[Node]] = None


@dataclass
class For(Node):
    """<% for name in expr %>...<% end %>, optionally <% for a, b in expr %>."""
    targets: List[str]
    iterable: Expression
    body: List[Node]


@dataclass
class Template(AstNode):
    """Root of a parsed template."""
    nodes: List[Node]
    name: Optional[str] = None
    source: str = ""

    @property
    def source_lines(self) -> List[str]:
        return self.source.split('\n') if self.source else []


# =============================================================================
# Debugging
# =============================================================================

def print_ast(node: AstNode, indent: int = 0) -> str:
    """Render an AST subtree as an indented outline."""
    pad = "  " * indent
    name = node.__class__.__name__
    lines = []

    if isinstance(node, Template):
        lines.append(f"{pad}Template({node.name or '<string>'})")
        for child in node.nodes:
            lines.append(print_ast(child, indent + 1))
    elif isinstance(node, Text):
        lines.append(f"{pad}Text({node.text!r})")
    elif isinstance(node, (Output, RawOutput, ExpressionStatement)):
        lines.append(f"{pad}{name}")
        lines.append(print_ast(node.expression, indent + 1))
    elif isinstance(node, If):
        lines.append(f"{pad}If")
        lines.append(print_ast(node.condition, indent + 2))
        for child in node.body:
            lines.append(print_ast(child, indent + 1))
        for branch in node.elif_branches:
            lines.append(f"{pad}Elsif")
            lines.append(print_ast(branch.condition, indent + 2))
            for child in branch.body:
                lines.append(print_ast(child, indent + 1))
        if node.else_body is not None:
            lines.append(f"{pad}Else")
            for child in node.else_body:
                lines.append(print_ast(child, indent + 1))
    elif isinstance(node, For):
        lines.append(f"{pad}For({', '.join(node.targets)})")
        lines.append(print_ast(node.iterable, indent + 2))
        for child in node.body:
            lines.append(print_ast(child, indent + 1))
    elif isinstance(node, Literal):
        lines.append(f"{pad}Literal({node.value!r})")
    elif isinstance(node, Identifier):
        lines.append(f"{pad}Identifier({node.name})")
    elif isinstance(node, MethodCall):
        lines.append(f"{pad}MethodCall(.{node.method})")
        lines.append(print_ast(node.object, indent + 1))
        for arg in node.arguments:
            lines.append(print_ast(arg, indent + 1))
    elif isinstance(node, TupleIndex):
        lines.append(f"{pad}TupleIndex(.{node.index})")
        lines.append(print_ast(node.object, indent + 1))
    elif isinstance(node, IndexAccess):
        lines.append(f"{pad}IndexAccess")
        lines.append(print_ast(node.object, indent + 1))
        lines.append(print_ast(node.index, indent + 1))
    elif isinstance(node, Call):
        lines.append(f"{pad}Call({node.name})")
        for arg in node.arguments:
            lines.append(print_ast(arg, indent + 1))
    elif isinstance(node, ListLiteral):
        lines.append(f"{pad}ListLiteral")
        for elem in node.elements:
            lines.append(print_ast(elem, indent + 1))
    elif isinstance(node, BinaryOp):
        lines.append(f"{pad}BinaryOp({node.operator.name})")
        lines.append(print_ast(node.left, indent + 1))
        lines.append(print_ast(node.right, indent + 1))
    elif isinstance(node, UnaryOp):
        lines.append(f"{pad}UnaryOp({node.operator.name})")
        lines.append(print_ast(node.operand, indent + 1))
    else:
        lines.append(f"{pad}{name}")

    return "\n".join(lines)
