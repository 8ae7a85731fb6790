"""
Tree-walking renderer for parsed templates.

Walks the Template AST left to right, depth first, appending text to a
buffer. The buffer is only returned when the whole walk succeeds.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Union
import logging

from .values import (
    Value, ValueKind, NIL,
    int_val, float_val, bool_val, string_val, list_val,
    values_equal, to_text,
)
from .context import RenderContext, create_context
from .methods import invoke, tuple_index, index_value
from .globals import (
    Collaborators, check_global_call, load_partial, call_head, call_turbo_stream,
    RENDER, HEAD, TURBO_STREAM,
)

from ..ast import (
    Node, Text, Output, RawOutput, ExpressionStatement, If, For, Template,
    Expression, Literal, Identifier, ListLiteral, UnaryOp, BinaryOp,
    MethodCall, TupleIndex, IndexAccess, Call,
)
from ..config import EngineConfig
from ..errors import (
    TemplateError, UndefinedVariable, TypeMismatch, RecursionLimitExceeded,
)
from ..tokens import SourceSpan, TokenType


logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Result of rendering a template without raising."""
    success: bool
    output: Optional[str] = None
    error: Optional[TemplateError] = None

    @property
    def error_message(self) -> Optional[str]:
        """The formatted diagnostic, if rendering failed."""
        if self.error is None:
            return None
        return self.error.diagnostic.format()


class Renderer:
    """
    Tree-walking template renderer.

    Evaluates nodes by dispatching to type-specific methods. A Renderer holds
    no per-render state, so one instance can serve any number of renders.
    """

    def __init__(self, collaborators: Optional[Collaborators] = None,
                 config: Optional[EngineConfig] = None):
        """
        Initialize the renderer.

        Args:
            collaborators: Escaping, partial loading and markup injectors
            config: Engine settings (partial depth, autoescape)
        """
        self.collaborators = collaborators or Collaborators()
        self.config = config or EngineConfig()

    def render(self, template: Template, context: Any = None) -> str:
        """
        Render a template against a context.

        Args:
            template: Parsed template
            context: Mapping, object with get_binding(name), or a RenderContext

        Returns:
            The rendered text

        Raises:
            TemplateError: On the first evaluation or collaborator failure
        """
        if isinstance(context, RenderContext):
            ctx = context
        else:
            ctx = create_context(context, template.name, template.source)

        logger.debug("Rendering template %r", template.name)
        buffer: List[str] = []
        self._render_nodes(template.nodes, ctx, buffer)
        output = "".join(buffer)
        logger.debug("Rendered template %r (%d chars)", template.name, len(output))
        return output

    # =========================================================================
    # Nodes
    # =========================================================================

    def _render_nodes(self, nodes: List[Node], ctx: RenderContext, buffer: List[str]) -> None:
        for node in nodes:
            self._render_node(node, ctx, buffer)

    def _render_node(self, node: Node, ctx: RenderContext, buffer: List[str]) -> None:
        """Render a single template node."""
        if isinstance(node, Text):
            buffer.append(node.text)
        elif isinstance(node, Output):
            text = self._output_text(node.expression, ctx)
            if self.config.autoescape:
                text = self.collaborators.escape(text)
            buffer.append(text)
        elif isinstance(node, RawOutput):
            buffer.append(self._output_text(node.expression, ctx))
        elif isinstance(node, ExpressionStatement):
            self._evaluate(node.expression, ctx)
        elif isinstance(node, If):
            self._render_if(node, ctx, buffer)
        elif isinstance(node, For):
            self._render_for(node, ctx, buffer)
        else:
            raise TypeMismatch.create(f"cannot render node {type(node).__name__}", node.span)

    def _output_text(self, expr: Expression, ctx: RenderContext) -> str:
        value = self._evaluate(expr, ctx)
        try:
            return to_text(value)
        except TemplateError as e:
            e.locate(expr.span, ctx.get_source_line(expr.span))
            raise

    def _render_if(self, node: If, ctx: RenderContext, buffer: List[str]) -> None:
        # Conditionals do not open a scope
        if self._condition(node.condition, ctx):
            self._render_nodes(node.body, ctx, buffer)
            return
        for branch in node.elif_branches:
            if self._condition(branch.condition, ctx):
                self._render_nodes(branch.body, ctx, buffer)
                return
        if node.else_body is not None:
            self._render_nodes(node.else_body, ctx, buffer)

    def _condition(self, expr: Expression, ctx: RenderContext) -> bool:
        value = self._evaluate(expr, ctx)
        if value.kind != ValueKind.BOOL:
            raise self._error(
                TypeMismatch, f"if condition must be a Bool, got {value.kind}", expr.span, ctx
            )
        return value.data

    def _render_for(self, node: For, ctx: RenderContext, buffer: List[str]) -> None:
        iterable = self._evaluate(node.iterable, ctx)
        if iterable.kind != ValueKind.LIST:
            raise self._error(
                TypeMismatch, f"for loop needs a List, got {iterable.kind}",
                node.iterable.span, ctx,
            )

        for item in iterable.data:
            with ctx.new_scope("for"):
                self._bind_targets(node, item, ctx)
                self._render_nodes(node.body, ctx, buffer)

    def _bind_targets(self, node: For, item: Value, ctx: RenderContext) -> None:
        if len(node.targets) == 1:
            ctx.set_variable(node.targets[0], item)
            return
        if item.kind != ValueKind.TUPLE or len(item.data) != len(node.targets):
            raise self._error(
                TypeMismatch,
                f"cannot unpack {item.kind} into {len(node.targets)} loop variables",
                node.span, ctx,
            )
        for name, part in zip(node.targets, item.data):
            ctx.set_variable(name, part)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression, ctx: RenderContext) -> Value:
        """Evaluate an expression, locating any error at the innermost node."""
        try:
            return self._dispatch(expr, ctx)
        except TemplateError as e:
            e.locate(expr.span, ctx.get_source_line(expr.span))
            raise

    def _dispatch(self, expr: Expression, ctx: RenderContext) -> Value:
        if isinstance(expr, Literal):
            return self._eval_literal(expr)
        elif isinstance(expr, Identifier):
            return self._eval_identifier(expr, ctx)
        elif isinstance(expr, ListLiteral):
            return list_val(self._evaluate(e, ctx) for e in expr.elements)
        elif isinstance(expr, UnaryOp):
            return self._eval_unary_op(expr, ctx)
        elif isinstance(expr, BinaryOp):
            return self._eval_binary_op(expr, ctx)
        elif isinstance(expr, MethodCall):
            obj = self._evaluate(expr.object, ctx)
            args = [self._evaluate(arg, ctx) for arg in expr.arguments]
            return invoke(obj, expr.method, args)
        elif isinstance(expr, TupleIndex):
            return tuple_index(self._evaluate(expr.object, ctx), expr.index)
        elif isinstance(expr, IndexAccess):
            obj = self._evaluate(expr.object, ctx)
            return index_value(obj, self._evaluate(expr.index, ctx))
        elif isinstance(expr, Call):
            return self._eval_call(expr, ctx)
        raise TypeMismatch.create(f"cannot evaluate {type(expr).__name__}")

    def _eval_literal(self, lit: Literal) -> Value:
        if lit.literal_type == TokenType.INT_LITERAL:
            return int_val(lit.value)
        elif lit.literal_type == TokenType.FLOAT_LITERAL:
            return float_val(lit.value)
        elif lit.literal_type == TokenType.STRING_LITERAL:
            return string_val(lit.value)
        elif lit.literal_type == TokenType.BOOL_LITERAL:
            return bool_val(lit.value)
        return NIL

    def _eval_identifier(self, ident: Identifier, ctx: RenderContext) -> Value:
        value = ctx.get_variable(ident.name)
        if value is None:
            raise UndefinedVariable.create(f"undefined variable '{ident.name}'")
        return value

    def _eval_unary_op(self, op: UnaryOp, ctx: RenderContext) -> Value:
        operand = self._evaluate(op.operand, ctx)
        if operand.kind == ValueKind.INTEGER:
            return int_val(-operand.data)
        if operand.kind == ValueKind.FLOAT:
            return float_val(-operand.data)
        raise TypeMismatch.create(f"cannot negate {operand.kind}")

    def _eval_binary_op(self, op: BinaryOp, ctx: RenderContext) -> Value:
        left = self._evaluate(op.left, ctx)
        right = self._evaluate(op.right, ctx)
        equal = values_equal(left, right)
        if op.operator == TokenType.NE:
            return bool_val(not equal)
        return bool_val(equal)

    def _eval_call(self, call: Call, ctx: RenderContext) -> Value:
        args = [self._evaluate(arg, ctx) for arg in call.arguments]
        check_global_call(call.name, args)

        if call.name == RENDER:
            return string_val(self._render_partial(args[0].data, ctx))
        elif call.name == HEAD:
            return string_val(call_head(self.collaborators))
        elif call.name == TURBO_STREAM:
            return string_val(call_turbo_stream(self.collaborators, args[0].data))
        raise TypeMismatch.create(f"no dispatch for global '{call.name}'")

    def _render_partial(self, path: str, ctx: RenderContext) -> str:
        if ctx.partial_depth >= self.config.max_partial_depth:
            raise RecursionLimitExceeded.create(
                f"partial '{path}' exceeds the nesting limit of "
                f"{self.config.max_partial_depth}",
                hints=["check for a partial that renders itself"],
            )
        template = load_partial(self.collaborators, path)

        buffer: List[str] = []
        with ctx.enter_partial(template.name or path, template.source_lines):
            self._render_nodes(template.nodes, ctx, buffer)
        return "".join(buffer)

    def _error(self, cls, message: str, span: SourceSpan, ctx: RenderContext) -> TemplateError:
        return cls.create(message, span, ctx.get_source_line(span))


# =============================================================================
# Convenience functions
# =============================================================================

def render_template(
    template: Union[Template, str],
    context: Any = None,
    collaborators: Optional[Collaborators] = None,
    config: Optional[EngineConfig] = None,
    name: Optional[str] = None,
) -> RenderResult:
    """
    Parse (if needed) and render a template in one call, without raising.

        from rumtpl import render_template

        result = render_template("Hello <%= name %>", {"name": "world"})
        if result.success:
            print(result.output)
        else:
            print(result.error_message)

    Args:
        template: Parsed Template or template source
        context: Bindings for the render
        collaborators: Escaping, loader and injectors
        config: Engine settings
        name: Template name for diagnostics when parsing from source

    Returns:
        RenderResult with the output or the error
    """
    from ..parser import parse_source

    try:
        if isinstance(template, str):
            template = parse_source(template, name)
        output = Renderer(collaborators, config).render(template, context)
    except TemplateError as e:
        logger.debug("Render failed: %s", e.message)
        return RenderResult(success=False, error=e)
    return RenderResult(success=True, output=output)
