"""
Render context for the template renderer.

Manages variable scopes over the host-supplied bindings and tracks which
template (and how deep in partials) the renderer is working on.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from contextlib import contextmanager

from .values import Value, wrap_value
from ..tokens import SourceSpan


@dataclass
class Scope:
    """
    A single scope containing variable bindings.

    Scopes form a chain via the `parent` field. Bindings are never updated in
    place; a child scope shadows its parent and disappears when popped.
    """
    variables: Dict[str, Value] = field(default_factory=dict)
    parent: Optional["Scope"] = None
    name: str = "anonymous"  # For debugging

    def get(self, name: str) -> Optional[Value]:
        """Look up a variable in this scope or parent scopes."""
        if name in self.variables:
            return self.variables[name]
        if self.parent:
            return self.parent.get(name)
        return None

    def set(self, name: str, value: Value) -> None:
        """Bind a variable in this scope (shadowing parent if exists)."""
        self.variables[name] = value


class HostBindings:
    """
    Read-only view over the context supplied by the host.

    Accepts a Mapping of raw Python data or Values, or any object with a
    `get_binding(name)` method returning a Value (or None when unbound).
    Converted values are memoized for the duration of one render.
    """

    def __init__(self, source: Any = None):
        self.source = source
        self._cache: Dict[str, Value] = {}

    def get(self, name: str) -> Optional[Value]:
        if name in self._cache:
            return self._cache[name]
        if self.source is None:
            return None
        if hasattr(self.source, "get_binding"):
            raw = self.source.get_binding(name)
            if raw is None:
                return None
        elif isinstance(self.source, Mapping):
            if name not in self.source:
                return None
            raw = self.source[name]
        else:
            return None
        value = wrap_value(raw)
        self._cache[name] = value
        return value


class OverlayBindings:
    """Keyword bindings layered over a `get_binding` supplier."""

    def __init__(self, overrides: Mapping[str, Any], fallback: Any):
        self.overrides = dict(overrides)
        self.fallback = HostBindings(fallback)

    def get_binding(self, name: str) -> Optional[Value]:
        if name in self.overrides:
            return wrap_value(self.overrides[name])
        return self.fallback.get(name)


@dataclass
class RenderContext:
    """
    The state of one render call.

    Tracks:
    - The scope chain, rooted in the host bindings
    - The template being rendered (for error messages)
    - How many partials deep the renderer currently is
    """
    host: HostBindings = field(default_factory=HostBindings)
    current_scope: Scope = field(default_factory=lambda: Scope(name="template"))

    template_name: Optional[str] = None
    source_lines: List[str] = field(default_factory=list)
    partial_depth: int = 0

    def get_variable(self, name: str) -> Optional[Value]:
        """Look up a variable in the scope chain, then in the host bindings."""
        value = self.current_scope.get(name)
        if value is not None:
            return value
        return self.host.get(name)

    def set_variable(self, name: str, value: Value) -> None:
        """Bind a variable in the current scope."""
        self.current_scope.set(name, value)

    @contextmanager
    def new_scope(self, name: str = "block"):
        """
        Context manager to create a new nested scope.

        Usage:
            with ctx.new_scope("for"):
                ctx.set_variable("item", item)
        """
        old_scope = self.current_scope
        self.current_scope = Scope(parent=old_scope, name=name)
        try:
            yield self.current_scope
        finally:
            self.current_scope = old_scope

    @contextmanager
    def enter_partial(self, name: Optional[str], source_lines: List[str]):
        """
        Switch to a partial template for the duration of the block.

        The partial sees the caller's bindings through a child scope, so
        nothing it binds leaks back.
        """
        saved = (self.template_name, self.source_lines)
        self.template_name = name
        self.source_lines = source_lines
        self.partial_depth += 1
        try:
            with self.new_scope(f"partial:{name}"):
                yield self
        finally:
            self.partial_depth -= 1
            self.template_name, self.source_lines = saved

    def get_source_line(self, span: Optional[SourceSpan]) -> Optional[str]:
        """Get the source line a span starts on, if known."""
        if span is None:
            return None
        line_num = span.start.line
        if 0 < line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None


def create_context(bindings: Any = None, template_name: Optional[str] = None,
                   source: str = "") -> RenderContext:
    """
    Create a render context over host bindings.

    Args:
        bindings: Mapping or object with `get_binding(name)`
        template_name: Name of the template, for diagnostics
        source: Template source, for diagnostics

    Returns:
        Initialized RenderContext
    """
    return RenderContext(
        host=HostBindings(bindings),
        template_name=template_name,
        source_lines=source.split("\n") if source else [],
    )
