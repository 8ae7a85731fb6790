"""
Template runtime - values, method tables and the tree-walking renderer.

This module provides:
- Value: Tagged runtime values over a closed set of variants
- MethodRegistry: Per-variant built-in method tables
- RenderContext: Scope chain over host bindings
- Collaborators: Escaping, partial loading and markup injection services
- Renderer: Walks a parsed template and produces text
"""

from .values import (
    Value,
    ValueKind,
    NIL,
    I64_MIN,
    I64_MAX,
    int_val,
    float_val,
    bool_val,
    string_val,
    list_val,
    tuple_val,
    hash_val,
    wrap_value,
    unwrap_value,
    values_equal,
    to_text,
)

from .methods import (
    BuiltinMethod,
    MethodRegistry,
    get_method_registry,
    invoke,
    tuple_index,
    index_value,
)

from .context import (
    Scope,
    HostBindings,
    OverlayBindings,
    RenderContext,
    create_context,
)

from .globals import (
    Collaborators,
    PartialLoader,
    GLOBAL_FUNCTIONS,
)

from .interpreter import (
    Renderer,
    RenderResult,
    render_template,
)

__all__ = [
    # Values
    'Value',
    'ValueKind',
    'I64_MIN',
    'I64_MAX',
    'NIL',
    'int_val',
    'float_val',
    'bool_val',
    'string_val',
    'list_val',
    'tuple_val',
    'hash_val',
    'wrap_value',
    'unwrap_value',
    'values_equal',
    'to_text',

    # Methods
    'BuiltinMethod',
    'MethodRegistry',
    'get_method_registry',
    'invoke',
    'tuple_index',
    'index_value',

    # Context
    'Scope',
    'HostBindings',
    'OverlayBindings',
    'RenderContext',
    'create_context',

    # Globals
    'Collaborators',
    'PartialLoader',
    'GLOBAL_FUNCTIONS',

    # Renderer
    'Renderer',
    'RenderResult',
    'render_template',
]
