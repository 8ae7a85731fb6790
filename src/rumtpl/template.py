"""
High-level template API.

Parses once, renders many times:

    from rumtpl import Template

    page = Template.from_source("<h1><%= title.capitalize %></h1>", name="page")
    page.render({"title": "welcome"})    # '<h1>Welcome</h1>'
"""

from pathlib import Path
from typing import Any, Mapping, Optional, Union

from . import ast
from .config import EngineConfig
from .parser import parse_source
from .runtime.globals import Collaborators
from .runtime.context import OverlayBindings
from .runtime.interpreter import Renderer


class Template:
    """A parsed template bound to a renderer."""

    def __init__(self, tree: ast.Template,
                 collaborators: Optional[Collaborators] = None,
                 config: Optional[EngineConfig] = None):
        self.tree = tree
        self.renderer = Renderer(collaborators, config)

    @classmethod
    def from_source(cls, source: str, name: Optional[str] = None,
                    collaborators: Optional[Collaborators] = None,
                    config: Optional[EngineConfig] = None) -> "Template":
        """Parse template source. Raises ParseError on malformed input."""
        return cls(parse_source(source, name), collaborators, config)

    @classmethod
    def from_file(cls, path: Union[str, Path],
                  collaborators: Optional[Collaborators] = None,
                  config: Optional[EngineConfig] = None) -> "Template":
        """Read and parse a template file."""
        config = config or EngineConfig()
        path = Path(path)
        source = path.read_text(encoding=config.encoding)
        return cls.from_source(source, str(path), collaborators, config)

    @property
    def name(self) -> Optional[str]:
        return self.tree.name

    def render(self, context: Any = None, **bindings: Any) -> str:
        """
        Render against a context.

        Keyword arguments take precedence over the context, so
        `tpl.render(name="x")` and `tpl.render({"name": "x"})` are equivalent.
        A `get_binding` supplier is kept and the keywords are layered over it.
        """
        if bindings:
            if context is None or isinstance(context, Mapping):
                merged = dict(context or {})
                merged.update(bindings)
                context = merged
            else:
                context = OverlayBindings(bindings, context)
        return self.renderer.render(self.tree, context)

    def __repr__(self) -> str:
        return f"Template(name={self.name!r}, nodes={len(self.tree.nodes)})"


def render(source: str, context: Any = None,
           collaborators: Optional[Collaborators] = None,
           config: Optional[EngineConfig] = None) -> str:
    """Parse and render template source in one call, raising on failure."""
    return Template.from_source(source, None, collaborators, config).render(context)
