"""
Global functions available to templates and the collaborators behind them.

Templates can call exactly three globals: render(path), rwf_head() and
rwf_turbo_stream(endpoint). Each is backed by a host-supplied collaborator.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, Sequence
import html
import logging

from .values import Value, ValueKind
from ..ast import Template
from ..errors import (
    TemplateError, UnknownGlobalFunction, ArityMismatch, TypeMismatch,
    CollaboratorError, MissingCollaborator, LoadError,
)


logger = logging.getLogger(__name__)


class PartialLoader(Protocol):
    """Anything that can turn a partial path into a parsed template."""

    def load(self, path: str) -> Template:
        ...


@dataclass
class Collaborators:
    """
    Services injected into a renderer.

    escape: HTML escaping applied by <%= %> output tags
    loader: resolves render("path") to a parsed template
    head: produces the markup for rwf_head()
    turbo_stream: produces the markup for rwf_turbo_stream(endpoint)
    """
    escape: Callable[[str], str] = html.escape
    loader: Optional[PartialLoader] = None
    head: Optional[Callable[[], str]] = None
    turbo_stream: Optional[Callable[[str], str]] = None


RENDER = "render"
HEAD = "rwf_head"
TURBO_STREAM = "rwf_turbo_stream"

# name -> number of String arguments
GLOBAL_FUNCTIONS: Dict[str, int] = {
    RENDER: 1,
    HEAD: 0,
    TURBO_STREAM: 1,
}


def check_global_call(name: str, args: Sequence[Value]) -> None:
    """
    Validate a global call before dispatching it.

    Raises UnknownGlobalFunction, ArityMismatch, or TypeMismatch when an
    argument is not a String.
    """
    arity = GLOBAL_FUNCTIONS.get(name)
    if arity is None:
        raise UnknownGlobalFunction.create(
            f"unknown global function '{name}'",
            hints=[f"available: {', '.join(sorted(GLOBAL_FUNCTIONS))}"],
        )
    if len(args) != arity:
        raise ArityMismatch.create(
            f"{name}() takes {arity} argument(s), got {len(args)}"
        )
    for arg in args:
        if arg.kind != ValueKind.STRING:
            raise TypeMismatch.create(f"{name}() expects a String argument, got {arg.kind}")


def _missing(name: str, collaborator: str) -> MissingCollaborator:
    return MissingCollaborator.create(
        f"{name}() needs a {collaborator} but none is configured"
    )


def load_partial(collaborators: Collaborators, path: str) -> Template:
    """
    Resolve a partial through the loader collaborator.

    Loaders may hand back either a parsed Template or the high-level
    rumtpl.Template wrapper; the wrapper is unwrapped to its tree.
    """
    if collaborators.loader is None:
        raise _missing(RENDER, "partial loader")
    logger.debug("Loading partial %r", path)
    try:
        loaded: Any = collaborators.loader.load(path)
    except TemplateError:
        raise
    except Exception as e:
        raise LoadError.create(f"failed to load partial '{path}': {e}") from e

    if isinstance(loaded, Template):
        return loaded
    tree = getattr(loaded, "tree", None)
    if isinstance(tree, Template):
        return tree
    raise LoadError.create(
        f"loader returned {type(loaded).__name__} for partial '{path}', expected a Template"
    )


def call_head(collaborators: Collaborators) -> str:
    """Markup for rwf_head()."""
    if collaborators.head is None:
        raise _missing(HEAD, "head injector")
    return _collaborator_text(HEAD, collaborators.head)


def call_turbo_stream(collaborators: Collaborators, endpoint: str) -> str:
    """Markup for rwf_turbo_stream(endpoint)."""
    if collaborators.turbo_stream is None:
        raise _missing(TURBO_STREAM, "turbo stream injector")
    return _collaborator_text(TURBO_STREAM, collaborators.turbo_stream, endpoint)


def _collaborator_text(name: str, fn: Callable[..., str], *args: str) -> str:
    try:
        result = fn(*args)
    except TemplateError:
        raise
    except Exception as e:
        raise CollaboratorError.create(f"{name}() failed: {e}") from e
    if not isinstance(result, str):
        raise TypeMismatch.create(
            f"{name}() collaborator returned {type(result).__name__}, expected str"
        )
    return result
