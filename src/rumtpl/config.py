"""
Engine configuration.

Settings are plain dataclass fields; `EngineConfig.from_env()` fills them
from RUMTPL_* environment variables for hosts that configure that way.
"""

from dataclasses import dataclass
from typing import Mapping, Optional
import os

from .errors import InvalidArgument


ENV_MAX_PARTIAL_DEPTH = "RUMTPL_MAX_PARTIAL_DEPTH"
ENV_AUTOESCAPE = "RUMTPL_AUTOESCAPE"
ENV_ENCODING = "RUMTPL_ENCODING"
ENV_TEMPLATE_ROOT = "RUMTPL_TEMPLATE_ROOT"

DEFAULT_MAX_PARTIAL_DEPTH = 32

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


@dataclass(frozen=True)
class EngineConfig:
    """
    Renderer settings.

    max_partial_depth: how deeply render() calls may nest
    autoescape: when False, <%= %> writes text unescaped like <%- %>
    encoding: encoding for template files read from disk
    template_root: default directory for the file system loader
    """
    max_partial_depth: int = DEFAULT_MAX_PARTIAL_DEPTH
    autoescape: bool = True
    encoding: str = "utf-8"
    template_root: Optional[str] = None

    def __post_init__(self):
        if self.max_partial_depth < 0:
            raise InvalidArgument.create(
                f"max_partial_depth must be >= 0, got {self.max_partial_depth}"
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Build a config from RUMTPL_* variables, defaults for anything unset."""
        env = os.environ if environ is None else environ

        depth_raw = env.get(ENV_MAX_PARTIAL_DEPTH)
        if depth_raw is None:
            depth = DEFAULT_MAX_PARTIAL_DEPTH
        else:
            try:
                depth = int(depth_raw)
            except ValueError:
                raise InvalidArgument.create(
                    f"{ENV_MAX_PARTIAL_DEPTH} must be an integer, got {depth_raw!r}"
                ) from None

        return cls(
            max_partial_depth=depth,
            autoescape=_parse_bool(ENV_AUTOESCAPE, env.get(ENV_AUTOESCAPE), True),
            encoding=env.get(ENV_ENCODING) or "utf-8",
            template_root=env.get(ENV_TEMPLATE_ROOT) or None,
        )


def _parse_bool(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None or raw == "":
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidArgument.create(f"{name} must be a boolean, got {raw!r}")
