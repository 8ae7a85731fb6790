"""
Reference partial loaders.

Both loaders parse a partial the first time it is requested and keep the
parsed Template for every later render. Caches are guarded by a lock so a
loader can be shared between threads.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Union
import logging
import threading

from .ast import Template
from .errors import ParseError, PartialNotFound, PartialParseError, LoadError
from .parser import parse_source


logger = logging.getLogger(__name__)


class BaseLoader(ABC):
    """Caching partial loader; subclasses supply `get_source`."""

    def __init__(self):
        self._cache: Dict[str, Template] = {}
        self._lock = threading.Lock()

    @abstractmethod
    def get_source(self, path: str) -> str:
        """Return the raw source for a partial path."""
        pass

    def load(self, path: str) -> Template:
        """
        Return the parsed template for a partial path.

        Raises:
            PartialNotFound: No template exists at the path
            PartialParseError: The template exists but does not parse
            LoadError: The template could not be read
        """
        with self._lock:
            cached = self._cache.get(path)
        if cached is not None:
            return cached

        source = self.get_source(path)
        try:
            template = parse_source(source, path)
        except ParseError as e:
            err = PartialParseError.create(f"partial '{path}' failed to parse: {e.message}")
            err.diagnostic.related.append(e.diagnostic)
            raise err from e

        with self._lock:
            # Another thread may have parsed the same partial meanwhile
            template = self._cache.setdefault(path, template)
        logger.debug("Cached partial %r", path)
        return template

    def clear(self) -> None:
        """Drop all cached templates."""
        with self._lock:
            self._cache.clear()

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._cache


class DictLoader(BaseLoader):
    """
    Loads partials from an in-memory mapping of path -> source.

        loader = DictLoader({"_nav": "<nav><%= title %></nav>"})
    """

    def __init__(self, templates: Mapping[str, str]):
        super().__init__()
        self.templates = dict(templates)

    def get_source(self, path: str) -> str:
        if path not in self.templates:
            raise PartialNotFound.create(f"partial '{path}' not found")
        return self.templates[path]


class FileSystemLoader(BaseLoader):
    """
    Loads partials from files under a root directory.

    A path is tried as given, then with each of `suffixes` appended. Paths
    resolving outside the root are treated as missing.
    """

    def __init__(self, root: Union[str, Path], encoding: str = "utf-8",
                 suffixes: Sequence[str] = (".html",)):
        super().__init__()
        self.root = Path(root).expanduser().resolve()
        self.encoding = encoding
        self.suffixes = tuple(suffixes)

    def _resolve(self, path: str) -> Optional[Path]:
        candidates = [path] + [path + suffix for suffix in self.suffixes]
        for candidate in candidates:
            full = (self.root / candidate).resolve()
            if full != self.root and self.root not in full.parents:
                return None
            if full.is_file():
                return full
        return None

    def get_source(self, path: str) -> str:
        full = self._resolve(path)
        if full is None:
            raise PartialNotFound.create(
                f"partial '{path}' not found under {self.root}"
            )
        logger.debug("Reading partial %r from %s", path, full)
        try:
            return full.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise LoadError.create(f"cannot read partial '{path}': {e}") from e
