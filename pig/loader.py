"""Load and parse OpenAPI documents.

Reads YAML or JSON files into plain dict/list/scalar trees and caches them
per resolution pass in a DocumentRegistry.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml

from .errors import LoadError, ParseError

log = logging.getLogger(__name__)

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"
_OPENAPI_VERSION = re.compile(r"^3\.0\.\d+$")


class _SpecLoader(yaml.SafeLoader):
    """SafeLoader that keeps dates as strings so trees stay JSON-compatible."""


_SpecLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _normalize(node: Any) -> Any:
    """Stringify mapping keys (YAML reads `200:` as an int)."""
    if isinstance(node, dict):
        return {str(key): _normalize(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_normalize(value) for value in node]
    return node


def parse_document(path: Path) -> Any:
    """Read and parse a single YAML or JSON document."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError(path, str(e)) from e

    try:
        if path.suffix.lower() == ".json":
            document = json.loads(text)
        else:
            document = yaml.load(text, Loader=_SpecLoader)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ParseError(path, str(e)) from e

    if document is None:
        raise ParseError(path, "document is empty")
    return _normalize(document)


def check_openapi_version(document: Any, path: Path) -> None:
    """Require an `openapi: 3.0.x` header on the root document."""
    if not isinstance(document, dict):
        raise ParseError(path, "root document is not a mapping")
    version = document.get("openapi")
    if not isinstance(version, str) or not _OPENAPI_VERSION.match(version.strip()):
        raise ParseError(path, f"unsupported OpenAPI version {version!r} (expected 3.0.x)")


class DocumentRegistry:
    """Documents loaded during one resolution pass, keyed by absolute path.

    Also records the (mtime_ns, size) of every file as it was read, so watch
    mode can compare later edits against what the pass actually saw.
    """

    def __init__(self) -> None:
        self._documents: dict[Path, Any] = {}
        self._requested: dict[Path, None] = {}
        self._observed: dict[Path, tuple[int, int]] = {}

    def __contains__(self, path: Path) -> bool:
        return Path(path).resolve() in self._documents

    @property
    def paths(self) -> list[Path]:
        """Every file loaded so far, in load order."""
        return list(self._documents)

    @property
    def dependencies(self) -> list[Path]:
        """Every file the pass asked for, including ones that failed to load."""
        return list(self._requested)

    @property
    def observed(self) -> dict[Path, tuple[int, int]]:
        """File state at read time for every document read from disk, parsed or not."""
        return dict(self._observed)

    def add(self, path: Path, document: Any) -> None:
        """Register an already-parsed ``document`` as the content of ``path``.

        Later loads of ``path`` return it without touching the disk.
        """
        path = Path(path).resolve()
        self._requested.setdefault(path, None)
        self._documents[path] = document

    def load(self, path: Path) -> Any:
        """Return the parsed document at ``path``, parsing it on first use."""
        path = Path(path).resolve()
        self._requested.setdefault(path, None)
        if path in self._documents:
            log.debug("Reusing %s", path)
            return self._documents[path]

        log.debug("Loading %s", path)
        try:
            stat = path.stat()
        except OSError:
            pass  # parse_document reports it
        else:
            self._observed[path] = (stat.st_mtime_ns, stat.st_size)
        document = parse_document(path)
        self._documents[path] = document
        return document
