"""Resolve every $ref of an OpenAPI document tree.

Walks the root document depth-first and replaces each reference node with
its dereferenced target, annotated with where it came from:

    $ref   normalised reference string
    $file  absolute path of the target document
    $keys  key path from the document root to the target
    $name  last key of the path

References may cross file boundaries. Cycles are detected with an explicit
stack of canonical identities shared by the whole pass, so A -> B -> C -> A
across three files fails the same way as a same-file A -> A.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .errors import (
    CircularReferenceError,
    LoadError,
    MalformedReferenceError,
    ParseError,
    ReferenceNotFoundError,
)
from .loader import DocumentRegistry, check_openapi_version
from .reference import Identity, Reference, parse_reference

log = logging.getLogger(__name__)

REF = "$ref"
RESERVED_KEYS = ("$ref", "$file", "$keys", "$name")


def navigate(document: Any, reference: Reference, referrer: Path | None = None) -> Any:
    """Follow the key path of ``reference`` inside ``document``.

    ``referrer`` is the file holding the $ref, reported when the path is missing.
    """
    node = document
    for depth, key in enumerate(reference.keys):
        if isinstance(node, dict) and key in node:
            node = node[key]
        elif isinstance(node, list) and key.isdigit() and int(key) < len(node):
            node = node[int(key)]
        else:
            raise ReferenceNotFoundError(
                reference.raw, reference.file, reference.keys, reference.keys[: depth + 1], referrer
            )
    return node


def _annotate(target: dict[str, Any], reference: Reference) -> dict[str, Any]:
    collisions = [key for key in RESERVED_KEYS if key in target]
    if collisions:
        log.debug("%s defines reserved keys %s; overriding", reference, ", ".join(collisions))

    resolved = {key: value for key, value in target.items() if key not in RESERVED_KEYS}
    resolved["$ref"] = reference.raw
    resolved["$file"] = str(reference.file)
    resolved["$keys"] = list(reference.keys)
    resolved["$name"] = reference.name
    return resolved


class Resolver:
    """One resolution pass.

    Holds the document registry, the resolution stack and the per-identity
    cache of resolved targets; none of these outlive the pass.
    """

    def __init__(self, registry: DocumentRegistry | None = None) -> None:
        self.registry = registry if registry is not None else DocumentRegistry()
        self._stack: list[Identity] = []
        self._resolved: dict[Identity, dict[str, Any]] = {}

    def resolve(self, node: Any, file: Path) -> Any:
        """Return a copy of ``node`` with every reference resolved.

        ``file`` is the absolute path of the document ``node`` belongs to;
        relative references are resolved against its directory.
        """
        if isinstance(node, dict):
            ref = node.get(REF)
            if isinstance(ref, str):
                return self._resolve_reference(node, ref, file)
            return {key: self.resolve(value, file) for key, value in node.items()}
        if isinstance(node, list):
            return [self.resolve(value, file) for value in node]
        return node

    def _resolve_reference(self, node: dict[str, Any], ref: str, file: Path) -> dict[str, Any]:
        reference = parse_reference(ref, file)
        identity = reference.identity

        if len(node) > 1:
            log.debug(
                "Ignoring keys next to $ref %r in %s: %s",
                ref, file, ", ".join(key for key in node if key != REF),
            )

        if identity in self._stack:
            start = self._stack.index(identity)
            raise CircularReferenceError(self._stack[start:])

        if identity not in self._resolved:
            self._stack.append(identity)
            try:
                document = self._load(reference, file)
                target = self.resolve(navigate(document, reference, file), reference.file)
            finally:
                self._stack.pop()

            if not isinstance(target, dict):
                raise MalformedReferenceError(
                    ref, file, f"target {reference} is a {type(target).__name__}, not a mapping"
                )
            self._resolved[identity] = target

        return _annotate(self._resolved[identity], reference)

    def _load(self, reference: Reference, referrer: Path) -> Any:
        try:
            return self.registry.load(reference.file)
        except (LoadError, ParseError) as e:
            raise type(e)(e.path, e.reason, referrer=referrer) from e


def resolve(root: Any, root_file: Path, registry: DocumentRegistry | None = None) -> Any:
    """Resolve an already-parsed root document located at ``root_file``.

    Same-document references are looked up in ``root`` itself, so
    ``root_file`` need not exist on disk; it anchors relative references and
    the $file of same-document targets.
    """
    if registry is None:
        registry = DocumentRegistry()
    root_file = Path(root_file).resolve()
    if root_file not in registry:
        registry.add(root_file, root)
    return Resolver(registry).resolve(root, root_file)


def resolve_file(
    path: Path, registry: DocumentRegistry | None = None
) -> tuple[Any, DocumentRegistry]:
    """Load the OpenAPI root at ``path`` and resolve it in one pass.

    Returns the context tree and the registry of every document the pass
    loaded. Pass a fresh ``registry`` to inspect it after a failure.
    """
    if registry is None:
        registry = DocumentRegistry()
    path = Path(path).resolve()
    root = registry.load(path)
    check_openapi_version(root, path)
    return resolve(root, path, registry), registry
