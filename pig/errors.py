"""Error taxonomy.

Every error raised by pig derives from PigError and carries the structured
context (file, key path, cycle chain, template) needed to locate the problem.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class PigError(Exception):
    """Base class for all pig errors."""


class ConfigError(PigError):
    """The configuration file or one of its entries is invalid."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(f"{message}: {path}" if path else message)


class LoadError(PigError):
    """A document could not be read from disk.

    ``referrer`` is the file whose $ref asked for it, when there is one.
    """

    def __init__(self, path: Path, reason: str, referrer: Path | None = None) -> None:
        self.path = path
        self.reason = reason
        self.referrer = referrer
        super().__init__(f"Cannot read {path}: {reason}" + _referenced_from(referrer))


class ParseError(PigError):
    """A document is not valid YAML/JSON, or not an OpenAPI 3.0.x root."""

    def __init__(self, path: Path, reason: str, referrer: Path | None = None) -> None:
        self.path = path
        self.reason = reason
        self.referrer = referrer
        super().__init__(f"Cannot parse {path}: {reason}" + _referenced_from(referrer))


class ResolutionError(PigError):
    """Base class for $ref resolution failures."""


class MalformedReferenceError(ResolutionError):
    """A $ref string cannot be decoded, or points at something unusable."""

    def __init__(self, ref: str, path: Path, reason: str) -> None:
        self.ref = ref
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed $ref {ref!r} in {path}: {reason}")


class ReferenceNotFoundError(ResolutionError):
    """The key path of a $ref does not exist in its target document."""

    def __init__(
        self,
        ref: str,
        path: Path,
        keys: Sequence[str],
        missing: Sequence[str],
        referrer: Path | None = None,
    ) -> None:
        self.ref = ref
        self.path = path
        self.keys = tuple(keys)
        self.missing = tuple(missing)
        self.referrer = referrer
        super().__init__(
            f"$ref not found: {ref!r} -> {path}#/{'/'.join(self.keys)} "
            f"(no such node at #/{'/'.join(self.missing)})" + _referenced_from(referrer)
        )


class CircularReferenceError(ResolutionError):
    """A reference chain revisits an identity that is still being resolved.

    ``chain`` holds each identity of the cycle exactly once, in traversal
    order, starting with the identity that was revisited.
    """

    def __init__(self, chain: Sequence[tuple[Path, tuple[str, ...]]]) -> None:
        self.chain = tuple(chain)
        hops = [format_identity(identity) for identity in self.chain]
        hops.append(hops[0])
        super().__init__("Circular reference detected: " + " -> ".join(hops))


class RenderError(PigError):
    """The template engine failed; its message is kept verbatim."""

    def __init__(self, template: str, message: str) -> None:
        self.template = template
        self.message = message
        super().__init__(f"Template {template}: {message}")


class WriteError(PigError):
    """An output file could not be written."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write {path}: {reason}")


class RenderCancelled(PigError):
    """A render pass was superseded by a newer one and stopped early."""


def _referenced_from(referrer: Path | None) -> str:
    return f" (referenced from {referrer})" if referrer is not None else ""


def format_identity(identity: tuple[Path, tuple[str, ...]]) -> str:
    """Render a canonical identity as ``/abs/file.yaml#/a/b``."""
    file, keys = identity
    return f"{file}#/{'/'.join(keys)}"
