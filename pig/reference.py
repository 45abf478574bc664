"""Decode $ref strings into canonical (file, key path) identities.

Grammar: ``<file>#/<segment>/<segment>/...``. An empty file part refers to
the current document; a relative file part is taken relative to the directory
of the document that contains the $ref. Segments use JSON-pointer escaping
(``~1`` for ``/``, ``~0`` for ``~``) and may be percent-encoded.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

from .errors import MalformedReferenceError, format_identity

# scheme://... or a scheme-only prefix such as "urn:" (but not "C:\")
_REMOTE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]+:")

Identity = tuple[Path, tuple[str, ...]]


@dataclass(frozen=True)
class Reference:
    """A decoded $ref."""

    file: Path
    keys: tuple[str, ...]
    raw: str

    @property
    def identity(self) -> Identity:
        return (self.file, self.keys)

    @property
    def name(self) -> str:
        """Last key segment, or the file stem for a whole-document reference."""
        return self.keys[-1] if self.keys else self.file.stem

    def __str__(self) -> str:
        return format_identity(self.identity)


def escape_segment(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")


def unescape_segment(segment: str) -> str:
    return unquote(segment).replace("~1", "/").replace("~0", "~")


def split_reference(ref: str, current: Path) -> tuple[str, str]:
    """Split a $ref into (file part, fragment without '#')."""
    text = ref.strip()
    if not text:
        raise MalformedReferenceError(ref, current, "empty reference")
    if _REMOTE.match(text):
        raise MalformedReferenceError(ref, current, "remote references are not supported")
    if text.count("#") > 1:
        raise MalformedReferenceError(ref, current, "more than one '#'")

    file_part, _, fragment = text.partition("#")
    fragment = fragment.strip()
    if fragment and not fragment.startswith("/"):
        raise MalformedReferenceError(ref, current, "fragment must start with '/'")
    return file_part.strip(), fragment


def parse_reference(ref: str, current: Path) -> Reference:
    """Decode ``ref`` found in the document at absolute path ``current``."""
    file_part, fragment = split_reference(ref, current)

    if file_part:
        target = Path(file_part).expanduser()
        if not target.is_absolute():
            target = current.parent / target
        file = target.resolve()
    else:
        file = current

    keys = tuple(
        unescape_segment(segment.strip())
        for segment in fragment.split("/")
        if segment.strip()
    )

    raw = file_part + "#"
    if keys:
        raw += "/" + "/".join(escape_segment(key) for key in keys)
    return Reference(file=file, keys=keys, raw=raw)
