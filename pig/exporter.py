"""Dump the resolved context tree for inspection.

Writes `.pig.context.json` and `.pig.context.yaml` into an output directory.
Both files hold the same tree; only the syntax differs.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from .errors import WriteError

log = logging.getLogger(__name__)

JSON_DUMP = ".pig.context.json"
YAML_DUMP = ".pig.context.yaml"


class _NoAliasDumper(yaml.SafeDumper):
    """Resolved subtrees may be shared; always write them out in full."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def to_json(tree: Any) -> str:
    return json.dumps(tree, indent=2, ensure_ascii=False) + "\n"


def to_yaml(tree: Any) -> str:
    return yaml.dump(
        tree,
        Dumper=_NoAliasDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def write_file(path: Path, content: str) -> None:
    """Write ``content`` to ``path``, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise WriteError(path, str(e)) from e


def write_context(tree: Any, out_dir: Path) -> list[Path]:
    """Write both context dumps into ``out_dir``."""
    written = []
    for name, encode in ((JSON_DUMP, to_json), (YAML_DUMP, to_yaml)):
        path = Path(out_dir) / name
        write_file(path, encode(tree))
        log.debug("Wrote %s", path)
        written.append(path)
    return written
