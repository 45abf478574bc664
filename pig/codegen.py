"""Render templates and write generated output.

For each config entry: resolve the OpenAPI document, dump the context, then
render every `*.jinja` template under `in` into the mirrored path under
`out` with the `.jinja` suffix dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import jinja2

from .config import Config, ConfigEntry
from .errors import PigError, RenderCancelled, RenderError
from .exporter import write_context, write_file
from .loader import DocumentRegistry
from .log import timer
from .naming import FILTERS
from .resolver import resolve_file

log = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".jinja"


@dataclass
class EntryOutcome:
    """Result of rendering one config entry.

    ``observed`` maps each document parsed by the pass to its
    (mtime_ns, size) at read time.
    """

    entry: ConfigEntry
    error: PigError | None = None
    written: list[Path] = field(default_factory=list)
    dependencies: set[Path] = field(default_factory=set)
    observed: dict[Path, tuple[int, int]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


def build_environment(template_dir: Path) -> jinja2.Environment:
    """Jinja2 environment rooted at an entry's template directory."""
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(template_dir)),
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters.update(FILTERS)
    return env


def template_names(template_dir: Path) -> list[str]:
    """All `*.jinja` templates under ``template_dir``, as posix relative names."""
    return sorted(
        path.relative_to(template_dir).as_posix()
        for path in template_dir.rglob(f"*{TEMPLATE_SUFFIX}")
        if path.is_file()
    )


def output_path(out_dir: Path, template: str) -> Path:
    return out_dir / template[: -len(TEMPLATE_SUFFIX)]


def render_template(env: jinja2.Environment, template: str, context: dict[str, Any]) -> str:
    """Render one template, surfacing any failure inside it as RenderError.

    Besides engine errors this covers exceptions raised by the template's own
    expressions and filters (division by zero, sorting mixed types...).
    """
    try:
        return env.get_template(template).render(context)
    except jinja2.TemplateError as e:
        raise RenderError(template, str(e)) from e
    except Exception as e:
        raise RenderError(template, f"{type(e).__name__}: {e}") from e


def _check(cancelled: Callable[[], bool] | None, entry: ConfigEntry) -> None:
    if cancelled is not None and cancelled():
        raise RenderCancelled(f"Render of entry {entry} superseded")


def render_entry(
    entry: ConfigEntry,
    registry: DocumentRegistry | None = None,
    cancelled: Callable[[], bool] | None = None,
) -> list[Path]:
    """Run one resolution pass for ``entry`` and write its outputs.

    ``cancelled`` is polled before every write; once it returns true the
    pass stops with RenderCancelled. Returns the files written.
    """
    entry.validate()
    tree, _ = resolve_file(entry.api, registry)

    _check(cancelled, entry)
    written = write_context(tree, entry.output)

    env = build_environment(entry.input)
    for template in template_names(entry.input):
        content = render_template(env, template, tree)
        path = output_path(entry.output, template)
        _check(cancelled, entry)
        write_file(path, content)
        log.info("Generated %s", path)
        written.append(path)

    return written


def run_entry(entry: ConfigEntry, cancelled: Callable[[], bool] | None = None) -> EntryOutcome:
    """Render one entry, recording pig errors on the outcome instead of raising.

    RenderCancelled still propagates. The outcome's dependencies list every
    document the pass asked for, even when it failed part way.
    """
    outcome = EntryOutcome(entry=entry)
    registry = DocumentRegistry()
    try:
        with timer(f"Entry {entry}", log):
            outcome.written = render_entry(entry, registry, cancelled)
    except RenderCancelled:
        raise
    except PigError as e:
        outcome.error = e
    finally:
        outcome.dependencies = {entry.api, *registry.dependencies}
        outcome.observed = registry.observed
    return outcome


def run(config: Config) -> list[EntryOutcome]:
    """Render every entry of ``config``; one failure does not stop the rest."""
    outcomes = [run_entry(entry) for entry in config.entries]
    failed = [o for o in outcomes if not o.ok]
    if failed:
        log.error("%d of %d entries failed", len(failed), len(outcomes))
    else:
        log.info("Rendered %d entries", len(outcomes))
    return outcomes
