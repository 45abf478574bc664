"""Load the pig.yaml configuration.

The file is a YAML list of entries:

    - api: openapi.yaml     # root OpenAPI document
      in: templates         # directory of *.jinja templates
      out: generated        # output directory

Relative paths are taken relative to the configuration file. When no file
is given, pig.yaml is searched from the working directory upwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import ConfigError

log = logging.getLogger(__name__)

CONFIG_FILE = "pig.yaml"
_ENTRY_KEYS = ("api", "in", "out")


@dataclass(frozen=True)
class ConfigEntry:
    api: Path
    input: Path
    output: Path
    index: int = 0

    def __str__(self) -> str:
        return f"#{self.index} ({self.api.name} -> {self.output})"

    def validate(self) -> None:
        """Check the entry's paths, creating the output directory if needed."""
        if not self.api.is_file():
            raise ConfigError(f"Entry {self.index}: api is not a file", self.api)
        if not self.input.is_dir():
            raise ConfigError(f"Entry {self.index}: in is not a directory", self.input)
        if self.output.exists() and not self.output.is_dir():
            raise ConfigError(f"Entry {self.index}: out is not a directory", self.output)
        try:
            self.output.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Entry {self.index}: cannot create out ({e})", self.output) from e


@dataclass(frozen=True)
class Config:
    file: Path
    entries: list[ConfigEntry] = field(default_factory=list)
    watch: bool = False


def find_config(start: Path | None = None) -> Path:
    """Search for pig.yaml in ``start`` and its parents."""
    start = (start or Path.cwd()).resolve()
    for folder in (start, *start.parents):
        candidate = folder / CONFIG_FILE
        if candidate.is_file():
            return candidate
    raise ConfigError(f"{CONFIG_FILE} not found in {start} or any parent directory")


def _resolve_path(value: str, base_dir: Path) -> Path:
    path = Path(value).expanduser()
    return (path if path.is_absolute() else base_dir / path).resolve()


def parse_entries(raw: object, base_dir: Path, file: Path) -> list[ConfigEntry]:
    """Validate the shape of the loaded YAML and build entries."""
    if not isinstance(raw, list):
        raise ConfigError("Configuration must be a list of {api, in, out} entries", file)

    entries = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigError(f"Entry {index} is not a mapping", file)
        unknown = sorted(str(key) for key in item if key not in _ENTRY_KEYS)
        if unknown:
            raise ConfigError(f"Entry {index} has unknown keys {', '.join(unknown)}", file)
        for key in _ENTRY_KEYS:
            value = item.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"Entry {index} needs a non-empty string {key!r}", file)

        entries.append(ConfigEntry(
            api=_resolve_path(item["api"], base_dir),
            input=_resolve_path(item["in"], base_dir),
            output=_resolve_path(item["out"], base_dir),
            index=index,
        ))
    return entries


def load_config(path: Path | None = None, watch: bool = False) -> Config:
    """Load the configuration at ``path``, or discover it."""
    if path is None:
        file = find_config()
    else:
        file = Path(path).expanduser().resolve()
        if not file.is_file():
            raise ConfigError("Configuration is not a file", file)

    try:
        raw = yaml.safe_load(file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read configuration ({e})", file) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML ({e})", file) from e

    entries = parse_entries(raw, file.parent, file)
    log.debug("Loaded %d entries from %s", len(entries), file)
    return Config(file=file, entries=entries, watch=watch)
