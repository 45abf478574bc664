from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from . import __version__
from .codegen import run
from .config import load_config
from .errors import ConfigError
from .log import LEVELS, setup_logging
from .watch import Watcher


log = logging.getLogger("pig")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pig",
        description="Render Jinja2 templates from a resolved OpenAPI 3.0.x document.",
    )
    p.add_argument(
        "config",
        nargs="?",
        type=Path,
        default=None,
        help="path to pig.yaml (default: search the working directory and its parents)",
    )
    p.add_argument("-w", "--watch", action="store_true", help="re-render when inputs change")
    p.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "--log-level",
        default=None,
        choices=LEVELS,
        type=str.upper,
        help="log level (or env PIG_LOG_LEVEL)",
    )
    return p


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config, watch=args.watch)
    except ConfigError as e:
        log.error("%s", e)
        return 1

    if config.watch:
        Watcher(config).run()
        return 0

    outcomes = run(config)
    return 0 if all(o.ok for o in outcomes) else 1
