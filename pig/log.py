"""Console logging for pig.

One RichHandler on the root logger; modules log through
``logging.getLogger(__name__)``. ``timer`` brackets a unit of work (one
config entry) and reports how it ended.
"""

from __future__ import annotations

import logging
import os
import time

from rich.logging import RichHandler

from .errors import RenderCancelled

ENV_LEVEL = "PIG_LOG_LEVEL"
LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def setup_logging(level: str | None = None) -> None:
    """Send log records to the console through RichHandler. Safe to call twice.

    Level: argument, else env `PIG_LOG_LEVEL`, else INFO. Unknown names fall
    back to INFO. Tracebacks are only shown at DEBUG.
    """
    if level is None:
        level = os.environ.get(ENV_LEVEL, "INFO")
    level = str(level).upper().strip()
    if level not in LEVELS:
        level = "INFO"

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = RichHandler(
        rich_tracebacks=level == "DEBUG",
        show_path=False,
        markup=False,
        log_time_format="[%H:%M:%S]",
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(level)


class timer:
    """Log how long a block took and how it ended.

    Success is logged at INFO with the duration, a superseded watch-mode
    render at INFO, and any other exception at ERROR with its message.
    Exceptions are never swallowed.

    Example:
        with timer("Entry api.yaml -> out", log):
            ...
    """

    def __init__(self, name: str, logger: logging.Logger | None = None):
        self.name = name
        self.logger = logger or logging.getLogger("pig")
        self.t0 = 0.0

    def __enter__(self):
        self.t0 = time.perf_counter()
        self.logger.debug("▶ %s", self.name)
        return self

    def __exit__(self, exc_type, exc, tb):
        dt = time.perf_counter() - self.t0
        if exc is None:
            self.logger.info("✓ %s (%.2f s)", self.name, dt)
        elif isinstance(exc, RenderCancelled):
            self.logger.info("↷ %s superseded after %.2f s", self.name, dt)
        else:
            self.logger.error("✗ %s failed after %.2f s: %s", self.name, dt, exc)
        return False
