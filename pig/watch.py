"""Watch mode: re-render entries when their files change.

A polling thread snapshots the files of every entry and pushes ChangeEvents
onto a queue. The main loop turns events into render tasks on RenderLanes,
one lane per output directory: tasks on a lane run one at a time, and a task
superseded by a newer trigger for the same entry stops before its next write
(or is skipped if it has not started yet).
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable

from .codegen import EntryOutcome, run_entry
from .config import Config, ConfigEntry, load_config
from .errors import ConfigError, RenderCancelled

log = logging.getLogger(__name__)

POLL_INTERVAL = 0.2

CONFIG = "config"
DOCUMENTS = "documents"
TEMPLATES = "templates"

_State = tuple[int, int]


@dataclass(frozen=True)
class ChangeEvent:
    kind: str
    index: int | None = None
    paths: frozenset[Path] = frozenset()


class ChangeDetector:
    """Detects created, modified and removed files among watched paths.

    Directories are watched recursively.
    """

    def __init__(
        self, paths: Iterable[Path] = (), baseline: dict[Path, _State] | None = None
    ) -> None:
        self._paths: set[Path] = set()
        self._snapshot: dict[Path, _State] = {}
        self.watch(paths, baseline)

    @property
    def paths(self) -> set[Path]:
        return set(self._paths)

    def watch(self, paths: Iterable[Path], baseline: dict[Path, _State] | None = None) -> None:
        """Replace the watched paths, keeping known state of files still watched.

        Without ``baseline`` newly watched files start from their current
        state. With it they start from the state recorded there (what a
        render pass read), and new files missing from it count as unseen, so
        an edit made while the pass ran is reported by the next poll.
        """
        self._paths = {Path(p) for p in paths}
        fresh = self._scan()
        snapshot: dict[Path, _State] = {}
        for path, state in fresh.items():
            if path in self._snapshot:
                snapshot[path] = self._snapshot[path]
            elif baseline is None:
                snapshot[path] = state
            elif path in baseline:
                snapshot[path] = baseline[path]
        self._snapshot = snapshot

    def _scan(self) -> dict[Path, _State]:
        files: dict[Path, _State] = {}
        for path in self._paths:
            candidates = path.rglob("*") if path.is_dir() else [path]
            for candidate in candidates:
                try:
                    stat = candidate.stat()
                except OSError:
                    continue
                if not candidate.is_dir():
                    files[candidate] = (stat.st_mtime_ns, stat.st_size)
        return files

    def poll(self) -> set[Path]:
        """Paths whose state changed since the previous poll."""
        current = self._scan()
        changed = {
            path
            for path in current.keys() | self._snapshot.keys()
            if current.get(path) != self._snapshot.get(path)
        }
        self._snapshot = current
        return changed


class PollingEventSource:
    """Polls groups of paths on a background thread and queues ChangeEvents."""

    def __init__(self, events: queue.Queue, interval: float = POLL_INTERVAL) -> None:
        self.events = events
        self.interval = interval
        self._groups: dict[tuple[str, int | None], ChangeDetector] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def watch(
        self,
        kind: str,
        index: int | None,
        paths: Iterable[Path],
        baseline: dict[Path, _State] | None = None,
    ) -> None:
        with self._lock:
            detector = self._groups.get((kind, index))
            if detector is None:
                self._groups[(kind, index)] = ChangeDetector(paths, baseline)
            else:
                detector.watch(paths, baseline)

    def clear(self) -> None:
        with self._lock:
            self._groups.clear()

    def poll_once(self) -> None:
        with self._lock:
            for (kind, index), detector in self._groups.items():
                changed = detector.poll()
                if changed:
                    self.events.put(ChangeEvent(kind, index, frozenset(changed)))

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll_once()

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="pig-poll", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None


class RenderLane:
    """Serialised render tasks for one output directory."""

    def __init__(self, output: Path) -> None:
        self.output = output
        self._running = threading.Lock()
        self._state = threading.Lock()
        self._generations: dict[int, int] = {}
        self._threads: list[threading.Thread] = []

    def _current(self, key: int) -> int:
        with self._state:
            return self._generations.get(key, 0)

    def submit(self, key: int, job: Callable[[Callable[[], bool]], Any]) -> threading.Thread:
        """Queue ``job`` for entry ``key``, superseding earlier tasks for it.

        ``job`` receives a callable that turns true once a newer task for the
        same key has been submitted.
        """
        with self._state:
            generation = self._generations.get(key, 0) + 1
            self._generations[key] = generation

        def superseded() -> bool:
            return self._current(key) != generation

        def task() -> None:
            with self._running:
                if superseded():
                    log.debug("Skipping superseded render for %s", self.output)
                    return
                try:
                    job(superseded)
                except RenderCancelled as e:
                    log.debug("%s", e)

        thread = threading.Thread(target=task, name=f"pig-render-{key}", daemon=True)
        with self._state:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()
        return thread

    def join(self, timeout: float | None = None) -> None:
        """Wait for every submitted task."""
        with self._state:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout)


class Watcher:
    """Renders every entry, then re-renders on change until interrupted."""

    def __init__(self, config: Config, interval: float = POLL_INTERVAL) -> None:
        self.config = config
        self.events: queue.Queue = queue.Queue()
        self.source = PollingEventSource(self.events, interval)
        self.lanes: dict[Path, RenderLane] = {}
        self._config_lock = threading.Lock()

    def _setup(self) -> None:
        self.source.clear()
        self.source.watch(CONFIG, None, [self.config.file])
        for entry in self.config.entries:
            self.lanes.setdefault(entry.output, RenderLane(entry.output))
            self.source.watch(DOCUMENTS, entry.index, [entry.api])
            self.source.watch(TEMPLATES, entry.index, [entry.input])

    def _is_current(self, entry: ConfigEntry) -> bool:
        entries = self.config.entries
        return entry.index < len(entries) and entries[entry.index] is entry

    def _render(self, entry: ConfigEntry, cancelled: Callable[[], bool]) -> EntryOutcome:
        outcome = run_entry(entry, cancelled)
        with self._config_lock:
            # a reload may have replaced the entry while it rendered
            if self._is_current(entry):
                self.source.watch(DOCUMENTS, entry.index, outcome.dependencies, outcome.observed)
            else:
                log.debug("Entry %s no longer configured, not watching its documents", entry)
        return outcome

    def trigger(self, entry: ConfigEntry) -> threading.Thread:
        lane = self.lanes[entry.output]
        return lane.submit(entry.index, lambda cancelled: self._render(entry, cancelled))

    def render_all(self) -> None:
        for entry in self.config.entries:
            self.trigger(entry)

    def join(self, timeout: float | None = None) -> None:
        for lane in list(self.lanes.values()):
            lane.join(timeout)

    def handle(self, event: ChangeEvent) -> None:
        if event.kind == CONFIG:
            log.info("Configuration changed, reloading %s", self.config.file)
            try:
                config = load_config(self.config.file, watch=True)
            except ConfigError as e:
                log.error("%s", e)
                return
            with self._config_lock:
                self.config = config
                self._setup()
            self.render_all()
            return

        if event.index is None or event.index >= len(self.config.entries):
            return
        entry = self.config.entries[event.index]
        for path in sorted(event.paths):
            log.info("Changed: %s", path)
        self.trigger(entry)

    def run(self) -> None:
        self._setup()
        self.render_all()
        self.source.start()
        log.info("Watching for changes (Ctrl-C to stop)")
        try:
            while True:
                self.handle(self.events.get())
        except KeyboardInterrupt:
            log.info("Stopped watching")
        finally:
            self.source.stop()
