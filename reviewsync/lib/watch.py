"""
File watching as cancellable subscriptions.

watchdog delivers events on its observer thread; the handler only enqueues
them. One dedicated loop per subscription drains the queue, waits for the
writes to settle (debounce) and then calls the callback once per burst.
Callback errors are logged and the watch keeps running.

Usage:
    sub = FileWatch([path], on_change, debounce=0.1)
    sub.start()
    ...
    sub.close()
"""

import logging
import os
import queue
import threading
from pathlib import Path
from typing import Callable, Iterable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

# Event types that can mean "content changed". Ignores opened / closed_no_write.
CHANGE_EVENTS = {"modified", "created", "moved", "deleted", "closed"}

_STOP = object()


def _normalize(path) -> str:
    return os.path.realpath(os.fspath(path))


class _QueueHandler(FileSystemEventHandler):
    """Forwards events for watched files onto a queue."""

    def __init__(self, paths: set[str], events: queue.Queue):
        super().__init__()
        self.paths = paths
        self.events = events

    def on_any_event(self, event) -> None:
        if event.is_directory or event.event_type not in CHANGE_EVENTS:
            return
        for raw in (event.src_path, getattr(event, "dest_path", None)):
            if not raw:
                continue
            if isinstance(raw, bytes):
                raw = os.fsdecode(raw)
            path = _normalize(raw)
            if path in self.paths:
                self.events.put(path)


class FileWatch:
    """Subscription to changes of a fixed set of files."""

    def __init__(
        self,
        paths: Iterable[Path],
        callback: Callable[[set[str]], None],
        debounce: float = 0.1,
        name: str = "watch",
    ):
        self.paths = {_normalize(p) for p in paths}
        self.callback = callback
        self.debounce = debounce
        self.name = name
        self._events: queue.Queue = queue.Queue()
        self._observer = None
        self._thread = None

    @property
    def active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "FileWatch":
        if self.active:
            return self

        observer = Observer()
        handler = _QueueHandler(self.paths, self._events)
        directories = sorted({os.path.dirname(p) for p in self.paths})
        for directory in directories:
            if not os.path.isdir(directory):
                logger.debug(f"[{self.name}] Not watching missing directory {directory}")
                continue
            observer.schedule(handler, directory, recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer

        self._thread = threading.Thread(target=self._run, name=f"reviewsync-{self.name}", daemon=True)
        self._thread.start()
        logger.debug(f"[{self.name}] Watching {len(self.paths)} file(s) in {len(directories)} dir(s)")
        return self

    def _collect_burst(self, first: str) -> set[str] | None:
        """Gather events until none arrive for `debounce` seconds. None means stop."""
        changed = {first}
        while True:
            try:
                item = self._events.get(timeout=self.debounce)
            except queue.Empty:
                return changed
            if item is _STOP:
                return None
            changed.add(item)

    def _run(self) -> None:
        while True:
            item = self._events.get()
            if item is _STOP:
                return
            changed = self._collect_burst(item)
            if changed is None:
                return
            try:
                self.callback(changed)
            except Exception as e:
                logger.warning(f"[{self.name}] Change handler failed: {e}")

    def close(self) -> None:
        """Stop watching. Safe to call more than once."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=2)
            self._observer = None
        if self._thread is not None:
            self._events.put(_STOP)
            self._thread.join(timeout=2)
            self._thread = None

    def __enter__(self) -> "FileWatch":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.close()
