"""File change watching with debounced notifications.

The root is watched recursively through a single observer watch. Changes
under excluded directories (``.git``, ``node_modules``, ``vendor``) still
reach the handler and are dropped there.
Filesystem events arrive on the observer thread and are handed to the event
loop, where a single pending timer collapses a burst of saves into one
notification.
"""

from __future__ import annotations

import asyncio
import os
import threading

from loguru import logger
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from hotreload.config import DEFAULT_EXCLUDED_MARKERS

DEBOUNCE_DELAY = 0.2

IGNORED_PREFIXES = (".",)
IGNORED_SUFFIXES = ("~", ".swp")


def event_path(event: FileSystemEvent) -> str:
    """Path the event leaves behind (the destination for a move)."""
    if event.event_type == EVENT_TYPE_MOVED:
        return os.fsdecode(event.dest_path)
    return os.fsdecode(event.src_path)


def is_ignored_name(path: str) -> bool:
    name = os.path.basename(path)
    return name.startswith(IGNORED_PREFIXES) or name.endswith(IGNORED_SUFFIXES)


def is_excluded(path, root, markers=DEFAULT_EXCLUDED_MARKERS) -> bool:
    """True if ``path``, taken relative to ``root``, contains an excluded marker."""
    rel = os.path.relpath(path, root)
    if rel == os.curdir:
        return False
    return any(marker in rel for marker in markers)


def qualifies(event: FileSystemEvent) -> bool:
    """Whether a filesystem event should trigger a reload.

    Writes and creations count, a move counts as the creation of its
    destination. Directory mtime updates, deletions and hidden, backup or
    swap files are ignored.
    """
    if event.event_type not in (EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED):
        return False
    if event.is_directory and event.event_type == EVENT_TYPE_MODIFIED:
        return False
    return not is_ignored_name(event_path(event))


class Debouncer:
    """Single-slot timer that fires ``callback`` once a burst has settled.

    All state lives on ``loop``; ``trigger`` must run on the loop thread and
    ``trigger_threadsafe`` may be called from anywhere.
    """

    def __init__(self, delay, callback, loop: asyncio.AbstractEventLoop):
        self.delay = delay
        self.callback = callback
        self.loop = loop
        self._timer: asyncio.TimerHandle | None = None
        self._tasks = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def trigger(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self.loop.call_later(self.delay, self._fire)

    def trigger_threadsafe(self) -> None:
        self.loop.call_soon_threadsafe(self.trigger)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        result = self.callback()
        if asyncio.iscoroutine(result):
            task = self.loop.create_task(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            task.add_done_callback(self._log_failure)

    def _log_failure(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is None:
            return
        exc = task.exception()
        logger.opt(exception=exc).error("change notification failed: {}", exc)


class ChangeWatcher(FileSystemEventHandler):
    """Watch a directory tree and call ``on_change`` after each burst of edits."""

    def __init__(
        self,
        root,
        on_change,
        loop: asyncio.AbstractEventLoop,
        delay: float = DEBOUNCE_DELAY,
        markers=DEFAULT_EXCLUDED_MARKERS,
    ):
        super().__init__()
        self.root = os.path.abspath(root)
        self.markers = tuple(markers)
        self.debouncer = Debouncer(delay, on_change, loop)
        self.observer = None
        self._watched = set()
        self._watched_lock = threading.Lock()

    @property
    def watched(self) -> frozenset:
        """Directories whose changes count, excluded subtrees left out."""
        with self._watched_lock:
            return frozenset(self._watched)

    def start(self) -> None:
        """Start the observer with one recursive watch on the root.

        Failing to start the observer or to watch the root is fatal and
        propagates.
        """
        self.observer = Observer()
        self.observer.start()
        try:
            self.observer.schedule(self, self.root, recursive=True)
        except OSError:
            self.stop()
            raise
        self.track_tree(self.root)
        logger.info("Watching for changes in: {}", self.root)

    def stop(self) -> None:
        self.debouncer.cancel()
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None

    def track_tree(self, top: str) -> None:
        """Walk ``top`` and add every directory outside the excluded markers."""

        def on_walk_error(err: OSError) -> None:
            logger.warning("error walking directory {}: {}", err.filename, err)

        found = []
        for dirpath, dirnames, _ in os.walk(top, onerror=on_walk_error):
            if is_excluded(dirpath, self.root, self.markers):
                dirnames[:] = []
                continue
            dirnames[:] = [
                d for d in dirnames if not is_excluded(os.path.join(dirpath, d), self.root, self.markers)
            ]
            found.append(dirpath)
        with self._watched_lock:
            self._watched.update(found)

    def untrack_tree(self, top: str) -> None:
        """Forget ``top`` and everything below it."""
        prefix = top.rstrip(os.sep) + os.sep
        with self._watched_lock:
            self._watched = {p for p in self._watched if p != top and not p.startswith(prefix)}

    def on_any_event(self, event: FileSystemEvent) -> None:
        try:
            self.handle_event(event)
        except Exception:
            logger.exception("Watcher error while handling {}", event)

    def handle_event(self, event: FileSystemEvent) -> bool:
        """Filter one event and re-arm the debouncer; returns True if it counted.

        The kernel reports changes under excluded directories too; they are
        dropped here by matching the directory holding the changed entry
        against the excluded markers, the same test the walk applies.
        """
        if event.is_directory and event.event_type in (EVENT_TYPE_DELETED, EVENT_TYPE_MOVED):
            self.untrack_tree(os.fsdecode(event.src_path))
        if not qualifies(event):
            return False
        path = event_path(event)
        if is_excluded(os.path.dirname(path), self.root, self.markers):
            return False

        logger.info("File changed: {}", path)
        if event.is_directory:
            self.track_tree(path)
        self.debouncer.trigger_threadsafe()
        return True
