"""
catalog/watcher.py

Background change notifications for an AssetCatalog, built on watchdog.

The asset root and every category directory are watched non-recursively.
Filesystem events are translated into CategoryChanged messages on a queue;
a single consumer thread owns all reloads, so two reloads of the same
category never run concurrently.

- create/delete/move inside root/<category>/  -> reload that category
- new directory directly under root           -> register, watch, load
- category directory deleted                  -> reload attempt (fails, keeps
                                                 the old snapshot) and the
                                                 watch is dropped; it is
                                                 re-registered on the next
                                                 event for that category

Modification events are ignored. Nothing raised while handling an event
escapes the watcher threads; failures are logged.
"""

import logging
import os
import queue
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .catalog import AssetCatalog

logger = logging.getLogger(__name__)

RELEVANT_EVENTS = frozenset({"created", "deleted", "moved"})


@dataclass(frozen=True)
class CategoryChanged:
    category: str
    discovered: bool = False


_STOP = object()


class _EventRouter(FileSystemEventHandler):
    def __init__(self, watcher: "ChangeWatcher"):
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        try:
            self._watcher.handle_event(event)
        except Exception:
            logger.exception("Cache watcher failed to handle event %r", event)


class ChangeWatcher:
    """
    Keeps `catalog` eventually consistent with the directory tree under catalog.root.

    Usage:
        watcher = ChangeWatcher(catalog)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(self, catalog: AssetCatalog, observer_factory=Observer):
        self.catalog = catalog
        self.root = catalog.root
        self.messages: "queue.Queue" = queue.Queue()
        self._observer_factory = observer_factory
        self._observer = None
        self._handler = _EventRouter(self)
        self._watches: Dict[str, object] = {}
        self._watch_lock = threading.Lock()
        self._consumer: Optional[threading.Thread] = None

    # --- lifecycle ---
    def start(self) -> None:
        self._observer = self._observer_factory()
        self._observer.start()
        try:
            self._observer.schedule(self._handler, self.root, recursive=False)
        except OSError as e:
            logger.error("Cache watcher cannot watch asset root %s: %s", self.root, e,
                         extra={"path": self.root})
        for category in self._existing_categories():
            self.watch_category(category)

        self._consumer = threading.Thread(target=self._consume, name="catalog-reload", daemon=True)
        self._consumer.start()
        logger.info("Cache watcher started on %s (%d categories)", self.root, len(self._watches))

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout)
            self._observer = None
        # watches belong to the stopped observer; start() schedules fresh ones
        with self._watch_lock:
            self._watches.clear()
        if self._consumer is not None:
            self.messages.put(_STOP)
            self._consumer.join(timeout)
            self._consumer = None
        logger.info("Cache watcher stopped")

    def __enter__(self) -> "ChangeWatcher":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        return self._consumer is not None and self._consumer.is_alive()

    def _existing_categories(self) -> List[str]:
        names = set(self.catalog.categories())
        try:
            with os.scandir(self.root) as it:
                names.update(e.name for e in it if e.is_dir())
        except OSError as e:
            logger.warning("Cache watcher cannot list asset root %s: %s", self.root, e)
        return sorted(names)

    # --- watches ---
    def watched_categories(self) -> List[str]:
        with self._watch_lock:
            return sorted(self._watches)

    def watch_category(self, category: str) -> bool:
        """Register `category` in the catalog and start watching its directory."""
        path = self.catalog.register_category(category)
        with self._watch_lock:
            if category in self._watches:
                return True
            if self._observer is None:
                return False
            try:
                self._watches[category] = self._observer.schedule(self._handler, path, recursive=False)
            except OSError as e:
                logger.warning("Cache watcher cannot watch category '%s': %s", category, e,
                               extra={"category": category, "path": path})
                return False
        return True

    def _forget_watch(self, category: str) -> None:
        with self._watch_lock:
            watch = self._watches.pop(category, None)
            if watch is None or self._observer is None:
                return
            try:
                self._observer.unschedule(watch)
            except (KeyError, OSError):
                pass

    # --- event translation ---
    def _category_of(self, path: str) -> Optional[List[str]]:
        rel = os.path.relpath(os.fsdecode(path), self.root)
        if rel == os.curdir or rel == os.pardir or rel.startswith(os.pardir + os.sep):
            return None
        return rel.split(os.sep)

    def handle_event(self, event: FileSystemEvent) -> List[CategoryChanged]:
        """
        Translate one watchdog event into CategoryChanged messages and queue them.
        Returns the queued messages.
        """
        if event.event_type not in RELEVANT_EVENTS:
            return []

        paths = [event.src_path]
        if event.event_type == "moved" and getattr(event, "dest_path", None):
            paths.append(event.dest_path)

        queued: List[CategoryChanged] = []
        for i, path in enumerate(paths):
            parts = self._category_of(path)
            if not parts:
                continue
            category = parts[0]
            appeared = event.event_type == "created" or (event.event_type == "moved" and i == 1)

            if len(parts) == 1:
                if not event.is_directory:
                    continue
                if appeared:
                    self._forget_watch(category)
                    self.watch_category(category)
                    msg = CategoryChanged(category, discovered=True)
                    logger.info("New category detected: %s", category, extra={"category": category})
                else:
                    self._forget_watch(category)
                    msg = CategoryChanged(category)
                    logger.info("Category directory removed: %s", category, extra={"category": category})
            else:
                if category not in self._watches:
                    self.watch_category(category)
                msg = CategoryChanged(category)
                logger.debug("Cache watcher detected change in category '%s': %s", category, path,
                             extra={"category": category, "path": os.fsdecode(path)})

            if msg not in queued:
                queued.append(msg)

        for msg in queued:
            self.messages.put(msg)
        return queued

    # --- reload consumer ---
    def _apply(self, msg: CategoryChanged) -> bool:
        try:
            loaded = self.catalog.load_category(msg.category)
            if loaded and msg.discovered:
                logger.info("Category '%s' is now served (%d files)", msg.category,
                            len(self.catalog.get_files(msg.category) or []), extra={"category": msg.category})
            return loaded
        except Exception:
            logger.exception("Reload of category '%s' failed", msg.category,
                             extra={"category": msg.category})
            return False

    def _consume(self) -> None:
        while True:
            msg = self.messages.get()
            try:
                if msg is _STOP:
                    return
                self._apply(msg)
            finally:
                self.messages.task_done()

    def drain(self) -> int:
        """
        Apply every queued message on the calling thread.
        Meant for use while the consumer thread is not running.
        Returns the number of reloads performed.
        """
        applied = 0
        while True:
            try:
                msg = self.messages.get_nowait()
            except queue.Empty:
                return applied
            try:
                if msg is not _STOP:
                    self._apply(msg)
                    applied += 1
            finally:
                self.messages.task_done()

    def feed(self, events: Iterable[FileSystemEvent]) -> int:
        """Translate a batch of events; returns the number of messages queued."""
        return sum(len(self.handle_event(e)) for e in events)
