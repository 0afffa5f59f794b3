"""File system watcher for record-desktop.

Uses the watchdog library to monitor the capture folder. Bursts of
events (a recording being written, several screenshots in a row) are
coalesced by a debouncer into a single change notification.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from record_desktop.debounce import Debouncer, TimerFactory
from record_desktop.lister import is_media_file

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_SECONDS = 0.5


class CaptureEventHandler(FileSystemEventHandler):
    """Watchdog handler that reports changes to media files."""

    def __init__(self, on_event: Callable[[], None]):
        super().__init__()
        self._on_event = on_event

    def _relevant(self, *paths: str) -> bool:
        return any(p and is_media_file(os.path.basename(p)) for p in paths)

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle a new file creation event."""
        if not event.is_directory and self._relevant(event.src_path):
            logger.debug("Created: %s", event.src_path)
            self._on_event()

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle a file modification event (recordings grow while written)."""
        if not event.is_directory and self._relevant(event.src_path):
            self._on_event()

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle a file deletion event."""
        if not event.is_directory and self._relevant(event.src_path):
            logger.debug("Deleted: %s", event.src_path)
            self._on_event()

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle a rename, into or out of the watched set."""
        dest = getattr(event, "dest_path", "")
        if not event.is_directory and self._relevant(event.src_path, dest):
            logger.debug("Moved: %s -> %s", event.src_path, dest)
            self._on_event()


class FolderWatcher:
    """High-level watcher that combines watchdog + debouncing.

    Usage:
        watcher = FolderWatcher(folder, on_change=coordinator.on_external_change)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        folder: str,
        on_change: Callable[[], None],
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
        timer_factory: TimerFactory | None = None,
    ):
        """Create a new folder watcher."""
        self.folder = folder
        self._debouncer = Debouncer(settle_seconds, on_change, timer_factory)
        self._handler = CaptureEventHandler(self._debouncer.trigger)
        self._observer: Any | None = None
        self._lock = threading.Lock()

    @property
    def handler(self) -> CaptureEventHandler:
        return self._handler

    # ---- lifecycle ----

    def start(self) -> None:
        """Start watching the folder, creating it if it does not exist."""
        with self._lock:
            if self._observer is not None:
                return
            Path(self.folder).mkdir(parents=True, exist_ok=True)
            observer = Observer()
            observer.schedule(self._handler, self.folder, recursive=False)
            observer.start()
            self._observer = observer
        logger.info("Watching '%s'", self.folder)

    def stop(self) -> None:
        """Stop watching and release resources."""
        with self._lock:
            observer = self._observer
            self._observer = None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5)
        self._debouncer.cancel()
        logger.info("Watcher stopped.")

    def retarget(self, folder: str) -> None:
        """Watch *folder* instead of the current one, (re)starting the observer."""
        if folder == self.folder and self.is_running:
            return
        self.stop()
        self.folder = folder
        self.start()

    @property
    def is_running(self) -> bool:
        """Return whether the watcher is currently active."""
        observer = self._observer
        return observer is not None and observer.is_alive()
