"""
Gallery view model for record-desktop.

Holds a gallery window's own copy of the file list and decides which
items should load their image. On mount the first ``INITIAL_VISIBLE``
items are treated as on screen; after the user scrolls (debounced,
trailing edge) each item's rectangle is tested against the viewport.

This module has no GUI dependency so the window code in ``ui`` stays thin.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from typing import NamedTuple

from PIL import Image, UnidentifiedImageError

from record_desktop.debounce import Debouncer, TimerFactory
from record_desktop.events import Channel, FilesChanged
from record_desktop.lister import FileList, FileRecord

logger = logging.getLogger(__name__)

INITIAL_VISIBLE = 10
SCROLL_DEBOUNCE_SECONDS = 0.05
THUMBNAIL_SIZE = (350, 210)


class Rect(NamedTuple):
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


def intersects(item: Rect, viewport: Rect) -> bool:
    """Return True if *item* overlaps *viewport* by at least one pixel."""
    return (
        item.x < viewport.right
        and item.right > viewport.x
        and item.y < viewport.bottom
        and item.bottom > viewport.y
    )


def initial_visibility(files: Sequence[FileRecord], window: int = INITIAL_VISIBLE) -> FileList:
    """Mark the first *window* records visible and the rest hidden."""
    return tuple(replace(f, visible=i < window) for i, f in enumerate(files))


class GalleryModel:
    """A window-local, visibility-annotated view of the file list.

    Never mutates the coordinator's snapshot; every change produces a new
    tuple of records.
    """

    def __init__(self, window: int = INITIAL_VISIBLE):
        self.window = window
        self.files: FileList = ()
        self.sequence = 0

    def mount(self, files: Sequence[FileRecord], sequence: int = 0) -> FileList:
        """Take the first snapshot, before any real layout is known."""
        self.files = initial_visibility(files, self.window)
        self.sequence = sequence
        return self.files

    def apply_snapshot(self, message: FilesChanged) -> bool:
        """Merge a coordinator snapshot; returns False if it was out of date.

        Records already shown keep their visibility; new ones get the
        initial-window rule by position.
        """
        if message.sequence <= self.sequence:
            logger.debug(
                "Ignoring snapshot %d (have %d)", message.sequence, self.sequence
            )
            return False
        known = {f.url: f.visible for f in self.files}
        self.files = tuple(
            replace(f, visible=known.get(f.url, i < self.window))
            for i, f in enumerate(message.files)
        )
        self.sequence = message.sequence
        return True

    def remove(self, url: str) -> FileRecord | None:
        """Drop *url* locally (optimistic delete); returns the removed record."""
        for i, f in enumerate(self.files):
            if f.url == url:
                self.files = self.files[:i] + self.files[i + 1:]
                return f
        return None

    def update_visibility(self, rects: Mapping[str, Rect], viewport: Rect) -> list[int]:
        """Recompute visibility from item rectangles keyed by url.

        Records without a rectangle keep their flag. Returns the indexes
        whose flag changed.
        """
        changed: list[int] = []
        updated: list[FileRecord] = []
        for i, f in enumerate(self.files):
            rect = rects.get(f.url)
            visible = f.visible if rect is None else intersects(rect, viewport)
            if visible != f.visible:
                changed.append(i)
                f = replace(f, visible=visible)
            updated.append(f)
        self.files = tuple(updated)
        return changed


class ScrollTracker:
    """Connects a ``GalleryModel`` to scroll events and snapshot updates.

    ``on_scroll`` may be called for every scroll step; the measurement
    callback runs once, ``SCROLL_DEBOUNCE_SECONDS`` after the last one.
    ``close`` must be called when the window goes away.
    """

    def __init__(
        self,
        model: GalleryModel,
        measure: Callable[[], tuple[Mapping[str, Rect], Rect]],
        on_changed: Callable[[list[int]], None],
        updates: Channel[FilesChanged] | None = None,
        on_snapshot: Callable[[FilesChanged], None] | None = None,
        interval: float = SCROLL_DEBOUNCE_SECONDS,
        timer_factory: TimerFactory | None = None,
    ):
        self._model = model
        self._measure = measure
        self._on_changed = on_changed
        self._debouncer = Debouncer(interval, self.recompute, timer_factory)
        self._unsubscribe: Callable[[], None] | None = None
        self.recompute_count = 0
        if updates is not None and on_snapshot is not None:
            self._unsubscribe = updates.subscribe(on_snapshot)

    def on_scroll(self, *_: object) -> None:
        self._debouncer.trigger()

    def recompute(self) -> None:
        """Measure the layout and apply the new visibility now."""
        self.recompute_count += 1
        rects, viewport = self._measure()
        changed = self._model.update_visibility(rects, viewport)
        if changed:
            logger.debug("Visibility changed for %d item(s)", len(changed))
            self._on_changed(changed)

    def close(self) -> None:
        """Cancel pending checks and stop receiving snapshots."""
        self._debouncer.cancel()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None


def load_thumbnail(path: str, size: tuple[int, int] = THUMBNAIL_SIZE) -> Image.Image | None:
    """Return an RGBA thumbnail of the image at *path*, or None.

    Recordings and unreadable files give None so the caller shows a
    placeholder instead.
    """
    try:
        with Image.open(path) as img:
            img.thumbnail(size)
            return img.convert("RGBA")
    except (OSError, UnidentifiedImageError, ValueError):
        logger.debug("No thumbnail for %s", path, exc_info=True)
        return None
