"""Messages exchanged between the sync coordinator and its consumers.

Consumers (tray menu, gallery windows) send *commands* to the
coordinator through ``SyncCoordinator.send``, which queues them for its
loop thread. The coordinator publishes *updates* back on a ``Channel``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from record_desktop.lister import FileList

logger = logging.getLogger(__name__)

# ---- consumer -> coordinator -------------------------------------------


@dataclass(frozen=True)
class OpenFile:
    url: str
    name = "OPEN_FILE"


@dataclass(frozen=True)
class CopyToClipboard:
    url: str
    name = "COPY_TO_CLIPBOARD"


@dataclass(frozen=True)
class DeleteFile:
    url: str
    name = "DELETE_FILE"


@dataclass(frozen=True)
class Upload:
    url: str
    name = "UPLOAD"


@dataclass(frozen=True)
class Refresh:
    """Re-list the folder (a capture appeared or something else changed)."""

    name = "REFRESH"


Command = Union[OpenFile, CopyToClipboard, DeleteFile, Upload, Refresh]

# ---- coordinator -> consumers ------------------------------------------


@dataclass(frozen=True)
class FilesChanged:
    """A new file-list snapshot.

    ``sequence`` increases with every snapshot the coordinator publishes.
    """

    sequence: int
    files: FileList
    name = "NEW_FILE"


M = TypeVar("M")


class Channel(Generic[M]):
    """Ordered, fire-and-forget delivery to a set of subscribers.

    ``send`` calls every subscriber synchronously on the sending thread,
    in subscription order. A subscriber that raises is logged and does not
    stop delivery to the others.
    """

    def __init__(self, name: str = "channel"):
        self.name = name
        self._subscribers: list[Callable[[M], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[M], None]) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Callable[[M], None]) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def send(self, message: M) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(message)
            except Exception:
                logger.exception(
                    "Subscriber failed handling %s on %s",
                    getattr(message, "name", type(message).__name__),
                    self.name,
                )
