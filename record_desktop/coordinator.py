"""
Sync coordinator for record-desktop.

Owns the authoritative list of captures and keeps every consumer (the
tray menu and any open gallery window) in step with the folder on disk.

All state changes happen on a single message-loop thread. Consumers send
commands with ``send()``; folder listings and file actions run on
background threads and post their completions back onto the same queue.
Snapshots go out on ``updates`` in the order they were produced.

Listings are numbered. A listing that completes after a newer one has
already been applied is stale and is dropped, so overlapping refreshes
can finish in any order without an old folder state winning.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from record_desktop.actions import ActionResult, FileActions
from record_desktop.errors import ListingError
from record_desktop.events import (
    Channel,
    Command,
    CopyToClipboard,
    DeleteFile,
    FilesChanged,
    OpenFile,
    Refresh,
    Upload,
)
from record_desktop.lister import FileList, list_files

if TYPE_CHECKING:
    from record_desktop.config import Config
    from record_desktop.notify import Notifier

logger = logging.getLogger(__name__)

Lister = Callable[[str], FileList]
Spawn = Callable[[Callable[[], None], str], None]


def _spawn_thread(target: Callable[[], None], name: str) -> None:
    threading.Thread(target=target, daemon=True, name=name).start()


# ---- internal loop messages ----


@dataclass(frozen=True)
class _ListingDone:
    sequence: int
    files: FileList = ()
    error: ListingError | None = None


@dataclass(frozen=True)
class _DeleteDone:
    result: ActionResult


class _Stop:
    pass


@dataclass
class AppState:
    """Everything the coordinator knows; touched only on the loop thread."""
    files: FileList = ()
    issued_sequence: int = 0  # last listing started
    applied_sequence: int = 0  # last listing whose result was taken
    published_sequence: int = 0  # last snapshot sent to consumers
    pending_deletes: set[str] = field(default_factory=set)
    # url -> first listing sequence issued after its delete succeeded
    deleted: dict[str, int] = field(default_factory=dict)


class SyncCoordinator:
    """
    Reconciles the capture folder with the tray and gallery views.

    Parameters
    ----------
    config : Config
        Read for the folder on every refresh; folder changes trigger one.
    actions : FileActions
        Performs upload / copy / open / delete.
    notifier : Notifier
        Receives every user-visible failure.
    lister : callable, optional
        ``lister(folder)`` returning the newest-first file list.
    spawn : callable, optional
        ``spawn(fn, name)`` runs a listing off the loop thread.
    """

    def __init__(
        self,
        config: Config,
        actions: FileActions,
        notifier: Notifier,
        lister: Lister = list_files,
        spawn: Spawn | None = None,
    ):
        self._config = config
        self._actions = actions
        self._notifier = notifier
        self._lister = lister
        self._spawn = spawn or _spawn_thread
        self._queue: queue.Queue[Any] = queue.Queue()
        self._thread: threading.Thread | None = None
        self.state = AppState()
        self.updates: Channel[FilesChanged] = Channel("updates")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the message loop and subscribe to config changes."""
        if self._thread is not None:
            return
        self._config.subscribe(self._on_config_change)
        self._thread = threading.Thread(
            target=self._loop, daemon=True, name="SyncCoordinator"
        )
        self._thread.start()
        logger.info("Sync coordinator started.")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the message loop; in-flight listings and actions are abandoned."""
        self._config.unsubscribe(self._on_config_change)
        if self._thread is None:
            return
        self._queue.put(_Stop())
        self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("Sync coordinator stopped.")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_pending(self) -> int:
        """Process queued messages on the calling thread until the queue is empty.

        Only meaningful while the loop thread is not running. Returns the
        number of messages handled.
        """
        handled = 0
        while True:
            try:
                msg = self._queue.get_nowait()
            except queue.Empty:
                return handled
            if isinstance(msg, _Stop):
                continue
            self._handle(msg)
            handled += 1

    # ------------------------------------------------------------------
    # Public API (thread-safe)
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> FileList:
        """Return the current authoritative file list."""
        return self.state.files

    def send(self, command: Command) -> None:
        """Queue a consumer command for the loop thread."""
        logger.debug("Received %s", command.name)
        self._queue.put(command)

    def refresh(self) -> None:
        """Re-list the folder and publish the result if it changed."""
        self.send(Refresh())

    def on_external_change(self) -> None:
        """A capture appeared or vanished outside the app."""
        self.refresh()

    def notify_consumers(self, files: FileList) -> None:
        """Publish *files* to every subscribed consumer."""
        self.state.published_sequence += 1
        message = FilesChanged(sequence=self.state.published_sequence, files=files)
        logger.debug(
            "Publishing snapshot %d (%d files)", message.sequence, len(files)
        )
        self.updates.send(message)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _loop(self) -> None:
        while True:
            msg = self._queue.get()
            if isinstance(msg, _Stop):
                break
            self._handle(msg)

    def _handle(self, msg: Any) -> None:
        try:
            if isinstance(msg, Refresh):
                self._start_listing()
            elif isinstance(msg, _ListingDone):
                self._apply_listing(msg)
            elif isinstance(msg, DeleteFile):
                self._delete(msg.url)
            elif isinstance(msg, _DeleteDone):
                self._delete_done(msg.result)
            elif isinstance(msg, OpenFile):
                self._actions.open(msg.url, on_done=self.report_result)
            elif isinstance(msg, CopyToClipboard):
                self._actions.copy_to_clipboard(msg.url, on_done=self.report_result)
            elif isinstance(msg, Upload):
                self._notifier.notify(f"Uploading {msg.url}")
                self._actions.upload(msg.url, on_done=self.report_result)
            else:
                logger.warning("Ignoring unknown message %r", msg)
        except Exception as exc:
            logger.exception("Error handling %r", msg)
            self._notifier.notify("Internal error:", exc)

    # ---- listing ----

    def _start_listing(self) -> None:
        self.state.issued_sequence += 1
        sequence = self.state.issued_sequence
        folder = self._config.folder
        logger.debug("Listing %s (#%d)", folder, sequence)
        self._spawn(lambda: self._list(sequence, folder), f"List-{sequence}")

    def _list(self, sequence: int, folder: str) -> None:
        try:
            files = self._lister(folder)
        except ListingError as exc:
            self._queue.put(_ListingDone(sequence, error=exc))
        except Exception as exc:
            logger.exception("Unexpected error listing %s", folder)
            self._queue.put(_ListingDone(sequence, error=ListingError(folder, str(exc))))
        else:
            self._queue.put(_ListingDone(sequence, files=files))

    def _apply_listing(self, done: _ListingDone) -> None:
        state = self.state
        if done.sequence <= state.applied_sequence:
            logger.debug(
                "Dropping stale listing #%d (applied #%d)",
                done.sequence,
                state.applied_sequence,
            )
            return
        state.applied_sequence = done.sequence

        if done.error is not None:
            self._notifier.notify("Could not refresh files:", done.error)
            return

        # Deletes still in flight stay hidden until they complete, and
        # finished ones stay hidden from listings started before them
        for url, first_clean in list(state.deleted.items()):
            if done.sequence >= first_clean:
                del state.deleted[url]
        files = tuple(
            f
            for f in done.files
            if f.url not in state.pending_deletes and f.url not in state.deleted
        )
        if files == state.files:
            logger.debug("Listing #%d unchanged", done.sequence)
            return
        state.files = files
        self.notify_consumers(files)

    # ---- delete (two-phase) ----

    def _delete(self, url: str) -> None:
        state = self.state
        self._actions.delete(url, on_done=lambda rec: self._queue.put(_DeleteDone(rec)))
        state.pending_deletes.add(url)
        remaining = tuple(f for f in state.files if f.url != url)
        if remaining != state.files:
            state.files = remaining
            self.notify_consumers(remaining)

    def _delete_done(self, result: ActionResult) -> None:
        self.state.pending_deletes.discard(result.url)
        if result.success:
            self.state.deleted[result.url] = self.state.issued_sequence + 1
        else:
            self._notifier.notify(f"Failed to delete {result.url}: {result.error}")
        self._start_listing()

    # ---- other actions ----

    def report_result(self, result: ActionResult) -> None:
        """Turn an action result into a notification (runs on the action thread)."""
        if not result.success:
            self._notifier.notify(
                f"Could not {result.action.replace('_', ' ')} {result.url}: {result.error}"
            )
        elif result.detail and result.action == "upload":
            self._notifier.notify(f"Link copied to clipboard: {result.detail}")

    def _on_config_change(self, key: str, value: Any) -> None:
        if key == "folder":
            logger.info("Folder changed to %s", value)
            self.refresh()
