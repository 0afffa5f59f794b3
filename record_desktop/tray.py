"""System tray icon for record-desktop.

Provides a persistent system-tray presence whose context menu lists the
latest captures (each with upload / delete / save-as) and opens the
gallery, the capture folder, and the settings. The menu is rebuilt in
full every time the sync coordinator publishes a new file list.
"""

import contextlib
import logging
import threading
from collections.abc import Sequence
from typing import Any, Protocol

import pystray
from PIL import Image, ImageDraw
from PIL.Image import Image as PILImage

from record_desktop import __app_name__
from record_desktop.events import FilesChanged
from record_desktop.lister import FileRecord

logger = logging.getLogger(__name__)

LATEST_COUNT = 5

COLOR_IDLE = "#0078D4"


class TrayCallbacks(Protocol):
    """Expected callback interface for the tray icon owner."""

    def on_browse(self) -> None:
        """Show the gallery window."""
        ...

    def on_toggle_gallery(self) -> None:
        """Show the gallery, or close it if it is open (tray icon click)."""
        ...

    def on_open_folder(self) -> None:
        """Open the capture folder in the file manager."""
        ...

    def on_open_settings(self) -> None:
        """Open the settings window."""
        ...

    def on_quit(self) -> None:
        """Quit the application."""
        ...

    def on_upload(self, url: str) -> None:
        ...

    def on_delete(self, url: str) -> None:
        ...

    def on_save_as(self, url: str) -> None:
        ...


def _create_icon_image(color: str = COLOR_IDLE, size: int = 64) -> PILImage:
    """Draw a rounded square with a camera-lens circle in the middle."""
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.rounded_rectangle(
        [(2, 2), (size - 2, size - 2)],
        radius=10,
        fill=color,
    )
    margin = size // 4
    draw.ellipse(
        [(margin, margin), (size - margin, size - margin)],
        fill="white",
    )
    inner = size // 3 + 2
    draw.ellipse(
        [(inner, inner), (size - inner, size - inner)],
        fill=color,
    )
    return img


def _file_menu(callbacks: TrayCallbacks, file: FileRecord) -> pystray.Menu:
    url = file.url
    return pystray.Menu(
        pystray.MenuItem("Upload to imgur", lambda: callbacks.on_upload(url)),
        pystray.MenuItem("Delete", lambda: callbacks.on_delete(url)),
        pystray.MenuItem("Save as", lambda: callbacks.on_save_as(url)),
    )


def build_menu(
    callbacks: TrayCallbacks,
    files: Sequence[FileRecord],
    latest_count: int = LATEST_COUNT,
) -> pystray.Menu:
    """Build the full context menu for *files* (newest first)."""
    latest = [
        pystray.MenuItem(f.filename, _file_menu(callbacks, f))
        for f in files[:latest_count]
    ]
    return pystray.Menu(
        pystray.MenuItem("Latest", pystray.Menu(*latest), enabled=bool(latest)),
        pystray.MenuItem("Browse Images", lambda: callbacks.on_browse()),
        pystray.MenuItem("Open a folder", lambda: callbacks.on_open_folder()),
        pystray.Menu.SEPARATOR,
        pystray.MenuItem("Settings", lambda: callbacks.on_open_settings()),
        pystray.MenuItem("Exit", lambda: callbacks.on_quit()),
        # Clicking the icon activates the default item
        pystray.MenuItem(
            "Gallery",
            lambda: callbacks.on_toggle_gallery(),
            default=True,
            visible=False,
        ),
    )


class SysTray:
    """Manages the system-tray icon and its context menu.

    The tray runs on its own thread so it does not block the wx main loop.
    """

    def __init__(self, callbacks: TrayCallbacks, latest_count: int = LATEST_COUNT):
        """Create the tray icon bound to *callbacks*."""
        self._callbacks = callbacks
        self.latest_count = latest_count
        self._icon: Any | None = None
        self._thread: threading.Thread | None = None
        self._files: tuple[FileRecord, ...] = ()
        self._sequence = 0
        self._lock = threading.Lock()

    @property
    def files(self) -> tuple[FileRecord, ...]:
        """Return the snapshot the menu currently shows."""
        return self._files

    def start(self, files: Sequence[FileRecord] = ()) -> None:
        """Start the tray icon on a daemon thread."""
        self._files = tuple(files)
        self._icon = pystray.Icon(
            name="RecordDesktop",
            icon=_create_icon_image(),
            title=self._tooltip(),
            menu=build_menu(self._callbacks, self._files, self.latest_count),
        )

        self._thread = threading.Thread(target=self._icon.run, daemon=True, name="SysTray")
        self._thread.start()
        logger.info("System tray icon started.")

    def stop(self) -> None:
        """Remove the tray icon and stop its thread."""
        if self._icon:
            with contextlib.suppress(Exception):
                self._icon.stop()
            self._icon = None
        logger.info("System tray icon stopped.")

    def on_files_changed(self, message: FilesChanged) -> None:
        """Coordinator update handler: rebuild the menu from the snapshot."""
        with self._lock:
            if message.sequence <= self._sequence:
                return
            self._sequence = message.sequence
            self._files = tuple(message.files)
        self.refresh_menu()

    def refresh_menu(self) -> None:
        """Rebuild the context menu from the current snapshot."""
        if self._icon:
            self._icon.menu = build_menu(self._callbacks, self._files, self.latest_count)
            self._icon.title = self._tooltip()
            self._icon.update_menu()

    def notify(self, title: str, message: str) -> None:
        """Show a balloon notification through the tray icon."""
        if self._icon is None or not getattr(self._icon, "HAS_NOTIFICATION", False):
            raise RuntimeError("tray notifications unavailable")
        self._icon.notify(message, title)

    def _tooltip(self) -> str:
        count = len(self._files)
        return f"{__app_name__} — {count} file{'s' if count != 1 else ''}"
