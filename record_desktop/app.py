"""
Main application controller for record-desktop.

Ties together configuration, the folder watcher, the sync coordinator,
file actions, the system tray, desktop notifications and the wxPython
gallery and settings windows.

Cross-platform: Linux, macOS, and Windows.
"""

import logging
import logging.handlers
import sys
import threading
from typing import Any

import wx

from record_desktop import __app_name__, __version__
from record_desktop.actions import FileActions
from record_desktop.config import Config, get_log_path
from record_desktop.coordinator import SyncCoordinator
from record_desktop.events import DeleteFile, Upload
from record_desktop.notify import Notifier
from record_desktop.tray import SysTray
from record_desktop.ui import GalleryWindow, SettingsWindow, ask_save_path
from record_desktop.watcher import FolderWatcher

logger = logging.getLogger(__name__)


class App:
    """
    Central orchestrator.

    Implements the TrayCallbacks protocol expected by SysTray.
    """

    def __init__(self, show_gallery: bool = False) -> None:
        self.config = Config()
        self.notifier = Notifier(enabled=lambda: self.config.has_notifications)
        self.actions = FileActions(imgur_client_id=lambda: self.config.imgur_client_id)
        self.coordinator = SyncCoordinator(self.config, self.actions, self.notifier)
        self.watcher = FolderWatcher(
            self.config.folder, on_change=self.coordinator.on_external_change
        )
        self._show_gallery = show_gallery

        # wx drives the main loop; windows come and go, the app stays up
        self._wx_app = wx.App(False)
        self._wx_app.SetExitOnFrameDelete(False)

        self._gallery_win = GalleryWindow(self)
        self._settings_win = SettingsWindow(self)
        self._tray = SysTray(self, latest_count=self.config.latest_count)
        self._unsubscribe_tray = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Start the application (tray, coordinator, watcher, then the wx main loop)."""
        self._setup_logging()
        self._install_excepthooks()

        logger.info("%s %s starting.", __app_name__, __version__)

        if self.config.load_error is not None:
            self.notifier.notify("Settings were unreadable; using defaults.", self.config.load_error)

        self.config.subscribe(self._on_config_change)
        self.coordinator.start()

        # Tray consumes every snapshot from here on
        self._unsubscribe_tray = self.coordinator.updates.subscribe(
            self._tray.on_files_changed
        )
        self._tray.start(self.coordinator.snapshot)
        self.notifier.attach(self._tray.notify)

        self._start_watcher()
        self.coordinator.refresh()

        if self._show_gallery or not self.config.start_minimized:
            wx.CallAfter(self._gallery_win.show)

        self._wx_app.MainLoop()

    def _start_watcher(self) -> None:
        try:
            self.watcher.start()
        except OSError as exc:
            logger.error("Cannot watch %s: %s", self.watcher.folder, exc)
            self.notifier.notify(f"Cannot watch {self.watcher.folder}:", exc)

    # ------------------------------------------------------------------
    # TrayCallbacks implementation
    # ------------------------------------------------------------------

    def on_browse(self) -> None:
        """Show the gallery window (thread-safe)."""
        wx.CallAfter(self._gallery_win.show)

    def on_toggle_gallery(self) -> None:
        """Tray icon click: show the gallery, or close it if open."""
        wx.CallAfter(self._gallery_win.toggle)

    def on_open_folder(self) -> None:
        """Open the capture folder in the file manager."""
        self.actions.open(self.config.folder, on_done=self.coordinator.report_result)

    def on_open_settings(self) -> None:
        """Show the settings window (thread-safe)."""
        wx.CallAfter(self._settings_win.show)

    def on_upload(self, url: str) -> None:
        self.coordinator.send(Upload(url))

    def on_delete(self, url: str) -> None:
        self.coordinator.send(DeleteFile(url))

    def on_save_as(self, url: str) -> None:
        """Ask for a destination on the UI thread, then copy in the background."""
        wx.CallAfter(self._save_as, url)

    def on_quit(self) -> None:
        """Cleanly shut down the application."""
        logger.info("Shutting down…")
        self.config.unsubscribe(self._on_config_change)
        if self._unsubscribe_tray is not None:
            self._unsubscribe_tray()
            self._unsubscribe_tray = None
        self.watcher.stop()
        self.coordinator.stop()
        self._tray.stop()
        wx.CallAfter(self._exit_main_loop)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _save_as(self, url: str) -> None:
        destination = ask_save_path(url)
        if destination:
            self.actions.save_as(url, destination, on_done=self.coordinator.report_result)

    def _exit_main_loop(self) -> None:
        for win in wx.GetTopLevelWindows():
            win.Destroy()
        self._wx_app.ExitMainLoop()

    def _on_config_change(self, key: str, value: Any) -> None:
        if key == "folder":
            try:
                self.watcher.retarget(value)
            except OSError as exc:
                self.notifier.notify(f"Cannot watch {value}:", exc)
        elif key == "latest_count":
            self._tray.latest_count = value
            self._tray.refresh_menu()

    def _install_excepthooks(self) -> None:
        """Log unhandled exceptions and tell the user instead of crashing."""
        original_thread_hook = threading.excepthook

        def _excepthook(exc_type, exc_value, exc_tb) -> None:
            if issubclass(exc_type, KeyboardInterrupt):
                sys.__excepthook__(exc_type, exc_value, exc_tb)
                return
            logger.error("Unhandled exception", exc_info=(exc_type, exc_value, exc_tb))
            self.notifier.notify("Unexpected error:", exc_value)

        def _thread_excepthook(args: threading.ExceptHookArgs) -> None:
            if args.exc_type is SystemExit:
                original_thread_hook(args)
                return
            logger.error(
                "Unhandled exception in thread %s",
                args.thread.name if args.thread else "?",
                exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
            )
            self.notifier.notify("Unexpected error:", args.exc_value)

        sys.excepthook = _excepthook
        threading.excepthook = _thread_excepthook

    def _setup_logging(self) -> None:
        """Configure rotating file log and stderr handler."""
        log_path = get_log_path()
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

        # Rotating file handler
        max_bytes = self.config.max_log_size_mb * 1024 * 1024
        fh = logging.handlers.RotatingFileHandler(
            str(log_path),
            maxBytes=max_bytes,
            backupCount=self.config.log_backup_count,
            encoding="utf-8",
        )
        fh.setLevel(level)
        fh.setFormatter(fmt)
        root_logger.addHandler(fh)

        # Stderr handler (for development)
        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(level)
        sh.setFormatter(fmt)
        root_logger.addHandler(sh)
