"""
Cross-platform utilities for record-desktop.

Centralises all OS-detection logic so every other module can import
a single canonical set of helpers rather than scattering ``sys.platform``
checks throughout the codebase.

Supported platforms:
  - Linux (X11; clipboard via ``xclip``, notifications via ``notify-send``)
  - macOS 12+ (Monterey and newer)
  - Windows 10/11
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

# ---- platform flags ----------------------------------------------------

IS_WINDOWS: bool = sys.platform == "win32"
IS_MACOS: bool = sys.platform == "darwin"
IS_LINUX: bool = sys.platform.startswith("linux")

# ---- directories -------------------------------------------------------


def get_config_dir() -> Path:
    """
    Return the application config directory, created if needed.

    - Windows : ``%APPDATA%\\RecordDesktop``
    - macOS   : ``~/Library/Application Support/RecordDesktop``
    - Linux   : ``$XDG_CONFIG_HOME/RecordDesktop`` (default ``~/.config``)
    """
    if IS_WINDOWS:
        base = os.environ.get("APPDATA", str(Path.home()))
    elif IS_MACOS:
        base = str(Path.home() / "Library" / "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))

    config_dir = Path(base) / "RecordDesktop"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_log_path() -> Path:
    """Return the path to the log file (inside the config directory)."""
    return get_config_dir() / "record_desktop.log"


def get_default_capture_dir() -> Path:
    """Return the default folder screenshots and recordings are written to."""
    return Path.home() / "Pictures" / "record-desktop"


# ---- desktop integration -----------------------------------------------


def open_in_default_app(filepath: str | Path) -> None:
    """Open a file or folder with the OS default application.

    Raises ``OSError`` when the launcher cannot be started.
    """
    fp = str(filepath)
    if IS_WINDOWS:
        os.startfile(fp)  # type: ignore[attr-defined]
    elif IS_MACOS:
        subprocess.Popen(["open", fp])
    else:
        subprocess.Popen(
            ["xdg-open", fp],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )


def clipboard_image_command(filepath: str | Path) -> list[str]:
    """Return the command that places the image at *filepath* on the clipboard."""
    fp = str(filepath)
    if IS_WINDOWS:
        escaped = fp.replace("'", "''")
        script = (
            "Add-Type -AssemblyName System.Windows.Forms; "
            "Add-Type -AssemblyName System.Drawing; "
            "[System.Windows.Forms.Clipboard]::SetImage("
            f"[System.Drawing.Image]::FromFile('{escaped}'))"
        )
        return ["powershell", "-NoProfile", "-STA", "-Command", script]
    if IS_MACOS:
        escaped = fp.replace('"', '\\"')
        script = f'set the clipboard to (read (POSIX file "{escaped}") as «class PNGf»)'
        return ["osascript", "-e", script]
    return ["xclip", "-selection", "clipboard", "-t", "image/png", "-i", fp]


def notification_command(title: str, message: str) -> list[str] | None:
    """Return the command that shows a desktop notification, if there is one."""
    if IS_MACOS:
        escaped_msg = message.replace('"', '\\"')
        escaped_title = title.replace('"', '\\"')
        return [
            "osascript",
            "-e",
            f'display notification "{escaped_msg}" with title "{escaped_title}"',
        ]
    if IS_LINUX:
        return ["notify-send", title, message]
    return None
