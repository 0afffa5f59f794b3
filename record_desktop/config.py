"""Configuration management for record-desktop.

Stores and retrieves user settings from a JSON config file
in the platform-appropriate application data directory, and notifies
subscribers whenever a setting changes.
"""

import json
import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from record_desktop.errors import ConfigError
from record_desktop.platform_utils import (
    get_config_dir as _platform_config_dir,
)
from record_desktop.platform_utils import (
    get_default_capture_dir,
)
from record_desktop.platform_utils import (
    get_log_path as _platform_log_path,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "folder": str(get_default_capture_dir()),
    "has_notifications": True,
    "imgur_client_id": "",
    "start_minimized": True,
    "latest_count": 5,
    "log_level": "INFO",
    # ---- log rotation ----
    "max_log_size_mb": 10,  # rotate log when it exceeds this size
    "log_backup_count": 3,  # number of rotated log files to keep
}

# Expected JSON types for stored values; anything else is a ConfigError.
_SCHEMA: dict[str, tuple[type, ...]] = {
    "folder": (str,),
    "has_notifications": (bool,),
    "imgur_client_id": (str,),
    "start_minimized": (bool,),
    "latest_count": (int,),
    "log_level": (str,),
    "max_log_size_mb": (int,),
    "log_backup_count": (int,),
}

ChangeCallback = Callable[[str, Any], None]


def get_config_dir() -> Path:
    """Return the platform-appropriate application config directory."""
    return _platform_config_dir()


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_config_dir() / "config.json"


def get_log_path() -> Path:
    """Return the path to the log file."""
    return _platform_log_path()


def validate(stored: Any) -> dict[str, Any]:
    """Check a decoded config document and return it as a dict.

    Unknown keys are kept untouched; known keys must have the right type.
    Raises ``ConfigError`` otherwise.
    """
    if not isinstance(stored, dict):
        raise ConfigError(f"Expected a JSON object, got {type(stored).__name__}")
    for key, types in _SCHEMA.items():
        if key not in stored:
            continue
        value = stored[key]
        # bool is a subclass of int; keep them apart
        if isinstance(value, bool) and bool not in types:
            raise ConfigError(f"Setting {key!r} must be {types[0].__name__}")
        if not isinstance(value, types):
            raise ConfigError(f"Setting {key!r} must be {types[0].__name__}")
    return stored


class Config:
    """Thread-safe configuration manager backed by a JSON file."""

    def __init__(self, path: Path | None = None):
        """Load config from *path*, falling back to the platform default."""
        self._path = path or get_config_path()
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        self._lock = threading.RLock()
        self._subscribers: list[ChangeCallback] = []
        self.load_error: ConfigError | None = None
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """Load configuration from disk, applying defaults for missing keys.

        A malformed file leaves the defaults in place; the error is kept on
        ``load_error`` so the application can report it.
        """
        self.load_error = None
        if not self._path.exists():
            with self._lock:
                self._data = dict(DEFAULT_CONFIG)
            self.save()
            logger.info("Created default configuration at %s", self._path)
            return
        try:
            stored = self._read()
        except ConfigError as exc:
            logger.warning("Could not read config (%s); using defaults.", exc)
            self.load_error = exc
            with self._lock:
                self._data = dict(DEFAULT_CONFIG)
            return
        with self._lock:
            # Merge stored values over defaults so new keys get defaults
            self._data = {**DEFAULT_CONFIG, **stored}
        logger.info("Configuration loaded from %s", self._path)

    def _read(self) -> dict[str, Any]:
        try:
            with open(self._path, encoding="utf-8") as fh:
                stored = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"{self._path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"{self._path} is unreadable: {exc}") from exc
        return validate(stored)

    def save(self) -> None:
        """Persist the current configuration to disk."""
        with self._lock:
            snapshot = dict(self._data)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(snapshot, fh, indent=2)
            logger.info("Configuration saved.")
        except OSError as exc:
            logger.error("Failed to save configuration: %s", exc)

    # ---- change notification ----

    def subscribe(self, callback: ChangeCallback) -> None:
        """Call *callback(key, value)* after every setting change."""
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: ChangeCallback) -> None:
        """Stop delivering changes to *callback*."""
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def _set(self, key: str, value: Any) -> None:
        with self._lock:
            if self._data.get(key) == value:
                return
            self._data[key] = value
            subscribers = list(self._subscribers)
        logger.debug("Setting %s changed to %r", key, value)
        for callback in subscribers:
            try:
                callback(key, value)
            except Exception:
                logger.exception("Error in config change callback for %s", key)

    def _get(self, key: str) -> Any:
        with self._lock:
            return self._data.get(key, DEFAULT_CONFIG[key])

    # ---- accessors ----

    @property
    def folder(self) -> str:
        """Return the watched capture folder path, with ``~`` expanded."""
        folder = self._get("folder")
        return str(Path(folder).expanduser()) if folder else ""

    @folder.setter
    def folder(self, value: str) -> None:
        """Set the watched capture folder path."""
        self._set("folder", str(Path(value).expanduser()) if value else "")

    @property
    def has_notifications(self) -> bool:
        """Return whether desktop notifications are shown."""
        return bool(self._get("has_notifications"))

    @has_notifications.setter
    def has_notifications(self, value: bool) -> None:
        """Enable or disable desktop notifications."""
        self._set("has_notifications", bool(value))

    @property
    def imgur_client_id(self) -> str:
        """Return the imgur API client id used for uploads."""
        return self._get("imgur_client_id")

    @imgur_client_id.setter
    def imgur_client_id(self, value: str) -> None:
        self._set("imgur_client_id", value.strip())

    @property
    def start_minimized(self) -> bool:
        """Return whether the app starts with only the tray icon."""
        return bool(self._get("start_minimized"))

    @start_minimized.setter
    def start_minimized(self, value: bool) -> None:
        self._set("start_minimized", bool(value))

    @property
    def latest_count(self) -> int:
        """Return how many files the tray "Latest" submenu shows."""
        return int(self._get("latest_count"))

    @latest_count.setter
    def latest_count(self, value: int) -> None:
        """Set the tray submenu length (1 to 20)."""
        self._set("latest_count", min(20, max(1, int(value))))

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        return self._get("log_level")

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._set("log_level", value.upper())

    # ---- log rotation ----

    @property
    def max_log_size_mb(self) -> int:
        """Return the maximum log file size in MB before rotation."""
        return int(self._get("max_log_size_mb"))

    @max_log_size_mb.setter
    def max_log_size_mb(self, value: int) -> None:
        """Set the maximum log file size in MB (minimum 1)."""
        self._set("max_log_size_mb", max(1, int(value)))

    @property
    def log_backup_count(self) -> int:
        """Return the number of rotated log backups to keep."""
        return int(self._get("log_backup_count"))

    @log_backup_count.setter
    def log_backup_count(self, value: int) -> None:
        """Set the number of rotated log backups to keep."""
        self._set("log_backup_count", max(0, int(value)))
