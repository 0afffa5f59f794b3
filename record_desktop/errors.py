"""Exception types for record-desktop.

None of these are fatal: they are caught where the failing call is made,
logged, and turned into a user notification.
"""


class RecordDesktopError(Exception):
    """Base class for all record-desktop errors."""


class ListingError(RecordDesktopError):
    """The watched folder could not be listed (missing or unreadable)."""

    def __init__(self, folder: str, reason: str = ""):
        self.folder = folder
        self.reason = reason
        msg = f"Cannot list folder {folder!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ActionError(RecordDesktopError):
    """An upload, copy, open, save or delete action failed."""

    def __init__(self, action: str, url: str, reason: str = ""):
        self.action = action
        self.url = url
        self.reason = reason
        msg = f"{action} failed for {url}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ConfigError(RecordDesktopError):
    """Stored settings are malformed."""
