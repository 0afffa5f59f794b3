"""User notifications for record-desktop.

Every notification is logged. When the user has notifications turned on
it is also shown on the desktop: through the tray icon balloon when the
tray backend supports it, otherwise with ``osascript`` on macOS or
``notify-send`` on Linux. On other platforms it is only logged.
"""

import logging
import subprocess
import threading
from collections.abc import Callable

from record_desktop import __app_name__
from record_desktop.platform_utils import notification_command

logger = logging.getLogger(__name__)

Presenter = Callable[[str, str], None]


class Notifier:
    """Thread-safe desktop notifier.

    Call ``notify(text)`` to push a message. The call is non-blocking:
    display is dispatched on a daemon thread.
    """

    def __init__(self, enabled: Callable[[], bool] | None = None) -> None:
        """Create a notifier; *enabled* is polled before each display."""
        self._enabled = enabled or (lambda: True)
        self._presenter: Presenter | None = None

    def attach(self, presenter: Presenter | None) -> None:
        """Route notifications through *presenter(title, message)*."""
        self._presenter = presenter

    def notify(self, text: str, err: BaseException | None = None) -> None:
        """Log *text* (with *err* if given) and show it on the desktop."""
        message = f"{text} {err}" if err else text
        if err:
            logger.warning("%s", message)
        else:
            logger.info("%s", message)

        if not self._enabled():
            return

        # Fire-and-forget on a daemon thread so we never block
        threading.Thread(
            target=self._show,
            args=(__app_name__, message),
            daemon=True,
            name="Notify",
        ).start()

    def _show(self, title: str, message: str) -> None:
        if self._presenter is not None:
            try:
                self._presenter(title, message)
                return
            except Exception:
                logger.debug("Presenter failed; using system command.", exc_info=True)
        try:
            cmd = notification_command(title, message)
            if cmd is None:
                logger.debug("Notify (no output): %s", message)
                return
            subprocess.run(
                cmd,
                timeout=15,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except Exception:
            logger.debug("Desktop notification failed.", exc_info=True)
