"""
Per-file actions for record-desktop.

Upload to imgur, copy the image to the clipboard, open in the default
viewer, save a copy elsewhere, and delete. Each action runs in a
background thread and reports an ``ActionResult`` to its callback, so
callers (the sync coordinator, the UI) never block on disk, network or
external tools.
"""

import logging
import os
import shutil
import subprocess
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import pyperclip
import requests

from record_desktop.errors import ActionError
from record_desktop.lister import FileRecord
from record_desktop.platform_utils import (
    clipboard_image_command,
    open_in_default_app,
)

logger = logging.getLogger(__name__)

IMGUR_UPLOAD_URL = "https://api.imgur.com/3/image"
UPLOAD_TIMEOUT = 120  # seconds
CLIPBOARD_TIMEOUT = 15  # seconds

ACTION_UPLOAD = "upload"
ACTION_COPY = "copy"
ACTION_OPEN = "open"
ACTION_DELETE = "delete"
ACTION_SAVE_AS = "save_as"


@dataclass
class ActionResult:
    """Outcome of a single file action."""
    action: str
    url: str
    success: bool = False
    error: str = ""
    detail: str = ""  # e.g. the uploaded link or the saved-as path


ResultCallback = Callable[[ActionResult], None]
Spawn = Callable[[Callable[[], None], str], None]


def _spawn_thread(target: Callable[[], None], name: str) -> None:
    threading.Thread(target=target, daemon=True, name=name).start()


class FileActions:
    """
    Runs file actions in background threads.

    Parameters
    ----------
    imgur_client_id : callable
        Returns the imgur API client id at upload time.
    session : requests.Session, optional
        HTTP session used for uploads.
    spawn : callable, optional
        ``spawn(fn, name)`` runs *fn* off the caller's thread; defaults to
        a daemon ``threading.Thread``.
    """

    def __init__(
        self,
        imgur_client_id: Callable[[], str] = lambda: "",
        session: requests.Session | None = None,
        spawn: Spawn | None = None,
    ):
        self._imgur_client_id = imgur_client_id
        self._session = session or requests.Session()
        self._spawn = spawn or _spawn_thread

    # ---- public API ----

    def upload(self, url: str, on_done: ResultCallback | None = None) -> None:
        """Upload *url* to imgur; the link lands on the clipboard."""
        self._run(ACTION_UPLOAD, url, self._upload, on_done)

    def copy_to_clipboard(self, url: str, on_done: ResultCallback | None = None) -> None:
        """Place the image at *url* on the system clipboard."""
        self._run(ACTION_COPY, url, self._copy_to_clipboard, on_done)

    def open(self, url: str, on_done: ResultCallback | None = None) -> None:
        """Open *url* (file or folder) with the OS default application."""
        self._run(ACTION_OPEN, url, self._open, on_done)

    def delete(self, url: str, on_done: ResultCallback | None = None) -> None:
        """Delete the file at *url*."""
        self._run(ACTION_DELETE, url, self._delete, on_done)

    def save_as(
        self, url: str, destination: str, on_done: ResultCallback | None = None
    ) -> None:
        """Copy the file at *url* to *destination*."""
        self._run(
            ACTION_SAVE_AS, url, lambda u: self._save_as(u, destination), on_done
        )

    # ---- dispatch ----

    def _run(
        self,
        action: str,
        url: str,
        perform: Callable[[str], str],
        on_done: ResultCallback | None,
    ) -> None:
        self._spawn(
            lambda: self._execute(action, url, perform, on_done),
            f"{action}-{os.path.basename(url)}",
        )

    def _execute(
        self,
        action: str,
        url: str,
        perform: Callable[[str], str],
        on_done: ResultCallback | None,
    ) -> ActionResult:
        rec = ActionResult(action=action, url=url)
        try:
            rec.detail = perform(url) or ""
            rec.success = True
            logger.info("%s succeeded for %s", action, url)
        except ActionError as exc:
            rec.error = exc.reason or str(exc)
            logger.error("%s", exc)
        except Exception as exc:
            rec.error = str(exc)
            logger.exception("Unexpected error during %s of %s", action, url)
        if on_done:
            try:
                on_done(rec)
            except Exception:
                logger.exception("Error in %s completion callback", action)
        return rec

    # ---- implementations (raise ActionError) ----

    def _upload(self, url: str) -> str:
        client_id = self._imgur_client_id()
        if not client_id:
            raise ActionError(ACTION_UPLOAD, url, "no imgur client id configured")
        path = Path(url)
        field = "video" if FileRecord(url, path.name).is_recording else "image"
        try:
            with open(path, "rb") as fh:
                resp = self._session.post(
                    IMGUR_UPLOAD_URL,
                    headers={"Authorization": f"Client-ID {client_id}"},
                    files={field: (path.name, fh)},
                    timeout=UPLOAD_TIMEOUT,
                )
            resp.raise_for_status()
            link = resp.json()["data"]["link"]
        except OSError as exc:
            raise ActionError(ACTION_UPLOAD, url, str(exc)) from exc
        except requests.RequestException as exc:
            raise ActionError(ACTION_UPLOAD, url, str(exc)) from exc
        except (ValueError, KeyError, TypeError) as exc:
            raise ActionError(ACTION_UPLOAD, url, f"unexpected response: {exc}") from exc

        logger.info("Uploaded %s -> %s", url, link)
        try:
            pyperclip.copy(link)
        except pyperclip.PyperclipException:
            logger.warning("Could not copy %s to the clipboard", link, exc_info=True)
        return link

    def _copy_to_clipboard(self, url: str) -> str:
        if not os.path.isfile(url):
            raise ActionError(ACTION_COPY, url, "file does not exist")
        cmd = clipboard_image_command(url)
        try:
            subprocess.run(
                cmd,
                check=True,
                timeout=CLIPBOARD_TIMEOUT,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or b"").decode(errors="replace").strip()
            raise ActionError(ACTION_COPY, url, stderr or f"{cmd[0]} exited {exc.returncode}") from exc
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise ActionError(ACTION_COPY, url, str(exc)) from exc
        return ""

    def _open(self, url: str) -> str:
        if not os.path.exists(url):
            raise ActionError(ACTION_OPEN, url, "path does not exist")
        try:
            open_in_default_app(url)
        except OSError as exc:
            raise ActionError(ACTION_OPEN, url, str(exc)) from exc
        return ""

    def _delete(self, url: str) -> str:
        try:
            os.remove(url)
        except FileNotFoundError as exc:
            raise ActionError(ACTION_DELETE, url, "file does not exist") from exc
        except OSError as exc:
            raise ActionError(ACTION_DELETE, url, exc.strerror or str(exc)) from exc
        return ""

    def _save_as(self, url: str, destination: str) -> str:
        if not destination:
            raise ActionError(ACTION_SAVE_AS, url, "no destination given")
        dest = Path(destination)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(url, dest)
        except OSError as exc:
            raise ActionError(ACTION_SAVE_AS, url, exc.strerror or str(exc)) from exc
        return str(dest)
