"""Folder listing for record-desktop.

Scans the capture folder and returns its screenshots and recordings,
newest first.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from record_desktop.errors import ListingError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "bmp", "webp"})
RECORDING_EXTENSIONS = frozenset({"webm", "mp4", "mkv", "ogv"})
MEDIA_EXTENSIONS = IMAGE_EXTENSIONS | RECORDING_EXTENSIONS


@dataclass(frozen=True)
class FileRecord:
    """One capture on disk.

    ``url`` is the absolute path and the identity key. ``visible`` is a
    presentation flag owned by whichever view holds the record.
    """

    url: str
    filename: str
    visible: bool = False

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lower().lstrip(".")

    @property
    def is_image(self) -> bool:
        return self.extension in IMAGE_EXTENSIONS

    @property
    def is_recording(self) -> bool:
        return self.extension in RECORDING_EXTENSIONS


FileList = tuple[FileRecord, ...]


def is_media_file(name: str, extensions: frozenset[str] = MEDIA_EXTENSIONS) -> bool:
    """Return True if *name* has one of the accepted extensions."""
    if name.startswith("."):
        return False
    ext = os.path.splitext(name)[1].lower().lstrip(".")
    return ext in extensions


def list_files(
    folder: str | Path,
    extensions: frozenset[str] = MEDIA_EXTENSIONS,
) -> FileList:
    """Return the media files directly inside *folder*, newest first.

    Files are ordered by modification time, most recent first, with the
    filename as a tie-breaker so repeated listings are identical.
    Raises ``ListingError`` if the folder is missing or unreadable.
    """
    if not str(folder):
        raise ListingError("", "no folder configured")
    root = Path(folder).expanduser()
    if not root.is_dir():
        raise ListingError(str(root), "folder does not exist")

    entries: list[tuple[float, str, str]] = []
    try:
        with os.scandir(root) as it:
            for entry in it:
                if not is_media_file(entry.name, extensions):
                    continue
                try:
                    if not entry.is_file():
                        continue
                    mtime = entry.stat().st_mtime
                except OSError:
                    # Vanished between scandir and stat
                    logger.debug("Skipping unreadable entry %s", entry.path)
                    continue
                entries.append((mtime, entry.name, os.path.abspath(entry.path)))
    except OSError as exc:
        raise ListingError(str(root), exc.strerror or str(exc)) from exc

    entries.sort(key=lambda e: (-e[0], e[1]))
    logger.debug("Listed %d file(s) in %s", len(entries), root)
    return tuple(FileRecord(url=path, filename=name) for _, name, path in entries)
