"""Shared pytest fixtures for record-desktop tests."""

import os
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Headless: never touch a real tray backend
os.environ.setdefault("PYSTRAY_BACKEND", "dummy")

from record_desktop.actions import FileActions  # noqa: E402
from record_desktop.config import Config  # noqa: E402
from record_desktop.coordinator import SyncCoordinator  # noqa: E402


def inline_spawn(target, name):
    """Run background work immediately on the calling thread."""
    target()


class FakeTimer:
    """Stand-in for threading.Timer driven by FakeTimers.advance()."""

    def __init__(self, owner, interval, function):
        self.owner = owner
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True
        self.due = self.owner.now + self.interval
        self.owner.timers.append(self)

    def cancel(self):
        self.cancelled = True


class FakeTimers:
    """Timer factory with a manual clock."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def __call__(self, interval, function):
        return FakeTimer(self, interval, function)

    @property
    def live(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds):
        self.now += seconds
        for timer in list(self.timers):
            if not timer.cancelled and not timer.fired and timer.due <= self.now:
                timer.fired = True
                timer.function()


@pytest.fixture
def fake_timers():
    return FakeTimers()


def make_files(folder: Path, names, start=None):
    """Create *names* in *folder*, the first one newest."""
    folder.mkdir(parents=True, exist_ok=True)
    start = start or time.time()
    paths = []
    for i, name in enumerate(names):
        path = folder / name
        path.write_bytes(b"\x89PNG fake " + name.encode())
        mtime = start - i * 10
        os.utime(path, (mtime, mtime))
        paths.append(path)
    return paths


@pytest.fixture
def capture_dir(tmp_path):
    """A capture folder holding a.png (newest), b.png and c.png."""
    folder = tmp_path / "captures"
    make_files(folder, ["a.png", "b.png", "c.png"])
    return folder


@pytest.fixture
def config(tmp_path, capture_dir):
    cfg = Config(path=tmp_path / "settings" / "config.json")
    cfg.folder = str(capture_dir)
    return cfg


@pytest.fixture
def notifier():
    return MagicMock(name="notifier")


@pytest.fixture
def actions():
    return FileActions(spawn=inline_spawn)


@pytest.fixture
def coordinator(config, actions, notifier):
    return SyncCoordinator(config, actions, notifier, spawn=inline_spawn)


@pytest.fixture
def received(coordinator):
    """Every snapshot the coordinator publishes, in order."""
    messages = []
    coordinator.updates.subscribe(messages.append)
    return messages
