import asyncio
import os

import pytest

from filetailer.events import CHANGE, ChangeEvent


class FakeWatch:
    def __init__(self, path, on_event):
        self.path = os.path.abspath(path)
        self.on_event = on_event
        self.closed = False

    def fire(self, kind=CHANGE):
        self.on_event(ChangeEvent(kind, self.path))

    def close(self):
        self.closed = True


class FakeArm:
    """Stands in for watchdog_source; ``on_arm(n)`` runs before the n-th watch is armed."""

    def __init__(self, on_arm=None):
        self.on_arm = on_arm
        self.watches = []

    def __call__(self, path, on_event):
        if self.on_arm is not None:
            self.on_arm(len(self.watches))
        watch = FakeWatch(path, on_event)
        self.watches.append(watch)
        return watch

    @property
    def current(self):
        return self.watches[-1]


class RecordingLogger:
    def __init__(self):
        self.messages = []

    def info(self, msg, *args):
        self.messages.append(msg % args if args else msg)


async def take(agen, n, timeout=5.0):
    """Pull exactly ``n`` items from ``agen``."""
    return [await asyncio.wait_for(agen.__anext__(), timeout) for _ in range(n)]


async def collect(agen):
    return [item async for item in agen]


def write(path, data: bytes, mode="ab"):
    with open(path, mode) as f:
        f.write(data)


@pytest.fixture
def fake_arm():
    return FakeArm()


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def log_path(tmp_path):
    return str(tmp_path / "app.log")
