"""
watcher.py

Arms a change-notification watch on the tailed path and proves that it
is observing a stable file before handing it to the tailer.

The stat heuristic cannot close every race: a rename away and back
that completes inside one filesystem timestamp tick is invisible to it.
"""

import asyncio
import logging
import os
from typing import Callable, Optional

import aiofiles.os
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .events import CHANGE, ChangeEvent, EventBridge, event_from_watchdog
from .lines import FileIdentity

logger = logging.getLogger(__name__)

DEFAULT_RETRY_INTERVAL = 0.1
OBSERVER_JOIN_TIMEOUT = 1.0

EventCallback = Callable[[ChangeEvent], None]


class BootstrapControl:
    """Shared flag telling an in-flight bootstrap to give up."""

    def __init__(self):
        self.running = True

    def cancel(self) -> None:
        self.running = False


async def stat_path(filepath: str) -> Optional[os.stat_result]:
    try:
        return await aiofiles.os.stat(filepath)
    except FileNotFoundError:
        return None


def is_stable(before: os.stat_result, after: os.stat_result) -> bool:
    """
    True when two stats taken around arming a watch describe one file.

    A ctime change with an unchanged mtime means the path briefly
    pointed at another file (rename away, rename back).
    """
    if FileIdentity.from_stat(before) != FileIdentity.from_stat(after):
        return False
    if before.st_ctime_ns != after.st_ctime_ns and before.st_mtime_ns == after.st_mtime_ns:
        return False
    return True


class _ForwardingHandler(FileSystemEventHandler):
    def __init__(self, target: str, on_event: EventCallback):
        super().__init__()
        self.target = target
        self.on_event = on_event

    def on_any_event(self, event):
        change = event_from_watchdog(event, self.target)
        if change is not None:
            self.on_event(change)


class _ObserverWatch:
    def __init__(self, observer):
        self.observer = observer

    def close(self) -> None:
        self.observer.stop()
        if self.observer.is_alive():
            self.observer.join(OBSERVER_JOIN_TIMEOUT)


def watchdog_source(filepath: str, on_event: EventCallback) -> _ObserverWatch:
    """
    Watch ``filepath`` with a watchdog Observer.

    The parent directory is observed so renames of the file itself are
    reported. ``on_event`` runs on the observer thread. Raises
    FileNotFoundError when the directory does not exist.
    """
    target = os.path.abspath(filepath)
    observer = Observer()
    observer.daemon = True
    observer.schedule(_ForwardingHandler(target, on_event), os.path.dirname(target))
    try:
        observer.start()
    except BaseException:
        observer.stop()
        raise
    return _ObserverWatch(observer)


class WatchSession:
    """
    One armed watch together with the stat it was confirmed against.

    Iterating yields ChangeEvent values until the session is closed.
    """

    def __init__(self, source, bridge: EventBridge, stat: Optional[os.stat_result] = None):
        self.source = source
        self.bridge = bridge
        self.stat = stat

    @property
    def identity(self) -> FileIdentity:
        return FileIdentity.from_stat(self.stat)

    @property
    def closed(self) -> bool:
        return self.bridge.closed

    def close(self) -> None:
        if self.bridge.closed:
            return
        self.bridge.close()
        self.source.close()

    def __aiter__(self):
        return self.bridge.__aiter__()


def _arm(filepath: str, arm, loop: asyncio.AbstractEventLoop) -> WatchSession:
    # same path form as the events watchdog_source reports
    bridge = EventBridge(ChangeEvent(CHANGE, os.path.abspath(filepath)))

    def forward(event: ChangeEvent) -> None:
        try:
            loop.call_soon_threadsafe(bridge.push, event)
        except RuntimeError:
            # loop closed, nobody is listening any more
            pass

    source = arm(filepath, forward)
    return WatchSession(source, bridge)


async def setup_watcher(
    filepath: str,
    control: BootstrapControl,
    *,
    arm=watchdog_source,
    retry_interval: float = DEFAULT_RETRY_INTERVAL,
) -> Optional[WatchSession]:
    """
    Arm a watch on ``filepath`` once its identity holds still.

    Retries every ``retry_interval`` seconds while the file is missing.
    Returns None if ``control`` is cancelled first.
    """
    loop = asyncio.get_running_loop()
    while True:
        if not control.running:
            return None

        session = None
        try:
            initial_stat = await aiofiles.os.stat(filepath)
            session = _arm(filepath, arm, loop)
            end_stat = await aiofiles.os.stat(filepath)
        except FileNotFoundError:
            if session is not None:
                session.close()
            logger.debug("%s does not exist yet, retrying in %ss", filepath, retry_interval)
            await asyncio.sleep(retry_interval)
            continue
        except BaseException:
            if session is not None:
                session.close()
            raise

        if not control.running:
            session.close()
            return None

        if not is_stable(initial_stat, end_stat):
            logger.debug("%s moved while arming the watch, retrying", filepath)
            session.close()
            continue

        session.stat = end_stat
        return session
