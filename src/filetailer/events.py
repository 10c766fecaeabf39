"""
events.py

Bridges a callback-driven change-notification source into an
awaitable, pull-based sequence of ChangeEvent values.

All EventBridge methods must run on the event loop thread. Sources
that fire on another thread hand events over with
``loop.call_soon_threadsafe(bridge.push, event)``.
"""

import asyncio
import os
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

CHANGE = "change"
RENAME = "rename"

# watchdog event_type -> ChangeEvent kind
_WATCHDOG_KINDS = {
    "modified": CHANGE,
    "created": CHANGE,
    "closed": CHANGE,
    "moved": RENAME,
    "deleted": RENAME,
}


@dataclass(frozen=True)
class ChangeEvent:
    kind: str
    filename: str


def event_from_watchdog(event, target: str) -> Optional[ChangeEvent]:
    """
    Translate a watchdog FileSystemEvent seen in the parent directory of
    ``target``. Returns None for directories, other files and kinds we ignore.
    """
    if event.is_directory:
        return None
    kind = _WATCHDOG_KINDS.get(event.event_type)
    if kind is None:
        return None
    paths = [os.fsdecode(event.src_path)]
    if event.dest_path:
        paths.append(os.fsdecode(event.dest_path))
    if target not in paths:
        return None
    return ChangeEvent(kind, target)


class EventBridge:
    """
    Unbounded push queue of events plus a pull queue of waiting consumers.

    Events are handed out in the order they were pushed. Once closed,
    queued events are still delivered, then every pull resolves to None.
    """

    def __init__(self, *initial: ChangeEvent):
        self._push_queue: Deque[ChangeEvent] = deque(initial)
        self._pull_queue: Deque[asyncio.Future] = deque()
        self._running = True

    @property
    def closed(self) -> bool:
        return not self._running

    @property
    def pending(self) -> int:
        return len(self._push_queue)

    def push(self, event: ChangeEvent) -> None:
        if not self._running:
            return
        while self._pull_queue:
            waiter = self._pull_queue.popleft()
            # a consumer that was cancelled must not swallow the event
            if not waiter.done():
                waiter.set_result(event)
                return
        self._push_queue.append(event)

    def close(self) -> None:
        if not self._running:
            return
        self._running = False
        while self._pull_queue:
            waiter = self._pull_queue.popleft()
            if not waiter.done():
                waiter.set_result(None)

    async def next(self) -> Optional[ChangeEvent]:
        """Return the next event, or None once the source has closed."""
        if self._push_queue:
            return self._push_queue.popleft()
        if not self._running:
            return None
        waiter = asyncio.get_running_loop().create_future()
        self._pull_queue.append(waiter)
        return await waiter

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self.next()
        if event is None:
            raise StopAsyncIteration
        return event
