"""
Change-event bridge tests.

The bridge must never lose, duplicate or reorder an event, whether it
arrives before or after the consumer asks for it.
"""

import asyncio

from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileOpenedEvent,
)

from filetailer.events import CHANGE, RENAME, ChangeEvent, EventBridge, event_from_watchdog

TARGET = "/var/log/app.log"


def test_events_pushed_before_pull_are_buffered_in_order():
    async def scenario():
        bridge = EventBridge()
        for i in range(3):
            bridge.push(ChangeEvent(CHANGE, str(i)))
        return [(await bridge.next()).filename for _ in range(3)]

    assert asyncio.run(scenario()) == ["0", "1", "2"]


def test_initial_events_come_first():
    async def scenario():
        bridge = EventBridge(ChangeEvent(CHANGE, "seed"))
        bridge.push(ChangeEvent(RENAME, "later"))
        return [await bridge.next(), await bridge.next()]

    assert asyncio.run(scenario()) == [ChangeEvent(CHANGE, "seed"), ChangeEvent(RENAME, "later")]


def test_waiting_pull_is_satisfied_by_next_push():
    async def scenario():
        bridge = EventBridge()
        pending = asyncio.ensure_future(bridge.next())
        await asyncio.sleep(0)
        assert not pending.done()
        bridge.push(ChangeEvent(CHANGE, "x"))
        return await asyncio.wait_for(pending, 1)

    assert asyncio.run(scenario()) == ChangeEvent(CHANGE, "x")


def test_close_resolves_waiting_pulls_to_end():
    async def scenario():
        bridge = EventBridge()
        pending = asyncio.ensure_future(bridge.next())
        await asyncio.sleep(0)
        bridge.close()
        return await asyncio.wait_for(pending, 1), await bridge.next()

    assert asyncio.run(scenario()) == (None, None)


def test_close_still_delivers_queued_events_then_ends():
    async def scenario():
        bridge = EventBridge()
        bridge.push(ChangeEvent(CHANGE, "a"))
        bridge.push(ChangeEvent(CHANGE, "b"))
        bridge.close()
        bridge.push(ChangeEvent(CHANGE, "dropped"))
        return [event.filename async for event in bridge]

    assert asyncio.run(scenario()) == ["a", "b"]


def test_cancelled_pull_does_not_swallow_event():
    async def scenario():
        bridge = EventBridge()
        abandoned = asyncio.ensure_future(bridge.next())
        await asyncio.sleep(0)
        abandoned.cancel()
        await asyncio.sleep(0)
        bridge.push(ChangeEvent(CHANGE, "kept"))
        return bridge.pending, await bridge.next()

    pending, event = asyncio.run(scenario())
    assert pending == 1
    assert event == ChangeEvent(CHANGE, "kept")


def test_closed_property():
    bridge = EventBridge()
    assert not bridge.closed
    bridge.close()
    bridge.close()
    assert bridge.closed


def test_event_from_watchdog_kinds():
    assert event_from_watchdog(FileModifiedEvent(TARGET), TARGET) == ChangeEvent(CHANGE, TARGET)
    assert event_from_watchdog(FileCreatedEvent(TARGET), TARGET) == ChangeEvent(CHANGE, TARGET)
    assert event_from_watchdog(FileDeletedEvent(TARGET), TARGET) == ChangeEvent(RENAME, TARGET)


def test_event_from_watchdog_matches_either_side_of_a_move():
    away = FileMovedEvent(TARGET, TARGET + ".1")
    into = FileMovedEvent("/var/log/app.log.tmp", TARGET)
    assert event_from_watchdog(away, TARGET) == ChangeEvent(RENAME, TARGET)
    assert event_from_watchdog(into, TARGET) == ChangeEvent(RENAME, TARGET)


def test_event_from_watchdog_ignores_noise():
    assert event_from_watchdog(FileModifiedEvent("/var/log/other.log"), TARGET) is None
    assert event_from_watchdog(DirModifiedEvent("/var/log"), TARGET) is None
    assert event_from_watchdog(FileOpenedEvent(TARGET), TARGET) is None
