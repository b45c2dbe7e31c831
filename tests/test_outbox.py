"""
NotificationOutbox tests: failed deliveries stay queued, nothing raises.
"""

import pytest

from booking_inbox.communication.outbox import NotificationOutbox
from booking_inbox.communication.ports import Notification, Notifier


class _FlakyNotifier(Notifier):
    """Fails the first *failures* calls, then delivers."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.delivered: list[Notification] = []

    async def notify_all(self, notification):
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("push relay unreachable")
        self.delivered.append(notification)


def _note(n: int) -> Notification:
    return Notification(title=f"📩 New booking message {n}", body="+1555: Board Max?", url=f"/booking/{n}")


@pytest.mark.asyncio
async def test_dispatch_delivers_in_order():
    notifier = _FlakyNotifier()
    outbox = NotificationOutbox(notifier)
    outbox.enqueue(_note(1))
    outbox.enqueue(_note(2))

    assert await outbox.dispatch() == 2
    assert [n.url for n in notifier.delivered] == ["/booking/1", "/booking/2"]
    assert outbox.pending == []


@pytest.mark.asyncio
async def test_failed_event_is_retained_and_retried():
    notifier = _FlakyNotifier(failures=1)
    outbox = NotificationOutbox(notifier)
    outbox.enqueue(_note(1))

    assert await outbox.dispatch() == 0
    assert [n.url for n in outbox.pending] == ["/booking/1"]

    assert await outbox.dispatch() == 1
    assert outbox.pending == []
    assert [n.url for n in notifier.delivered] == ["/booking/1"]


@pytest.mark.asyncio
async def test_one_failure_does_not_block_the_rest():
    notifier = _FlakyNotifier(failures=1)
    outbox = NotificationOutbox(notifier)
    outbox.enqueue(_note(1))
    outbox.enqueue(_note(2))

    assert await outbox.dispatch() == 1
    assert [n.url for n in notifier.delivered] == ["/booking/2"]
    assert [n.url for n in outbox.pending] == ["/booking/1"]


@pytest.mark.asyncio
async def test_empty_dispatch():
    assert await NotificationOutbox(_FlakyNotifier()).dispatch() == 0


def test_queue_is_bounded():
    outbox = NotificationOutbox(_FlakyNotifier(), max_pending=2)
    for n in range(3):
        outbox.enqueue(_note(n))
    assert [n.url for n in outbox.pending] == ["/booking/1", "/booking/2"]
