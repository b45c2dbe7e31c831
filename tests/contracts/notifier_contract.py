"""
Adapter contract for Notifier.

Any implementation (console, HTTP push relay, email, ...) must pass these
tests.  Subclass this and provide the abstract methods to run the contract
against your adapter.
"""

from abc import ABC, abstractmethod

import pytest

from booking_inbox.communication.ports import Notification, Notifier


class NotifierContract(ABC):
    """Contract tests that every Notifier implementation must satisfy."""

    @abstractmethod
    def create_notifier(self) -> Notifier:
        """Return a fresh instance of the adapter under test."""
        ...

    @abstractmethod
    def delivered(self) -> list[dict] | None:
        """What reached the channel as {"title", "body", "url"} dicts, or
        None when the channel cannot be observed from the test."""
        ...

    @staticmethod
    def _make(title="📩 New booking message", url="/booking/7") -> Notification:
        return Notification(title=title, body="+15551234567: Board my dog Nov 7-9?", url=url)

    @pytest.mark.asyncio
    async def test_notify_all_delivers(self):
        notifier = self.create_notifier()
        await notifier.notify_all(self._make())
        seen = self.delivered()
        if seen is None:
            return
        assert len(seen) == 1
        assert seen[0]["title"] == "📩 New booking message"
        assert seen[0]["url"] == "/booking/7"
        assert "Board my dog" in seen[0]["body"]

    @pytest.mark.asyncio
    async def test_each_call_is_one_delivery(self):
        notifier = self.create_notifier()
        await notifier.notify_all(self._make())
        await notifier.notify_all(self._make(title="📩 New message", url="/"))
        seen = self.delivered()
        if seen is None:
            return
        assert [s["url"] for s in seen] == ["/booking/7", "/"]
