"""Shared fakes for scrapwatch tests."""

import asyncio

from scrapwatch.adapters.feed.base import FeedClient
from scrapwatch.adapters.notifications.base import Message, NotificationChannel
from scrapwatch.core.errors import DeliverySkipped
from scrapwatch.core.models import ChangeQueryResult, DetectedChange, ResourceChange


def make_result(last, current, changes=None):
    """Build a ChangeQueryResult from ``{app_id: change_number}``."""
    app_changes = {
        app_id: ResourceChange(resource_id=app_id, change_number=number)
        for app_id, number in (changes or {}).items()
    }
    return ChangeQueryResult(
        last_change_number=last,
        current_change_number=current,
        app_changes=app_changes,
    )


class FakeFeedClient(FeedClient):
    """Feed client that records calls; tests publish events themselves."""

    def __init__(self, results=None):
        super().__init__()
        self.calls = []
        self.queries = []
        self.results = list(results or [])
        self.fail_connect = False
        self.query_gate = None

    @property
    def name(self) -> str:
        return "fake"

    async def connect(self):
        self.calls.append("connect")
        if self.fail_connect:
            raise ConnectionError("connection refused")

    async def disconnect(self):
        self.calls.append("disconnect")

    async def login_anonymous(self):
        self.calls.append("login_anonymous")

    async def login(self, username, password):
        self.calls.append(("login", username, password))

    async def set_persona_online(self):
        self.calls.append("set_persona_online")

    async def query_changes_since(self, token, include_app_changes=True, include_package_changes=True):
        self.queries.append(token)
        if self.query_gate is not None:
            await self.query_gate.wait()
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return make_result(token, token)


class RecordingChannel(NotificationChannel):
    def __init__(self, label="recording"):
        super().__init__(label=label)
        self.delivered = []

    @property
    def name(self) -> str:
        return "recording"

    def format_change(self, change: DetectedChange) -> Message:
        return Message(text=f"{change.label} {change.history_url}")

    async def deliver(self, change: DetectedChange) -> None:
        self.delivered.append(self.format_change(change).text)


class FailingChannel(RecordingChannel):
    def __init__(self, exc=None, label="failing"):
        super().__init__(label=label)
        self.exc = exc or ConnectionError("boom")
        self.attempts = 0

    async def deliver(self, change: DetectedChange) -> None:
        self.attempts += 1
        raise self.exc


class SkippingChannel(RecordingChannel):
    async def deliver(self, change: DetectedChange) -> None:
        raise DeliverySkipped(self.destination_id, "No channel for revolt webhook")


class HangingChannel(RecordingChannel):
    async def deliver(self, change: DetectedChange) -> None:
        await asyncio.Event().wait()


async def settle(rounds=10):
    """Let scheduled tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
