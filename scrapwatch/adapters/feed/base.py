"""Base interface for remote change-feed clients."""

import asyncio
from abc import ABC, abstractmethod

from scrapwatch.core.models import ChangeQueryResult, FeedEvent

DEFAULT_EVENT_QUEUE_SIZE = 256


class FeedClient(ABC):
    """Abstract change-feed client.

    Implementations own the transport. Lifecycle notifications are not
    delivered as callbacks; they are published onto :attr:`events`, a bounded
    queue drained by a single consumer (the connection manager).
    """

    def __init__(self, queue_size: int = DEFAULT_EVENT_QUEUE_SIZE):
        self.events: asyncio.Queue[FeedEvent] = asyncio.Queue(maxsize=queue_size)

    async def publish(self, event: FeedEvent) -> None:
        """Publish an event, waiting for room if the queue is full."""
        await self.events.put(event)

    @abstractmethod
    async def connect(self) -> None:
        """Start connecting; completion is reported with a ``Connected`` event."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Drop the connection; completion is reported with ``Disconnected``."""

    @abstractmethod
    async def login_anonymous(self) -> None:
        """Log on without credentials; result is reported with ``LoggedOn``."""

    @abstractmethod
    async def login(self, username: str, password: str) -> None:
        """Log on with credentials; result is reported with ``LoggedOn``."""

    async def set_persona_online(self) -> None:
        """Mark a credentialed account online. No-op unless overridden."""
        return None

    @abstractmethod
    async def query_changes_since(
        self,
        token: int,
        include_app_changes: bool = True,
        include_package_changes: bool = True,
    ) -> ChangeQueryResult:
        """Return the changes recorded after ``token``.

        Raises:
            FeedQueryError: the query failed or timed out. The round is
                dropped and the next tick asks again.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Client name (e.g. ``'steam'``)."""
