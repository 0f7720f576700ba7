"""Base interface for notification destinations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import aiohttp

from scrapwatch.core.models import DetectedChange

DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0


@dataclass
class Message:
    """Notification message."""

    text: str


class NotificationChannel(ABC):
    """Abstract notification destination (Discord webhook, Revolt, Slack, ...).

    Args:
        label: Identity used in logs. Never the raw token or webhook URL.
        timeout: Total HTTP timeout in seconds for one request.
    """

    def __init__(self, label: str | None = None, timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS):
        self._label = label
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Destination type (e.g., 'discord', 'revolt')."""

    @property
    def destination_id(self) -> str:
        return self._label or self.name

    @abstractmethod
    def format_change(self, change: DetectedChange) -> Message:
        """Render a change as a message for this destination."""

    @abstractmethod
    async def deliver(self, change: DetectedChange) -> None:
        """Deliver one change.

        Raises:
            DeliverySkipped: destination unusable for this delivery.
            Exception: any transport failure; the dispatcher logs it.
        """

    # ------------------------------------------------------------------
    # HTTP session helpers
    # ------------------------------------------------------------------

    def _get_session(self) -> aiohttp.ClientSession:
        """Return a shared aiohttp session, creating it on first use."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self._timeout))
        return self._session

    async def aclose(self) -> None:
        """Close the underlying aiohttp session, if it exists."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
