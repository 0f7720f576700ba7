"""Revolt chat destination.

Revolt needs a session before anything else: the bot token is checked
against ``/users/@me``, then the target channel is resolved, and only then
is the message sent.
"""

import logging
from typing import Any

from scrapwatch.adapters.notifications.base import DEFAULT_HTTP_TIMEOUT_SECONDS, Message, NotificationChannel
from scrapwatch.core.errors import ConfigurationError, DeliveryError, DeliverySkipped
from scrapwatch.core.models import DetectedChange

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.revolt.chat"


class RevoltChannel(NotificationChannel):
    """Send changes to a Revolt channel through the REST API.

    Args:
        bot_token: Revolt bot token.
        channel_id: Target channel. Optional so that a misconfigured entry
            only disables itself instead of the whole service.
        api_base: API root, overridable for self-hosted instances.
    """

    def __init__(
        self,
        bot_token: str,
        channel_id: str | None = None,
        label: str | None = None,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        if not isinstance(bot_token, str) or not bot_token.strip():
            raise ConfigurationError("revolt destination requires a bot token")
        super().__init__(label=label, timeout=timeout)
        self._bot_token = bot_token.strip()
        self._channel_id = (channel_id or "").strip() or None
        self._api_base = api_base.rstrip("/")
        self._session_user: dict[str, Any] | None = None

    @property
    def name(self) -> str:
        return "revolt"

    @property
    def channel_id(self) -> str | None:
        return self._channel_id

    def format_change(self, change: DetectedChange) -> Message:
        return Message(
            text=f"New Steam PICS Change for App `{change.label}`  \n{change.history_url}",
        )

    async def deliver(self, change: DetectedChange) -> None:
        if not self._channel_id:
            raise DeliverySkipped(self.destination_id, "No channel for revolt webhook")

        await self.start_session()
        channel = await self.fetch_channel(self._channel_id)
        if channel is None:
            raise DeliverySkipped(self.destination_id, f"Channel {self._channel_id} for revolt not found")

        message = self.format_change(change)
        await self._request("POST", f"/channels/{self._channel_id}/messages", json={"content": message.text})

    async def start_session(self) -> dict[str, Any]:
        """Authenticate the bot once per HTTP session."""
        if self._session_user is not None and self._session is not None and not self._session.closed:
            return self._session_user
        user = await self._request("GET", "/users/@me")
        if not isinstance(user, dict):
            raise DeliveryError(self.destination_id, "unexpected /users/@me response")
        self._session_user = user
        logger.debug("Revolt session started for %s as %s", self.destination_id, user.get("username", "?"))
        return user

    async def fetch_channel(self, channel_id: str) -> dict[str, Any] | None:
        """Return the channel object, or None when it does not exist."""
        return await self._request("GET", f"/channels/{channel_id}", allow_missing=True)

    async def aclose(self) -> None:
        self._session_user = None
        await super().aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        allow_missing: bool = False,
    ) -> Any:
        session = self._get_session()
        try:
            async with session.request(
                method,
                f"{self._api_base}{path}",
                json=json,
                headers={"x-bot-token": self._bot_token},
            ) as resp:
                if allow_missing and resp.status == 404:
                    return None
                resp.raise_for_status()
                if resp.content_type == "application/json":
                    return await resp.json()
                return None
        except Exception:
            logger.error("Revolt %s %s failed for %s", method, path, self.destination_id)
            raise
