"""Discord webhook destination."""

import logging

from scrapwatch.adapters.notifications.base import DEFAULT_HTTP_TIMEOUT_SECONDS, Message, NotificationChannel
from scrapwatch.core.errors import ConfigurationError
from scrapwatch.core.models import DetectedChange

logger = logging.getLogger(__name__)


class DiscordWebhookChannel(NotificationChannel):
    """Post changes to a Discord incoming webhook.

    The request body is ``{"content": <text>}``; any HTTP error status is
    raised to the dispatcher.
    """

    def __init__(
        self,
        webhook_url: str,
        label: str | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        if not isinstance(webhook_url, str) or not webhook_url.strip():
            raise ConfigurationError("discord destination requires a webhook URL token")
        webhook_url = webhook_url.strip()
        if not webhook_url.startswith(("http://", "https://")):
            raise ConfigurationError("discord destination token must be an http(s) webhook URL")
        super().__init__(label=label, timeout=timeout)
        self._webhook_url = webhook_url

    @property
    def name(self) -> str:
        return "discord"

    def format_change(self, change: DetectedChange) -> Message:
        return Message(
            text=f"New SteamDB change detected! `{change.label}`  \n{change.history_url}",
        )

    async def deliver(self, change: DetectedChange) -> None:
        message = self.format_change(change)
        await self._post_webhook({"content": message.text})

    async def _post_webhook(self, payload: dict) -> None:
        session = self._get_session()
        try:
            async with session.post(
                self._webhook_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            ) as resp:
                resp.raise_for_status()
        except Exception:
            logger.error("Discord webhook post failed for %s", self.destination_id)
            raise
