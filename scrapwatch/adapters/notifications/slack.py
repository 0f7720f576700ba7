"""Slack incoming-webhook destination.

Requires the ``slack`` optional extra::

    pip install scrapwatch[slack]
"""
import logging

from scrapwatch.adapters.notifications.base import DEFAULT_HTTP_TIMEOUT_SECONDS, Message, NotificationChannel
from scrapwatch.core.errors import ConfigurationError, DeliveryError
from scrapwatch.core.models import DetectedChange

try:
    from slack_sdk.webhook.async_client import AsyncWebhookClient

    _SLACK_SDK_AVAILABLE = True
except ImportError:
    _SLACK_SDK_AVAILABLE = False

logger = logging.getLogger(__name__)


def _require_slack_sdk() -> None:
    if not _SLACK_SDK_AVAILABLE:
        raise ImportError(
            "slack-sdk is required for SlackWebhookChannel. "
            "Install it with: pip install scrapwatch[slack]"
        )


class SlackWebhookChannel(NotificationChannel):
    """Post changes to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: str,
        label: str | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        _require_slack_sdk()
        if not isinstance(webhook_url, str) or not webhook_url.strip():
            raise ConfigurationError("slack destination requires a webhook URL token")
        super().__init__(label=label, timeout=timeout)
        self._client = AsyncWebhookClient(url=webhook_url.strip(), timeout=int(timeout))

    @property
    def name(self) -> str:
        return "slack"

    def format_change(self, change: DetectedChange) -> Message:
        # Slack mrkdwn link syntax
        return Message(
            text=f"New SteamDB change detected! `{change.label}`\n<{change.history_url}|Change {change.change_number}>",
        )

    async def deliver(self, change: DetectedChange) -> None:
        message = self.format_change(change)
        response = await self._client.send(text=message.text, unfurl_links=False)
        if response.status_code != 200:
            logger.error("Slack webhook returned %s for %s", response.status_code, self.destination_id)
            raise DeliveryError(self.destination_id, f"HTTP {response.status_code}: {response.body}")
