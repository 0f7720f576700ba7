"""Built-in destination plugins.

Factories receive one entry of the destination list, e.g.::

    {"type": "revolt", "token": "...", "revolt_chat": "01H...", "label": "revolt#1"}
"""

from typing import Any

from scrapwatch.adapters.notifications.base import DEFAULT_HTTP_TIMEOUT_SECONDS
from scrapwatch.adapters.notifications.discord import DiscordWebhookChannel
from scrapwatch.adapters.notifications.revolt import DEFAULT_API_BASE, RevoltChannel
from scrapwatch.adapters.notifications.slack import SlackWebhookChannel


def _timeout(config: dict[str, Any]) -> float:
    return float(config.get("timeout", DEFAULT_HTTP_TIMEOUT_SECONDS))


def _discord(config: dict[str, Any]) -> DiscordWebhookChannel:
    return DiscordWebhookChannel(
        webhook_url=config.get("token", ""),
        label=config.get("label"),
        timeout=_timeout(config),
    )


def _revolt(config: dict[str, Any]) -> RevoltChannel:
    return RevoltChannel(
        bot_token=config.get("token", ""),
        channel_id=config.get("revolt_chat"),
        label=config.get("label"),
        api_base=config.get("api_base", DEFAULT_API_BASE),
        timeout=_timeout(config),
    )


def _slack(config: dict[str, Any]) -> SlackWebhookChannel:
    return SlackWebhookChannel(
        webhook_url=config.get("token", ""),
        label=config.get("label"),
        timeout=_timeout(config),
    )


def register_plugins(registry) -> None:
    """Register built-in destinations."""
    from scrapwatch.plugins.base import PluginKind

    registry.register_factory(
        kind=PluginKind.NOTIFICATION_CHANNEL,
        name="discord",
        version="0.1.0",
        factory=_discord,
        description="Discord incoming webhook (JSON content POST)",
    )
    registry.register_factory(
        kind=PluginKind.NOTIFICATION_CHANNEL,
        name="revolt",
        version="0.1.0",
        factory=_revolt,
        description="Revolt bot: session, channel lookup, send message",
    )
    registry.register_factory(
        kind=PluginKind.NOTIFICATION_CHANNEL,
        name="slack",
        version="0.1.0",
        factory=_slack,
        description="Slack incoming webhook (requires the slack extra)",
    )
