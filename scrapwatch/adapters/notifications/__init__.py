"""Notification destination adapters."""
from scrapwatch.adapters.notifications.base import Message, NotificationChannel
from scrapwatch.adapters.notifications.discord import DiscordWebhookChannel
from scrapwatch.adapters.notifications.revolt import RevoltChannel
from scrapwatch.adapters.notifications.slack import SlackWebhookChannel

__all__ = [
    "NotificationChannel",
    "Message",
    "DiscordWebhookChannel",
    "RevoltChannel",
    "SlackWebhookChannel",
]
