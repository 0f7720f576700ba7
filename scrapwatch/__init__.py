"""
scrapwatch - relay change-feed updates for tracked apps to chat webhooks.
"""

__version__ = "0.1.0"

from scrapwatch.adapters.feed import FeedClient
from scrapwatch.adapters.notifications import (
    DiscordWebhookChannel,
    NotificationChannel,
    RevoltChannel,
    SlackWebhookChannel,
)
from scrapwatch.core import (
    ChangeQueryResult,
    ConfigurationError,
    ConnectionState,
    DetectedChange,
    ReconnectPolicy,
    ResourceChange,
    ResourceRegistry,
    filter_changes,
)
from scrapwatch.core.connection import ConnectionManager
from scrapwatch.core.dispatcher import NotificationDispatcher
from scrapwatch.core.poller import ChangePoller
from scrapwatch.plugins import PluginKind, PluginRegistry, build_default_registry

__all__ = [
    "__version__",
    # Core
    "ChangePoller",
    "ChangeQueryResult",
    "ConfigurationError",
    "ConnectionManager",
    "ConnectionState",
    "DetectedChange",
    "NotificationDispatcher",
    "ReconnectPolicy",
    "ResourceChange",
    "ResourceRegistry",
    "filter_changes",
    # Adapters
    "FeedClient",
    "NotificationChannel",
    "DiscordWebhookChannel",
    "RevoltChannel",
    "SlackWebhookChannel",
    # Plugins
    "PluginKind",
    "PluginRegistry",
    "build_default_registry",
]
