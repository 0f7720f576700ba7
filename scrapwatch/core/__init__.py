"""Core change watching components.

Only dependency-free modules are re-exported here; the connection manager,
poller and dispatcher are imported from their own modules.
"""

from scrapwatch.core.backoff import ReconnectPolicy
from scrapwatch.core.errors import (
    ConfigurationError,
    DeliveryError,
    DeliverySkipped,
    FeedQueryError,
    ScrapwatchError,
)
from scrapwatch.core.filtering import ResourceRegistry, filter_changes
from scrapwatch.core.models import (
    ChangeQueryResult,
    ConnectionState,
    DetectedChange,
    LoginResult,
    ResourceChange,
)

__all__ = [
    "ChangeQueryResult",
    "ConfigurationError",
    "ConnectionState",
    "DeliveryError",
    "DeliverySkipped",
    "DetectedChange",
    "FeedQueryError",
    "LoginResult",
    "ReconnectPolicy",
    "ResourceChange",
    "ResourceRegistry",
    "ScrapwatchError",
    "filter_changes",
]
