"""Exception hierarchy for scrapwatch."""


class ScrapwatchError(Exception):
    """Base class for scrapwatch errors."""


class ConfigurationError(ScrapwatchError):
    """Raised when configuration validation fails.

    Only raised at startup; the service refuses to run with an unusable
    configuration.
    """


class DeliveryError(ScrapwatchError):
    """Raised when a notification could not be delivered to a destination."""

    def __init__(self, destination: str, message: str):
        super().__init__(f"{destination}: {message}")
        self.destination = destination


class DeliverySkipped(DeliveryError):
    """Raised when a destination cannot be used for this delivery.

    Covers destinations whose configuration is incomplete (no chat channel)
    or whose target no longer resolves (channel lookup returned nothing).
    """


class FeedQueryError(ScrapwatchError):
    """Raised by feed clients when a change query fails."""
