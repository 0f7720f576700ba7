"""Remote change-feed client adapters."""
from scrapwatch.adapters.feed.base import FeedClient

__all__ = ["FeedClient"]
