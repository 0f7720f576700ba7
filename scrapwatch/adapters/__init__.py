"""Adapters for the feed client and notification destinations."""
