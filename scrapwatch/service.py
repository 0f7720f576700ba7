"""Hosted watch service: wires client, manager, poller and dispatcher."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from scrapwatch.adapters.feed.base import FeedClient
from scrapwatch.adapters.notifications.base import NotificationChannel
from scrapwatch.core.backoff import ReconnectPolicy
from scrapwatch.core.config import Settings
from scrapwatch.core.connection import ConnectionManager
from scrapwatch.core.dispatcher import NotificationDispatcher
from scrapwatch.core.errors import ConfigurationError
from scrapwatch.core.filtering import ResourceRegistry
from scrapwatch.core.poller import ChangePoller
from scrapwatch.core.state import JsonProgressStore
from scrapwatch.plugins import PluginKind, PluginNotFoundError, PluginRegistry

logger = logging.getLogger(__name__)


def build_channels(settings: Settings, registry: PluginRegistry) -> list[NotificationChannel]:
    """Instantiate every configured destination, failing on unknown types."""
    channels = []
    for destination in settings.destinations:
        try:
            channel = registry.create(
                PluginKind.NOTIFICATION_CHANNEL,
                destination.type,
                destination.as_plugin_config(),
            )
        except PluginNotFoundError as exc:
            known = ", ".join(registry.names(PluginKind.NOTIFICATION_CHANNEL))
            raise ConfigurationError(
                f"Unknown destination type {destination.type!r} for {destination.label} (known: {known})"
            ) from exc
        except ImportError as exc:
            raise ConfigurationError(f"{destination.label}: {exc}") from exc
        channels.append(channel)
    return channels


def build_feed_client(settings: Settings, registry: PluginRegistry) -> FeedClient:
    try:
        return registry.create(
            PluginKind.FEED_CLIENT,
            settings.feed_client,
            dict(settings.feed_client_options),
        )
    except PluginNotFoundError as exc:
        raise ConfigurationError(
            f"No feed client plugin named {settings.feed_client!r} is installed"
        ) from exc


class WatchService:
    """Run the feed connection and relay tracked changes until stopped."""

    def __init__(
        self,
        settings: Settings,
        client: FeedClient,
        channels: list[NotificationChannel],
    ):
        self.settings = settings
        self.client = client
        self.registry = ResourceRegistry(settings.tracked_apps)
        self.dispatcher = NotificationDispatcher(
            channels,
            delivery_timeout=settings.delivery_timeout_seconds,
        )
        store = JsonProgressStore(settings.state_file) if settings.state_file else None
        self.poller = ChangePoller(
            client,
            self.registry,
            on_changes=self.dispatcher.dispatch,
            interval=settings.poll_interval_seconds,
            store=store,
        )
        self.manager = ConnectionManager(
            client,
            self.poller,
            ReconnectPolicy(max_delay=settings.max_reconnect_delay_seconds),
            username=settings.username,
            password=settings.password,
        )
        self._consumer: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, settings: Settings, registry: PluginRegistry) -> "WatchService":
        return cls(settings, build_feed_client(settings, registry), build_channels(settings, registry))

    async def start(self) -> None:
        logger.info(
            "Starting: tracking %d app(s), %d destination(s)",
            len(self.registry),
            len(self.dispatcher.channels),
        )
        self._consumer = asyncio.create_task(self.manager.run(), name="scrapwatch-events")
        await self.manager.start()
        logger.info("Started")

    async def stop(self) -> None:
        await self.manager.stop()
        if self._consumer is not None and not self._consumer.done():
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
        self._consumer = None
        await self.dispatcher.drain(self.settings.shutdown_grace_seconds)
        await self.dispatcher.aclose()

    async def run_forever(self) -> None:
        """Start, then block until SIGINT/SIGTERM and shut down."""
        loop = asyncio.get_running_loop()
        stop_requested = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop_requested.set)

        await self.start()
        try:
            await stop_requested.wait()
        finally:
            await self.stop()
