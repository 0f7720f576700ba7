"""Fan out detected changes to notification destinations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence

from scrapwatch.adapters.notifications.base import NotificationChannel
from scrapwatch.core.errors import DeliverySkipped
from scrapwatch.core.models import DetectedChange

logger = logging.getLogger(__name__)

DEFAULT_DELIVERY_TIMEOUT_SECONDS = 30.0
DEFAULT_DRAIN_GRACE_SECONDS = 5.0


class NotificationDispatcher:
    """Deliver each change to each destination as an independent task.

    A slow or failing destination never holds up the others, nor the next
    poll cycle: :meth:`dispatch` only schedules work and returns.
    """

    def __init__(
        self,
        channels: Sequence[NotificationChannel],
        delivery_timeout: float = DEFAULT_DELIVERY_TIMEOUT_SECONDS,
    ):
        self._channels = tuple(channels)
        self._delivery_timeout = delivery_timeout
        self._pending: set[asyncio.Task] = set()

    @property
    def channels(self) -> tuple[NotificationChannel, ...]:
        return self._channels

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, changes: Iterable[DetectedChange]) -> list[asyncio.Task]:
        """Schedule delivery of every change to every destination."""
        tasks = []
        for change in changes:
            for channel in self._channels:
                task = asyncio.create_task(self._deliver(channel, change))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
                tasks.append(task)
        return tasks

    async def _deliver(self, channel: NotificationChannel, change: DetectedChange) -> bool:
        try:
            await asyncio.wait_for(channel.deliver(change), timeout=self._delivery_timeout)
        except DeliverySkipped as exc:
            logger.warning("Skipped %s for app %s: %s", channel.destination_id, change.resource_id, exc)
            return False
        except asyncio.TimeoutError:
            logger.error(
                "Delivery to %s for app %s timed out after %ss",
                channel.destination_id,
                change.resource_id,
                self._delivery_timeout,
            )
            return False
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error(
                "Delivery to %s for app %s change %s failed: %s",
                channel.destination_id,
                change.resource_id,
                change.change_number,
                exc,
            )
            return False
        logger.info(
            "Notified %s of app %s change %s",
            channel.destination_id,
            change.resource_id,
            change.change_number,
        )
        return True

    async def drain(self, grace: float = DEFAULT_DRAIN_GRACE_SECONDS) -> int:
        """Wait up to ``grace`` seconds for in-flight deliveries.

        Returns the number of deliveries still running afterwards; they are
        left alone rather than cancelled.
        """
        if not self._pending:
            return 0
        _done, still_running = await asyncio.wait(set(self._pending), timeout=grace)
        if still_running:
            logger.warning("%d notification(s) still in flight after %ss", len(still_running), grace)
        return len(still_running)

    async def aclose(self) -> None:
        for channel in self._channels:
            try:
                await channel.aclose()
            except Exception as exc:
                logger.warning("Failed to close %s: %s", channel.destination_id, exc)
