"""Fixed-rate change polling bound to the authenticated session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping

from scrapwatch.adapters.feed.base import FeedClient
from scrapwatch.core.errors import FeedQueryError
from scrapwatch.core.filtering import filter_changes
from scrapwatch.core.models import ChangeQueryResult, ChangesReceived, DetectedChange
from scrapwatch.core.state import ProgressStore

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 2.0


class ChangePoller:
    """Issue change queries on a fixed-rate timer and track the progress token.

    Query completions are not handled on the timer: they are posted back onto
    the feed client's event queue as :class:`ChangesReceived` so the connection
    manager processes them on its single consumer loop, where it can drop
    results that arrive after the session ended.
    """

    def __init__(
        self,
        client: FeedClient,
        registry: Mapping[int, str],
        on_changes: Callable[[list[DetectedChange]], object],
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        store: ProgressStore | None = None,
        include_app_changes: bool = True,
        include_package_changes: bool = True,
    ):
        if interval <= 0:
            raise ValueError("poll interval must be positive")
        self._client = client
        self._registry = registry
        self._on_changes = on_changes
        self._interval = interval
        self._store = store
        self._include_app_changes = include_app_changes
        self._include_package_changes = include_package_changes
        self._timer: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()
        self.progress_token = store.load() if store else 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    # ------------------------------------------------------------------
    # Timer control
    # ------------------------------------------------------------------

    def start(self) -> None:
        """(Re)start polling: one query now, then one every ``interval``."""
        self.pause()
        logger.debug("Starting change polling every %ss from token %s", self._interval, self.progress_token)
        self._timer = asyncio.create_task(self._run_timer(), name="scrapwatch-poll-timer")

    def pause(self) -> None:
        """Cancel the timer. Queries already sent are left to complete."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
            logger.debug("Change polling paused")
        self._timer = None

    def stop(self) -> None:
        self.pause()

    async def _run_timer(self) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        ticks = 0
        while True:
            self._launch_query()
            ticks += 1
            # Fixed rate anchored to the first query. Ticks missed while the
            # loop was stalled are dropped, not replayed.
            ticks = max(ticks, int((loop.time() - started) // self._interval) + 1)
            deadline = started + ticks * self._interval
            await asyncio.sleep(max(0.0, deadline - loop.time()))

    def _launch_query(self) -> None:
        snapshot = self.progress_token
        task = asyncio.create_task(self._query(snapshot))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _query(self, token: int) -> None:
        try:
            result = await self._client.query_changes_since(
                token,
                self._include_app_changes,
                self._include_package_changes,
            )
        except FeedQueryError as exc:
            logger.warning("Change query since %s failed: %s", token, exc)
            return
        except Exception:
            logger.exception("Unexpected error in change query since %s", token)
            return
        await self._client.publish(ChangesReceived(result=result, token_snapshot=token))

    # ------------------------------------------------------------------
    # Result handling
    # ------------------------------------------------------------------

    def handle_result(self, result: ChangeQueryResult) -> list[DetectedChange]:
        """Apply a query result and forward tracked changes.

        A round whose last and current change numbers are equal reports no
        progress and is ignored, whatever the stored token is.
        """
        if not result.has_progress:
            return []

        if result.current_change_number > self.progress_token:
            self.progress_token = result.current_change_number
            if self._store is not None:
                self._store.save(self.progress_token)

        detected = filter_changes(self._registry, result.app_changes)
        if not detected:
            return []

        logger.info(
            "Detected %d tracked change(s) up to change %s",
            len(detected),
            result.current_change_number,
        )
        self._on_changes(detected)
        return detected
