"""Connection lifecycle manager.

Drives connect / log on / reconnect against a :class:`FeedClient` and gates
the change poller on the authenticated session. Every feed event is handled
on one consumer loop (:meth:`ConnectionManager.run`), so the state, the
reconnect counter and the progress token have a single writer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from scrapwatch.adapters.feed.base import FeedClient
from scrapwatch.core.backoff import ReconnectPolicy, describe_delay
from scrapwatch.core.models import (
    ChangesReceived,
    Connected,
    ConnectionState,
    Disconnected,
    FeedEvent,
    LoggedOff,
    LoggedOn,
)
from scrapwatch.core.poller import ChangePoller

logger = logging.getLogger(__name__)

DEFAULT_EVENT_WAIT_SECONDS = 5.0


@dataclass(frozen=True)
class ReconnectDue(FeedEvent):
    """Posted by the backoff wait once its delay has elapsed."""

    attempt: int


class ConnectionManager:
    """State machine for the feed connection.

    Args:
        client: Feed client to drive.
        poller: Poller started on every successful log on, paused on
            disconnect or log off.
        policy: Reconnect backoff policy.
        username: Account name; anonymous log on unless both username and
            password are set.
        password: Account password.
        event_wait: Upper bound of a single wait on the event queue, so the
            consumer loop notices the stop signal promptly.
        sleep: Awaitable sleep used for the backoff wait.
    """

    def __init__(
        self,
        client: FeedClient,
        poller: ChangePoller,
        policy: ReconnectPolicy,
        username: str | None = None,
        password: str | None = None,
        event_wait: float = DEFAULT_EVENT_WAIT_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self._poller = poller
        self.policy = policy
        self._username = username
        self._password = password
        self._event_wait = event_wait
        self._sleep = sleep
        self.state = ConnectionState.DISCONNECTED
        self.is_anonymous = True
        self._first_connection = True
        self._stop_requested = False
        self._stopped = asyncio.Event()
        self._reconnect_task: asyncio.Task | None = None

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Begin the first connection attempt."""
        if self._stop_requested:
            raise RuntimeError("ConnectionManager cannot be restarted after stop()")
        self._set_state(ConnectionState.CONNECTING)
        logger.info("Connecting")
        try:
            await self._client.connect()
        except Exception as exc:
            logger.error("Connect failed: %s", exc)
            await self._client.publish(Disconnected(reason=str(exc)))

    async def stop(self) -> None:
        """Stop for good: no reconnects, no polling, transport disconnected."""
        if self._stop_requested:
            return
        logger.info("Stopping")
        self._stop_requested = True
        self._set_state(ConnectionState.STOPPING)
        if self.reconnect_pending:
            self._reconnect_task.cancel()
        self._reconnect_task = None
        self._poller.stop()
        try:
            await self._client.disconnect()
        except Exception as exc:
            logger.warning("Disconnect during stop failed: %s", exc)
        self._set_state(ConnectionState.DISCONNECTED)
        self._stopped.set()
        logger.info("Stopped")

    async def run(self) -> None:
        """Drain feed events until :meth:`stop` is called."""
        while not self._stopped.is_set():
            try:
                event = await asyncio.wait_for(self._client.events.get(), timeout=self._event_wait)
            except asyncio.TimeoutError:
                continue
            try:
                await self.handle_event(event)
            except Exception:
                logger.exception("Unhandled error while processing %s", type(event).__name__)

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    async def handle_event(self, event: FeedEvent) -> None:
        if isinstance(event, Connected):
            await self._on_connected(event)
        elif isinstance(event, Disconnected):
            self._on_disconnected(event)
        elif isinstance(event, LoggedOn):
            await self._on_logged_on(event)
        elif isinstance(event, LoggedOff):
            self._on_logged_off(event)
        elif isinstance(event, ChangesReceived):
            self._on_changes(event)
        elif isinstance(event, ReconnectDue):
            await self._on_reconnect_due(event)
        else:
            logger.debug("Ignoring unknown feed event %r", event)

    async def _on_connected(self, _event: Connected) -> None:
        if self._stop_requested:
            return
        self.policy.reset()
        logger.info("Client %s", "Connected" if self._first_connection else "Reconnected")
        self._first_connection = False
        self._set_state(ConnectionState.CONNECTED)

        self.is_anonymous = not (self._username and self._password)
        logger.info("Logging On%s", " Anonymously" if self.is_anonymous else "")
        self._set_state(ConnectionState.AUTHENTICATING)
        try:
            if self.is_anonymous:
                await self._client.login_anonymous()
            else:
                await self._client.login(self._username, self._password)
        except Exception as exc:
            # Left to the transport: a dead session ends in Disconnected.
            logger.error("Log On request failed: %s", exc)
            self._set_state(ConnectionState.CONNECTED)

    def _on_disconnected(self, event: Disconnected) -> None:
        self._poller.pause()
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("Disconnected%s", f" ({event.reason})" if event.reason else "")
        if self._stop_requested:
            return
        if self.reconnect_pending:
            logger.debug("Reconnect already scheduled, ignoring duplicate disconnect")
            return

        delay = self.policy.next_delay()
        attempt = self.policy.attempt_count + 1
        logger.info(describe_delay(delay, attempt))
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after(delay, attempt),
            name="scrapwatch-reconnect",
        )

    async def _reconnect_after(self, delay: float, attempt: int) -> None:
        await self._sleep(delay)
        if self._stop_requested:
            return
        await self._client.publish(ReconnectDue(attempt))

    async def _on_reconnect_due(self, event: ReconnectDue) -> None:
        # Only the backoff wait counts as pending; a disconnect reported while
        # connect() is still running schedules the next attempt.
        if self._reconnect_task is not None and self._reconnect_task.done():
            self._reconnect_task = None
        if self._stop_requested:
            return
        if self.state is not ConnectionState.DISCONNECTED:
            logger.debug("Dropping reconnect attempt %s: session is %s", event.attempt, self.state.value)
            return
        logger.info("Reconnecting (Attempt %s)", event.attempt)
        self.policy.record_attempt()
        self._set_state(ConnectionState.CONNECTING)
        try:
            await self._client.connect()
        except Exception as exc:
            logger.error("Reconnect attempt %s failed: %s", event.attempt, exc)
            self._on_disconnected(Disconnected(reason=str(exc)))

    async def _on_logged_on(self, event: LoggedOn) -> None:
        if self._stop_requested:
            return
        if not event.result.ok:
            logger.error("Log On Failed: %s", event.result)
            self._set_state(ConnectionState.CONNECTED)
            return

        if not self.is_anonymous:
            try:
                await self._client.set_persona_online()
            except Exception as exc:
                logger.warning("Failed to set persona online: %s", exc)
        self._set_state(ConnectionState.AUTHENTICATED)
        logger.info("Logged On%s", " Anonymously" if self.is_anonymous else "")
        self._poller.start()

    def _on_logged_off(self, event: LoggedOff) -> None:
        logger.info("Logged Off%s", f" ({event.result})" if event.result else "")
        self._poller.pause()
        if self.state is ConnectionState.AUTHENTICATED:
            self._set_state(ConnectionState.CONNECTED)

    def _on_changes(self, event: ChangesReceived) -> None:
        if self.state is not ConnectionState.AUTHENTICATED:
            logger.debug(
                "Discarding change result for token %s: session is %s",
                event.token_snapshot,
                self.state.value,
            )
            return
        self._poller.handle_result(event.result)

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self.state:
            logger.debug("Connection state %s -> %s", self.state.value, state.value)
            self.state = state
