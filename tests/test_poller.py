"""Tests for the change poller."""

import asyncio
import json
import time

import pytest

from conftest import FakeFeedClient, make_result, settle
from scrapwatch.core.errors import FeedQueryError
from scrapwatch.core.filtering import ResourceRegistry
from scrapwatch.core.models import ChangesReceived
from scrapwatch.core.poller import ChangePoller
from scrapwatch.core.state import JsonProgressStore


def _poller(client=None, interval=2.0, store=None):
    dispatched = []
    poller = ChangePoller(
        client or FakeFeedClient(),
        ResourceRegistry({100: "X"}),
        on_changes=dispatched.append,
        interval=interval,
        store=store,
    )
    return poller, dispatched


# ---------------------------------------------------------------------------
# Result handling
# ---------------------------------------------------------------------------


def test_no_progress_round_is_ignored():
    poller, dispatched = _poller()
    poller.progress_token = 10

    detected = poller.handle_result(make_result(10, 10, {100: 11}))

    assert detected == []
    assert dispatched == []
    assert poller.progress_token == 10


def test_progress_updates_token_and_dispatches_tracked_changes():
    poller, dispatched = _poller()

    detected = poller.handle_result(make_result(0, 12, {100: 5, 200: 9}))

    assert poller.progress_token == 12
    assert [(c.resource_id, c.change_number, c.display_name) for c in detected] == [(100, 5, "X")]
    assert dispatched == [detected]


def test_token_never_decreases_on_stale_result():
    poller, dispatched = _poller()
    poller.progress_token = 50

    poller.handle_result(make_result(20, 30, {100: 25}))

    assert poller.progress_token == 50
    # Stale rounds still report their changes downstream.
    assert len(dispatched) == 1


def test_untracked_changes_do_not_dispatch():
    poller, dispatched = _poller()

    poller.handle_result(make_result(1, 2, {200: 2}))

    assert poller.progress_token == 2
    assert dispatched == []


def test_token_persisted_when_store_configured(tmp_path):
    path = tmp_path / "state" / "progress.json"
    store = JsonProgressStore(str(path))
    poller, _ = _poller(store=store)

    poller.handle_result(make_result(0, 77))
    poller.handle_result(make_result(77, 77))

    assert json.loads(path.read_text()) == {"last_change_number": 77}
    restored, _ = _poller(store=JsonProgressStore(str(path)))
    assert restored.progress_token == 77


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        _poller(interval=0)


# ---------------------------------------------------------------------------
# Timer
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_start_queries_immediately_and_posts_result_to_event_queue():
    client = FakeFeedClient(results=[make_result(0, 3, {100: 3})])
    poller, dispatched = _poller(client)
    poller.progress_token = 0

    poller.start()
    await settle()
    poller.pause()

    assert client.queries == [0]
    event = client.events.get_nowait()
    assert isinstance(event, ChangesReceived)
    assert event.token_snapshot == 0
    assert event.result.current_change_number == 3
    # Handling is left to the event consumer.
    assert dispatched == []


@pytest.mark.asyncio
async def test_fixed_rate_timer_keeps_querying_while_a_query_hangs():
    client = FakeFeedClient()
    client.query_gate = asyncio.Event()
    poller, _ = _poller(client, interval=0.01)

    poller.start()
    await asyncio.sleep(0.055)
    poller.pause()

    assert len(client.queries) >= 3
    assert poller.in_flight >= 3
    client.query_gate.set()
    await settle()
    assert poller.in_flight == 0


@pytest.mark.asyncio
async def test_pause_stops_timer_and_start_resumes():
    client = FakeFeedClient()
    poller, _ = _poller(client, interval=0.01)

    poller.start()
    await settle()
    assert poller.running
    poller.pause()
    assert not poller.running
    count = len(client.queries)
    await asyncio.sleep(0.03)
    assert len(client.queries) == count

    poller.start()
    await settle()
    assert poller.running
    assert len(client.queries) == count + 1
    poller.stop()


@pytest.mark.asyncio
async def test_failed_query_is_discarded():
    client = FakeFeedClient(results=[FeedQueryError("timeout")])
    poller, _ = _poller(client)
    poller.progress_token = 9

    poller.start()
    await settle()
    poller.pause()

    assert client.queries == [9]
    assert client.events.empty()
    assert poller.progress_token == 9


@pytest.mark.asyncio
async def test_each_query_carries_its_own_token_snapshot():
    client = FakeFeedClient()
    poller, _ = _poller(client, interval=0.01)
    poller.progress_token = 5

    poller.start()
    await settle()
    poller.progress_token = 8
    await asyncio.sleep(0.015)
    poller.pause()

    assert client.queries[0] == 5
    assert client.queries[-1] == 8


@pytest.mark.asyncio
async def test_unexpected_query_error_is_logged_and_discarded(caplog):
    client = FakeFeedClient(results=[KeyError("app_changes")])
    poller, _ = _poller(client)

    with caplog.at_level("ERROR"):
        poller.start()
        await settle()
        poller.pause()

    assert "Unexpected error in change query since 0" in caplog.text
    assert client.events.empty()
    assert poller.progress_token == 0


@pytest.mark.asyncio
async def test_ticks_missed_during_a_stall_are_not_replayed():
    client = FakeFeedClient()
    poller, _ = _poller(client, interval=0.05)

    poller.start()
    await settle()
    assert len(client.queries) == 1

    # Block the event loop for several intervals.
    time.sleep(0.3)
    await asyncio.sleep(0.02)
    poller.pause()

    # Missed intervals are not replayed one by one.
    assert 2 <= len(client.queries) <= 3
