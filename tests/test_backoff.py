"""Tests for the reconnect backoff policy."""

import pytest

from scrapwatch.core.backoff import ReconnectPolicy, describe_delay
from scrapwatch.core.errors import ConfigurationError


def test_delay_doubles_from_fifteen_seconds():
    policy = ReconnectPolicy(max_delay=10_000)

    assert policy.schedule(5) == [15, 30, 60, 120, 240]


def test_delay_caps_at_max_delay():
    policy = ReconnectPolicy(max_delay=60)

    assert policy.schedule(4) == [15, 30, 60, 60]


@pytest.mark.parametrize("max_delay", [1, 15, 40, 240, 3600])
def test_delay_is_monotonic_and_bounded(max_delay):
    policy = ReconnectPolicy(max_delay=max_delay)
    delays = policy.schedule(80)

    assert delays == sorted(delays)
    assert max(delays) == max_delay
    for attempt, delay in enumerate(delays):
        assert delay == min(2 ** attempt * 15, max_delay)


def test_attempt_counter_and_reset():
    policy = ReconnectPolicy(max_delay=240)

    assert policy.next_delay() == 15
    policy.record_attempt()
    policy.record_attempt()
    assert policy.attempt_count == 2
    assert policy.next_delay() == 60

    policy.reset()
    assert policy.attempt_count == 0
    assert policy.next_delay() == 15


def test_negative_attempt_rejected():
    with pytest.raises(ValueError):
        ReconnectPolicy().delay_for(-1)


@pytest.mark.parametrize("max_delay", [0, -5])
def test_non_positive_max_delay_is_configuration_error(max_delay):
    with pytest.raises(ConfigurationError):
        ReconnectPolicy(max_delay=max_delay)


def test_describe_delay_pluralization():
    assert describe_delay(15, 1) == "Reconnecting in 15 Seconds (Attempt 1)"
    assert describe_delay(1, 3) == "Reconnecting in 1 Second (Attempt 3)"
