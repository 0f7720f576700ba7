"""Reconnect backoff policy.

Delay for attempt ``n`` (0-indexed) is ``min(2**n * base_delay, max_delay)``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from scrapwatch.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_DELAY_SECONDS = 15
DEFAULT_MAX_DELAY_SECONDS = 240


@dataclass
class ReconnectPolicy:
    """Exponential reconnect schedule with a ceiling.

    ``attempt_count`` is reset on every successful connection and incremented
    after each backoff wait completes.
    """

    max_delay: float = DEFAULT_MAX_DELAY_SECONDS
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS
    attempt_count: int = 0

    def __post_init__(self) -> None:
        if self.max_delay <= 0:
            raise ConfigurationError(f"max reconnect delay must be positive, got {self.max_delay!r}")
        if self.base_delay <= 0:
            raise ConfigurationError(f"base reconnect delay must be positive, got {self.base_delay!r}")

    def delay_for(self, attempt: int) -> float:
        if attempt < 0:
            raise ValueError("attempt must be >= 0")
        # Past this exponent the product already dwarfs any sane ceiling.
        if attempt >= 64:
            return self.max_delay
        return min((2 ** attempt) * self.base_delay, self.max_delay)

    def next_delay(self) -> float:
        """Delay before the upcoming attempt."""
        return self.delay_for(self.attempt_count)

    def record_attempt(self) -> None:
        self.attempt_count += 1

    def reset(self) -> None:
        if self.attempt_count:
            logger.debug("Resetting reconnect attempts (was %s)", self.attempt_count)
        self.attempt_count = 0

    def schedule(self, attempts: int) -> list[float]:
        """Return the delays for the first ``attempts`` attempts."""
        return [self.delay_for(n) for n in range(attempts)]


def describe_delay(seconds: float, attempt: int) -> str:
    """Human-readable reconnect notice, e.g. ``Reconnecting in 15 Seconds (Attempt 1)``."""
    whole = int(seconds) if float(seconds).is_integer() else seconds
    unit = "Second" if whole == 1 else "Seconds"
    return f"Reconnecting in {whole} {unit} (Attempt {attempt})"
