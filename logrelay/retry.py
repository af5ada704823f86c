"""
Retry scheduling with a stepped backoff sequence.

The backoff walks through a configured list of millisecond intervals and
holds at the last one. Only an explicit reset (after a successful delivery)
starts it over.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerLoop(Protocol):
    """Anything that can arm a one-shot timer, e.g. an asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class RetryScheduler:
    """
    Owns the backoff position and the single pending retry timer.

    At most one timer is armed at a time; arming a new one cancels the old.
    """

    def __init__(
        self,
        retry_intervals: Sequence[int],
        on_fire: Callable[[], None],
        loop: TimerLoop | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            retry_intervals: Non-empty sequence of delays in milliseconds
            on_fire: Called when a retry timer fires
            loop: Timer source; defaults to the running asyncio loop
        """
        if not retry_intervals:
            raise ValueError("retry_intervals must not be empty")

        self.retry_intervals = tuple(retry_intervals)
        self._on_fire = on_fire
        self._loop = loop
        self._interval_index = 0
        self._pending: TimerHandle | None = None
        self._last_delay: int | None = None

    @property
    def interval_index(self) -> int:
        return self._interval_index

    @property
    def current_interval(self) -> int:
        """Delay in milliseconds the next schedule_retry() will use."""
        return self.retry_intervals[self._interval_index]

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def schedule_retry(self) -> int:
        """
        Arm a retry timer for the current interval and advance the backoff.

        Returns:
            The armed delay in milliseconds
        """
        self.cancel_pending()

        delay_ms = self.current_interval
        loop = self._loop or asyncio.get_running_loop()
        self._pending = loop.call_later(delay_ms / 1000, self._fire)
        self._last_delay = delay_ms

        self._interval_index = min(self._interval_index + 1, len(self.retry_intervals) - 1)
        logger.debug(f"Retry scheduled in {delay_ms}ms")
        return delay_ms

    def cancel_pending(self) -> None:
        """Cancel the pending timer, if any."""
        if self._pending is None:
            return
        self._pending.cancel()
        self._pending = None
        logger.debug("Pending retry cancelled")

    def reset(self) -> None:
        """Return to the first interval."""
        self._interval_index = 0

    def _fire(self) -> None:
        self._pending = None
        logger.debug("Retry timer fired")
        self._on_fire()

    def get_stats(self) -> dict:
        """Get backoff statistics."""
        return {
            "interval_index": self._interval_index,
            "current_interval_ms": self.current_interval,
            "max_interval_ms": self.retry_intervals[-1],
            "pending": self.has_pending,
            "last_delay_ms": self._last_delay,
        }
