"""
Delivery controller: the state machine that moves buffered records to a transport.

Every trigger (a log() call, a finished send, a retry timer, a connectivity
change) goes through handle_logs(), which starts a delivery only when the
controller is idle, the network is online and the buffer holds records. That
single gate is what keeps at most one send in flight.

Usage:
    monitor = ManualNetworkMonitor(online=True)
    controller = DeliveryController(
        transport=HttpTransport("https://logs.example.com/ingest", token="tok"),
        network=monitor,
        config=DeliveryConfig(max_batch_size=50),
    )
    controller.log("Service started")
    await controller.wait_until_idle()
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from .buffer import LogBuffer, LogRecord
from .config import DeliveryConfig
from .network import NetworkMonitor
from .retry import RetryScheduler, TimerLoop
from .transport import Transport

logger = logging.getLogger(__name__)


class DeliveryState(Enum):
    """Whether a batch is currently in flight."""

    IDLE = "idle"
    SENDING = "sending"


@dataclass
class DeliveryMetrics:
    """Counters for monitoring delivery health."""

    logged_records: int = 0
    sent_records: int = 0
    sent_batches: int = 0
    failed_attempts: int = 0
    last_success_time: float | None = None
    last_failure_time: float | None = None
    last_error: str | None = None


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


class DeliveryController:
    """
    Buffers log records and delivers them in batches, one batch at a time.

    On success the delivered prefix is dropped and the next batch follows in
    the same delivery task. On failure the buffer is left untouched and a
    retry is scheduled with stepped backoff. Retries never give up.
    """

    def __init__(
        self,
        transport: Transport,
        network: NetworkMonitor,
        config: DeliveryConfig | None = None,
        *,
        clock: Callable[[], str] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        timers: TimerLoop | None = None,
        owns_transport: bool = False,
    ):
        """
        Initialize the controller.

        Must be called from a running event loop unless ``loop`` is given.

        Args:
            transport: Delivers one batch per call
            network: Connectivity source
            config: Batch size and retry schedule
            clock: Returns the ISO-8601 timestamp for new records
            loop: Event loop that runs delivery tasks
            timers: Timer source for retries (defaults to ``loop``)
            owns_transport: Close the transport in aclose()
        """
        self.config = config or DeliveryConfig()
        self._transport = transport
        self._owns_transport = owns_transport
        self._network = network
        self._clock = clock or utc_timestamp
        self._loop = loop or asyncio.get_running_loop()

        self._buffer = LogBuffer()
        self._lock = threading.Lock()  # guards _buffer and logged_records across threads
        self._state = DeliveryState.IDLE
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self._metrics = DeliveryMetrics()

        self._retry = RetryScheduler(
            self.config.retry_intervals,
            on_fire=self.handle_logs,
            loop=timers or self._loop,
        )

        self._unsubscribe = [
            network.on_became_online(self._on_network_online),
            network.on_became_offline(self._on_network_offline),
        ]

    @property
    def state(self) -> DeliveryState:
        return self._state

    @property
    def pending_count(self) -> int:
        """Number of records not yet confirmed delivered."""
        return len(self._buffer)

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def retry(self) -> RetryScheduler:
        return self._retry

    def pending_records(self) -> list[LogRecord]:
        """Snapshot of undelivered records in delivery order."""
        with self._lock:
            return list(self._buffer)

    def log(self, message: str) -> None:
        """
        Buffer a message and try to deliver. Never raises, never blocks.

        Safe to call from any thread. Off the loop thread the delivery attempt
        is handed to the loop; once the loop is closed the record is only
        buffered.
        """
        record = LogRecord(timestamp=self._clock(), message=message)
        with self._lock:
            self._buffer.append(record)
            self._metrics.logged_records += 1

        if self._on_loop_thread():
            self.handle_logs()
            return

        try:
            self._loop.call_soon_threadsafe(self.handle_logs)
        except RuntimeError as e:
            logger.debug(f"Event loop unavailable, record kept in buffer: {e}")

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def handle_logs(self) -> None:
        """Start a delivery if idle, online and there is something to send."""
        if self._state is not DeliveryState.IDLE or not self._has_work():
            return

        # Check-and-set must stay in this synchronous turn
        self._state = DeliveryState.SENDING
        delivery = self._deliver()
        try:
            self._task = self._loop.create_task(delivery)
        except RuntimeError as e:
            delivery.close()
            self._state = DeliveryState.IDLE
            logger.debug(f"Delivery not started: {e}")

    def _has_work(self) -> bool:
        return not self._closed and bool(self._buffer) and self._network.is_online()

    async def _deliver(self) -> None:
        """Send batches until the buffer is empty, the gate closes, or a send fails."""
        try:
            while True:
                with self._lock:
                    batch = self._buffer.peek_batch(self.config.max_batch_size)
                logger.debug(f"Sending batch of {len(batch)} records ({len(self._buffer)} pending)")

                try:
                    await self._transport.send_batch(batch)
                except Exception as e:
                    self._record_failure(e)
                    self._state = DeliveryState.IDLE
                    if self._closed:
                        logger.warning(f"Failed to send batch of {len(batch)} records after close: {e}")
                        return
                    delay = self._retry.schedule_retry()
                    logger.warning(
                        f"Failed to send batch of {len(batch)} records: {e}. Retrying in {delay}ms"
                    )
                    return

                # Records appended mid-flight sit behind the batch, so dropping by count is exact
                with self._lock:
                    self._buffer.drop(len(batch))
                self._retry.reset()
                self._record_success(len(batch))

                if not self._has_work():
                    return
        finally:
            self._state = DeliveryState.IDLE

    def _record_success(self, count: int) -> None:
        self._metrics.sent_records += count
        self._metrics.sent_batches += 1
        self._metrics.last_success_time = time.time()

    def _record_failure(self, error: Exception) -> None:
        self._metrics.failed_attempts += 1
        self._metrics.last_failure_time = time.time()
        self._metrics.last_error = str(error) or error.__class__.__name__

    def _on_network_online(self) -> None:
        logger.info("Network is back online. Attempting to send logs.")
        self.handle_logs()

    def _on_network_offline(self) -> None:
        logger.info("Network is offline. Pausing log sending.")
        self._retry.cancel_pending()

    async def wait_until_idle(self) -> None:
        """Wait for the running delivery task, if any, to finish."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    async def aclose(self) -> None:
        """
        Stop scheduling deliveries.

        Cancels the retry timer, detaches from the network monitor and waits
        for an in-flight send. Undelivered records stay in the buffer. A
        transport the controller owns is closed as well.
        """
        self._closed = True
        self._retry.cancel_pending()
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        try:
            await self.wait_until_idle()
        finally:
            close_transport = getattr(self._transport, "aclose", None)
            if self._owns_transport and close_transport is not None:
                await close_transport()
                self._owns_transport = False
        logger.debug(f"Delivery controller closed with {len(self._buffer)} records pending")

    def get_stats(self) -> dict:
        """Get delivery statistics."""
        return {
            "state": self._state.value,
            "online": self._network.is_online(),
            "pending_count": len(self._buffer),
            "logged_records": self._metrics.logged_records,
            "sent_records": self._metrics.sent_records,
            "sent_batches": self._metrics.sent_batches,
            "failed_attempts": self._metrics.failed_attempts,
            "last_success_time": self._metrics.last_success_time,
            "last_failure_time": self._metrics.last_failure_time,
            "last_error": self._metrics.last_error,
            "retry": self._retry.get_stats(),
        }

    def format_status(self) -> str:
        """Get human-readable status string."""
        stats = self.get_stats()

        status_parts = [
            f"state={stats['state']}",
            f"online={stats['online']}",
            f"pending={stats['pending_count']}",
            f"sent={stats['sent_records']}",
            f"failures={stats['failed_attempts']}",
        ]

        if stats["retry"]["pending"]:
            status_parts.append(f"retry_in={stats['retry']['last_delay_ms']}ms")

        if stats["last_error"]:
            error_preview = stats["last_error"][:50]
            status_parts.append(f"last_error='{error_preview}'")

        return "DeliveryController: " + ", ".join(status_parts)
