"""Pytest configuration and shared fixtures for logrelay tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from logrelay.config import DeliveryConfig
from logrelay.controller import DeliveryController
from logrelay.network import ManualNetworkMonitor
from mocks import FakeTimerLoop, FixedClock, ScriptedTransport


@pytest.fixture
def timers() -> FakeTimerLoop:
    """Timer loop whose retries fire only on demand."""
    return FakeTimerLoop()


@pytest.fixture
def network() -> ManualNetworkMonitor:
    """Connectivity source that starts online."""
    return ManualNetworkMonitor(online=True)


@pytest.fixture
def transport() -> ScriptedTransport:
    """Transport that succeeds unless a test scripts failures."""
    return ScriptedTransport()


@pytest.fixture
def make_controller(
    transport: ScriptedTransport,
    network: ManualNetworkMonitor,
    timers: FakeTimerLoop,
) -> Callable[..., DeliveryController]:
    """
    Factory for controllers wired to the fake collaborators.

    Call it from inside an async test; the controller binds to the running loop.
    """

    def factory(
        max_batch_size: int = 10,
        retry_intervals: tuple[int, ...] = (2000, 5000, 10000),
    ) -> DeliveryController:
        return DeliveryController(
            transport=transport,
            network=network,
            config=DeliveryConfig(max_batch_size=max_batch_size, retry_intervals=retry_intervals),
            clock=FixedClock(),
            timers=timers,
        )

    return factory


@pytest.fixture
def sample_messages() -> list[str]:
    """Return a few log messages in logging order."""
    return [
        "Service started",
        "Payment processed",
        "Cache miss for key user:42",
        "Request completed in 120ms",
        "Service stopping",
    ]
