"""
Network connectivity monitors.

A monitor answers ``is_online()`` synchronously and notifies subscribers on
edges only: became-online and became-offline each fire at most once per real
transition.

Usage:
    monitor = ManualNetworkMonitor(online=False)
    unsubscribe = monitor.on_became_online(lambda: print("online"))
    monitor.set_online(True)   # prints "online"
    monitor.set_online(True)   # no-op, state did not change
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

Callback = Callable[[], None]
Unsubscribe = Callable[[], None]


class NetworkMonitor(Protocol):
    """Connectivity source consumed by the DeliveryController."""

    def is_online(self) -> bool: ...

    def on_became_online(self, callback: Callback) -> Unsubscribe: ...

    def on_became_offline(self, callback: Callback) -> Unsubscribe: ...


class BaseNetworkMonitor:
    """Subscription bookkeeping and duplicate-transition suppression."""

    def __init__(self, online: bool = True):
        self._online = online
        self._online_callbacks: list[Callback] = []
        self._offline_callbacks: list[Callback] = []

    def is_online(self) -> bool:
        return self._online

    def on_became_online(self, callback: Callback) -> Unsubscribe:
        """Register a callback for offline -> online transitions."""
        return self._subscribe(self._online_callbacks, callback)

    def on_became_offline(self, callback: Callback) -> Unsubscribe:
        """Register a callback for online -> offline transitions."""
        return self._subscribe(self._offline_callbacks, callback)

    @staticmethod
    def _subscribe(callbacks: list[Callback], callback: Callback) -> Unsubscribe:
        callbacks.append(callback)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                callbacks.remove(callback)

        return unsubscribe

    def _transition_to(self, online: bool) -> None:
        """Record the new state and notify subscribers if it changed."""
        if online == self._online:
            return

        self._online = online
        logger.info(f"Connectivity changed: {'offline -> online' if online else 'online -> offline'}")

        callbacks = self._online_callbacks if online else self._offline_callbacks
        for callback in list(callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Network monitor callback error: {e}")


class ManualNetworkMonitor(BaseNetworkMonitor):
    """Monitor driven by explicit set_online() calls."""

    def set_online(self, online: bool) -> None:
        self._transition_to(online)


class ProbeNetworkMonitor(BaseNetworkMonitor):
    """
    Monitor that polls a health URL in the background.

    Any HTTP response below 500 counts as online; a 5xx response or any
    httpx transport error counts as offline.
    """

    def __init__(
        self,
        probe_url: str,
        interval: float = 15.0,
        timeout: float = 5.0,
        online: bool = True,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the probe monitor.

        Args:
            probe_url: URL to GET on every probe
            interval: Seconds between probes
            timeout: HTTP timeout for a single probe
            online: Assumed state before the first probe completes
            client: Optional shared httpx client (not closed by stop())
        """
        super().__init__(online=online)
        self.probe_url = probe_url
        self.interval = interval
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._running = False
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Start the background probe task."""
        if self._running:
            logger.warning("Network probe already running")
            return

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Network probe started for {self.probe_url} every {self.interval}s")

    async def stop(self) -> None:
        """Stop probing and release the owned HTTP client."""
        self._running = False
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        logger.info("Network probe stopped")

    async def probe(self) -> bool:
        """Run one probe, apply the resulting state and return it."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        try:
            response = await self._client.get(self.probe_url, timeout=self.timeout)
            online = response.status_code < 500
            if not online:
                logger.debug(f"Probe {self.probe_url} returned HTTP {response.status_code}")
        except httpx.HTTPError as e:
            logger.debug(f"Probe {self.probe_url} failed: {e}")
            online = False

        self._transition_to(online)
        return online

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.probe()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Network probe error: {e}")
            await asyncio.sleep(self.interval)
