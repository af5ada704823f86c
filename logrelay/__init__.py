"""
logrelay - Batched log delivery with backoff and network awareness.

This package provides:
- DeliveryController: buffers records and delivers them one batch at a time
- RetryScheduler: stepped backoff with a single pending retry timer
- Network monitors: manual and HTTP-probe connectivity sources
- Transports: HTTP (NDJSON) and logging sinks

Usage:
    from logrelay import setup_logging

    controller = setup_logging(
        endpoint="https://logs.example.com/ingest",
        token="tok_xxx",
    )

    import logging
    logger = logging.getLogger(__name__)
    logger.info("Service started")
"""

from .buffer import LogBuffer, LogRecord
from .config import DEFAULT_RETRY_INTERVALS, DeliveryConfig
from .controller import DeliveryController, DeliveryMetrics, DeliveryState
from .errors import BufferInvariantError, LogRelayError, TransportError
from .handler import LogRelayHandler, build_controller, from_env, setup_logging
from .network import (
    BaseNetworkMonitor,
    ManualNetworkMonitor,
    NetworkMonitor,
    ProbeNetworkMonitor,
)
from .retry import RetryScheduler
from .transport import HttpTransport, LoggingTransport, Transport

__all__ = [
    # Core
    "DeliveryController",
    "DeliveryMetrics",
    "DeliveryState",
    "LogBuffer",
    "LogRecord",
    "RetryScheduler",
    # Configuration
    "DeliveryConfig",
    "DEFAULT_RETRY_INTERVALS",
    # Collaborators
    "NetworkMonitor",
    "BaseNetworkMonitor",
    "ManualNetworkMonitor",
    "ProbeNetworkMonitor",
    "Transport",
    "HttpTransport",
    "LoggingTransport",
    # Logging integration
    "LogRelayHandler",
    "build_controller",
    "setup_logging",
    "from_env",
    # Errors
    "LogRelayError",
    "TransportError",
    "BufferInvariantError",
]

__version__ = "1.0.0"
