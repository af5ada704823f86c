"""
Standard library logging integration.

Usage:
    # Inside a running event loop
    controller = setup_logging(
        endpoint="https://logs.example.com/ingest",
        token=os.environ["LOGRELAY_TOKEN"],
    )

    import logging
    logger = logging.getLogger(__name__)
    logger.info("Service started")
"""

import logging
import os

from .config import DeliveryConfig
from .controller import DeliveryController
from .network import ManualNetworkMonitor, NetworkMonitor
from .transport import HttpTransport

# Records from these namespaces are never relayed. Each delivery logs through
# them, so relaying them would feed every send back into the buffer.
IGNORED_LOGGERS = ("logrelay", "httpx", "httpcore")


def is_ignored_logger(name: str) -> bool:
    return any(name == prefix or name.startswith(prefix + ".") for prefix in IGNORED_LOGGERS)


class LogRelayHandler(logging.Handler):
    """Logging handler that hands formatted records to a DeliveryController."""

    def __init__(self, controller: DeliveryController, min_level: int = logging.INFO):
        """
        Initialize the handler.

        Args:
            controller: Controller that buffers and delivers the messages
            min_level: Minimum log level to relay (default: INFO)
        """
        super().__init__(level=min_level)
        self.controller = controller

    def emit(self, record: logging.LogRecord):
        """Emit a log record."""
        if is_ignored_logger(record.name):
            return
        try:
            self.controller.log(self.format(record))
        except Exception:
            self.handleError(record)


def build_controller(
    endpoint: str,
    token: str | None = None,
    config: DeliveryConfig | None = None,
    network: NetworkMonitor | None = None,
    timeout: float = 10.0,
) -> DeliveryController:
    """
    Create a controller that delivers over HTTP. Must run inside an event loop.

    The controller owns its HttpTransport: aclose() also closes the HTTP client.
    """
    return DeliveryController(
        transport=HttpTransport(endpoint, token=token, timeout=timeout),
        network=network or ManualNetworkMonitor(online=True),
        config=config,
        owns_transport=True,
    )


def setup_logging(
    endpoint: str,
    token: str | None = None,
    min_level: int = logging.INFO,
    also_console: bool = True,
    **controller_kwargs,
) -> DeliveryController:
    """
    Route Python logging through a DeliveryController.

    Call once at startup from inside a running event loop.

    Args:
        endpoint: Ingestion URL
        token: Optional bearer token
        min_level: Minimum log level to relay
        also_console: Also log to console (default: True)
        **controller_kwargs: Passed to build_controller

    Returns:
        The DeliveryController (for stats; await its aclose() at shutdown)
    """
    controller = build_controller(endpoint, token=token, **controller_kwargs)

    handler = LogRelayHandler(controller, min_level=min_level)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)

    if also_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(console_handler)

    if root_logger.level == logging.NOTSET:
        root_logger.setLevel(min_level)

    return controller


def from_env(network: NetworkMonitor | None = None) -> DeliveryController:
    """
    Create a DeliveryController from environment variables.

    Environment variables:
        LOGRELAY_ENDPOINT: Ingestion URL (required)
        LOGRELAY_TOKEN: Bearer token (optional)
        LOGRELAY_MAX_BATCH_SIZE, LOGRELAY_RETRY_INTERVALS: see DeliveryConfig.from_env

    Args:
        network: Connectivity source (defaults to an always-online monitor)

    Returns:
        Configured DeliveryController
    """
    endpoint = os.environ.get("LOGRELAY_ENDPOINT")
    if not endpoint:
        raise ValueError("LOGRELAY_ENDPOINT environment variable required")

    return build_controller(
        endpoint,
        token=os.environ.get("LOGRELAY_TOKEN") or None,
        config=DeliveryConfig.from_env(),
        network=network,
    )
