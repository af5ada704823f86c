"""
Batch transports.

A transport delivers one batch per call. Returning normally means the batch
was accepted; raising any exception means it was not and will be retried
verbatim by the controller.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Protocol

import httpx

from .buffer import LogRecord
from .errors import TransportError

logger = logging.getLogger(__name__)

USER_AGENT = "logrelay/1.0"


class Transport(Protocol):
    async def send_batch(self, records: Sequence[LogRecord]) -> None: ...


class HttpTransport:
    """
    POSTs batches to an HTTP endpoint as newline-delimited JSON.

    Each line is one record: {"timestamp": ..., "message": ...}.
    """

    def __init__(
        self,
        endpoint: str,
        token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the transport.

        Args:
            endpoint: Ingestion URL
            token: Optional bearer token
            timeout: HTTP request timeout in seconds
            client: Optional shared httpx client (not closed by aclose())
        """
        self.endpoint = endpoint
        self.token = token
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/x-ndjson",
            "User-Agent": USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @staticmethod
    def encode(records: Sequence[LogRecord]) -> bytes:
        """Serialize a batch to NDJSON."""
        return "\n".join(json.dumps(record.to_dict()) for record in records).encode("utf-8")

    async def send_batch(self, records: Sequence[LogRecord]) -> None:
        """
        Send one batch.

        Raises:
            TransportError: On a non-2xx response or any httpx error
        """
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        try:
            response = await self._client.post(
                self.endpoint,
                content=self.encode(records),
                headers=self._build_headers(),
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Error sending batch: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

    async def aclose(self) -> None:
        """Close the owned HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class LoggingTransport:
    """Writes batches to a logger instead of the network. Always succeeds."""

    def __init__(self, logger_name: str = "logrelay.sink", level: int = logging.INFO):
        self._logger = logging.getLogger(logger_name)
        self.level = level

    async def send_batch(self, records: Sequence[LogRecord]) -> None:
        self._logger.log(self.level, f"Sending logs: {[record.to_dict() for record in records]}")
