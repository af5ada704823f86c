"""
In-memory FIFO buffer of pending log records.

Records only leave the buffer as a contiguous prefix after the batch that
contained them has been delivered.
"""

from collections import deque
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from itertools import islice

from .errors import BufferInvariantError


@dataclass(frozen=True)
class LogRecord:
    """A single log line waiting for delivery."""

    timestamp: str  # ISO-8601
    message: str

    def to_dict(self) -> dict[str, str]:
        """Convert to a JSON-serializable dictionary."""
        return asdict(self)


class LogBuffer:
    """Ordered queue of LogRecords, appended at the tail and drained from the head."""

    def __init__(self):
        self._records: deque[LogRecord] = deque()

    def __len__(self) -> int:
        return len(self._records)

    def __bool__(self) -> bool:
        return bool(self._records)

    def __iter__(self) -> Iterator[LogRecord]:
        return iter(self._records)

    def append(self, record: LogRecord) -> None:
        """Add a record to the tail."""
        self._records.append(record)

    def peek_batch(self, n: int) -> list[LogRecord]:
        """Return the first min(n, len) records without removing them."""
        return list(islice(self._records, max(n, 0)))

    def drop(self, count: int) -> None:
        """
        Remove the first ``count`` records.

        Raises:
            BufferInvariantError: If count is negative or exceeds the buffer length
        """
        if count < 0 or count > len(self._records):
            raise BufferInvariantError(
                f"Cannot drop {count} records from a buffer of {len(self._records)}"
            )
        for _ in range(count):
            self._records.popleft()
