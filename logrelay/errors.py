"""Exception types for logrelay."""


class LogRelayError(Exception):
    """Base exception for logrelay errors."""

    pass


class TransportError(LogRelayError):
    """Raised by a transport when a batch could not be delivered."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class BufferInvariantError(LogRelayError):
    """
    Raised when the buffer is asked to drop more records than it holds.

    This signals a broken delivery invariant, not a delivery failure, and
    is never caught by the controller.
    """

    pass
