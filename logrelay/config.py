"""
Delivery configuration for logrelay.

Values are validated once at construction and are immutable afterwards.

Environment variables (see ``DeliveryConfig.from_env``):
    LOGRELAY_MAX_BATCH_SIZE: Maximum records per batch (default: 100)
    LOGRELAY_RETRY_INTERVALS: Comma separated retry delays in milliseconds
                              (default: 2000,5000,10000)
"""

import os

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

DEFAULT_MAX_BATCH_SIZE = 100
DEFAULT_RETRY_INTERVALS: tuple[int, ...] = (2000, 5000, 10000)


class DeliveryConfig(BaseModel):
    """Batch size and backoff schedule for a DeliveryController."""

    model_config = ConfigDict(frozen=True)

    max_batch_size: PositiveInt = DEFAULT_MAX_BATCH_SIZE
    retry_intervals: tuple[PositiveInt, ...] = Field(
        default=DEFAULT_RETRY_INTERVALS, min_length=1
    )

    @classmethod
    def from_env(cls) -> "DeliveryConfig":
        """
        Create a DeliveryConfig from environment variables.

        Unset variables fall back to the defaults.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        values: dict = {}

        batch_size = os.environ.get("LOGRELAY_MAX_BATCH_SIZE")
        if batch_size:
            values["max_batch_size"] = batch_size.strip()

        intervals = os.environ.get("LOGRELAY_RETRY_INTERVALS")
        if intervals:
            values["retry_intervals"] = [
                part.strip() for part in intervals.split(",") if part.strip()
            ]

        return cls(**values)
