"""Data models for observable configuration and count events.

Construction options are validated through Pydantic so that every entry
point normalizes them the same way.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ObservableOptions(BaseModel):
    """Configuration options for `Observable`."""

    model_config = ConfigDict(frozen=True)

    max: int = Field(
        default=0,
        description="Maximum number of recipients per broadcast, 0 for no limit",
    )

    @field_validator("max", mode="before")
    @classmethod
    def normalize_max(cls, v: Any) -> int:
        """Treat anything that is not a positive integer as "no limit"."""
        if isinstance(v, int) and not isinstance(v, bool) and v > 0:
            return v
        return 0


class CountedOptions(ObservableOptions):
    """Configuration options for `CountedObservable`."""

    sync: bool = Field(
        default=False,
        description="Deliver on_count events synchronously",
    )


class SubCounts(BaseModel):
    """Event emitted by `CountedObservable.on_count` when the subscriber count changes."""

    model_config = ConfigDict(frozen=True)

    new_count: int
    prev_count: int
