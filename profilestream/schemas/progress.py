"""Progress snapshot schemas for streamed profile parsing.

Defines the stream status lifecycle and the StreamProgress snapshot that
the reporter publishes to presentation code on every throttle tick.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StreamStatus(StrEnum):
    """Lifecycle phase of a single profile stream."""

    IDLE = "idle"
    UPLOADING = "uploading"
    CREATING_ASSISTANT = "creating_assistant"
    FETCHING = "fetching"
    SCRAPING = "scraping"
    PARSING = "parsing"
    AGGREGATING = "aggregating"
    COMPLETE = "complete"
    ERROR = "error"


# Phases before the first token arrives
PREPARING_STATUSES = frozenset({
    StreamStatus.UPLOADING,
    StreamStatus.CREATING_ASSISTANT,
    StreamStatus.FETCHING,
    StreamStatus.SCRAPING,
})

# Phases while model tokens are arriving
STREAMING_STATUSES = frozenset({
    StreamStatus.PARSING,
    StreamStatus.AGGREGATING,
})

TERMINAL_STATUSES = frozenset({
    StreamStatus.COMPLETE,
    StreamStatus.ERROR,
})


def can_transition(current: StreamStatus, target: StreamStatus) -> bool:
    """Check whether the status machine allows moving from current to target.

    ``idle -> preparing -> streaming -> complete``, with an edge from every
    non-terminal status to ``error``. Preparing phases may follow each other
    (uploading, then creating_assistant) and a stream may skip straight from
    idle or preparing to streaming when the first token arrives. Nothing
    leaves a terminal status; only ``reset()`` does that.
    """
    if current in TERMINAL_STATUSES:
        return False
    if target == StreamStatus.ERROR:
        return True
    if target == StreamStatus.IDLE:
        return False
    if current == StreamStatus.IDLE:
        return target in PREPARING_STATUSES or target in STREAMING_STATUSES
    if current in PREPARING_STATUSES:
        return target in PREPARING_STATUSES or target in STREAMING_STATUSES or (
            target == StreamStatus.COMPLETE
        )
    # Streaming
    return target in STREAMING_STATUSES or target == StreamStatus.COMPLETE


class StreamProgress(BaseModel):
    """Outward snapshot of one stream, recomputed from the buffer on each emission."""

    model_config = ConfigDict(populate_by_name=True)

    status: StreamStatus = Field(
        default=StreamStatus.IDLE, description="Current lifecycle phase"
    )
    source: str = Field(default="", description="Schema adapter that produced this snapshot")
    message: str | None = Field(default=None, description="Human-readable phase message")
    fields_found: int | None = Field(
        default=None, ge=0,
        description="Found scalars plus arrays with at least one element",
    )
    partial_data: dict[str, Any] | None = Field(
        default=None, description="Labelled scalar values and array summaries"
    )
    profile: Any = Field(
        default=None,
        description="Authoritative parsed object from the terminal transport event",
    )
    metadata: dict[str, Any] | None = Field(
        default=None, description="Metadata attached to the terminal transport event"
    )
    error: str | None = Field(default=None, description="Transport error message, verbatim")
    streamed_text: str | None = Field(
        default=None,
        alias="streamedText",
        description="Raw accumulated buffer, for debugging and preview",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_wire(self) -> dict[str, Any]:
        """Serialize for presentation clients (camel-cased buffer key, no unset fields)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
