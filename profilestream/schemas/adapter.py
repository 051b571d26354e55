"""Schema adapter definitions.

A SchemaAdapter is the declarative table for one profile source type
(resume, GitHub, LinkedIn, project document, aggregate profile): which
string fields and arrays to pull out of the streamed JSON, and under
which labels to report them. Loaded from adapters.toml.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator, model_validator

from profilestream.schemas.progress import (
    PREPARING_STATUSES,
    STREAMING_STATUSES,
    StreamStatus,
)


class ArrayMode(StrEnum):
    """Element type collected from a streamed array."""

    STRINGS = "strings"
    OBJECTS = "objects"


class ScalarField(BaseModel):
    """A string field reported under a display label.

    ``keys`` are raw JSON field names tried in order; the first one found
    in the buffer wins. This is how ``telephone`` gets reported as ``phone``.
    """

    label: str = Field(description="Key used in partial_data")
    keys: list[str] = Field(min_length=1, description="Raw JSON field names, in priority order")


class ArrayField(BaseModel):
    """An array whose complete elements are collected while streaming."""

    label: str = Field(description="Key prefix used in partial_data")
    key: str = Field(description="Raw JSON field name of the array")
    mode: ArrayMode = Field(description="Whether elements are strings or objects")
    include_items: bool = Field(
        default=False,
        description="Report the elements themselves, not only their count",
    )


class SchemaAdapter(BaseModel):
    """Extraction table for one profile source type."""

    name: str = Field(description="Adapter key (e.g. 'resume', 'github')")
    description: str = Field(default="", description="What this stream parses")
    scalars: list[ScalarField] = Field(default_factory=list)
    arrays: list[ArrayField] = Field(default_factory=list)
    initial_status: StreamStatus = Field(
        default=StreamStatus.UPLOADING,
        description="Status entered when the stream starts",
    )
    initial_message: str = Field(default="", description="Message shown on start")
    streaming_status: StreamStatus = Field(
        default=StreamStatus.PARSING,
        description="Status entered while tokens arrive",
    )
    streaming_message: str = Field(default="Streaming response...")
    complete_message: str = Field(default="Profile parsed successfully!")

    @field_validator("initial_status")
    @classmethod
    def _check_initial(cls, value: StreamStatus) -> StreamStatus:
        if value not in PREPARING_STATUSES:
            raise ValueError(f"initial_status must be a preparing phase, got '{value}'")
        return value

    @field_validator("streaming_status")
    @classmethod
    def _check_streaming(cls, value: StreamStatus) -> StreamStatus:
        if value not in STREAMING_STATUSES:
            raise ValueError(f"streaming_status must be a streaming phase, got '{value}'")
        return value

    @model_validator(mode="after")
    def _check_labels(self) -> SchemaAdapter:
        labels = [s.label for s in self.scalars] + [a.label for a in self.arrays]
        duplicates = sorted({lb for lb in labels if labels.count(lb) > 1})
        if duplicates:
            raise ValueError(
                f"Adapter '{self.name}' has duplicate labels: {', '.join(duplicates)}"
            )
        return self
