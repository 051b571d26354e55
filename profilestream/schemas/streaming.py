"""Streaming schemas for transport events and extraction results."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class TransportEventType(StrEnum):
    """Event names sent by the profile parsing endpoints."""

    STATUS = "status"
    TOKEN = "token"
    COMPLETE = "complete"
    ERROR = "error"


class TransportEvent(BaseModel):
    """A single decoded server-sent event."""

    event: str = Field(default="message", description="SSE event name")
    data: dict[str, Any] = Field(
        default_factory=dict, description="Decoded JSON payload of the data line"
    )


class ArrayExtraction(BaseModel):
    """Complete elements of one streamed array."""

    elements: list[Any] = Field(
        default_factory=list,
        description="Independently valid JSON values, in document order",
    )
    found: bool = Field(
        default=False, description="True once the array's opening bracket has arrived"
    )
    complete: bool = Field(
        default=False, description="True once the array's closing bracket has arrived"
    )
