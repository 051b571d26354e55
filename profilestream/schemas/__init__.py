"""profilestream schema definitions.

All Pydantic v2 models used by the extractors, adapters, reporter and transport.
"""

from profilestream.schemas.adapter import (
    ArrayField,
    ArrayMode,
    ScalarField,
    SchemaAdapter,
)
from profilestream.schemas.config import StreamConfig
from profilestream.schemas.progress import (
    StreamProgress,
    StreamStatus,
    can_transition,
)
from profilestream.schemas.streaming import (
    ArrayExtraction,
    TransportEvent,
    TransportEventType,
)

__all__ = [
    "ArrayExtraction",
    "ArrayField",
    "ArrayMode",
    "ScalarField",
    "SchemaAdapter",
    "StreamConfig",
    "StreamProgress",
    "StreamStatus",
    "TransportEvent",
    "TransportEventType",
    "can_transition",
]
