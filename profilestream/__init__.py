"""profilestream — incremental field extraction for streamed LLM profile JSON."""

__version__ = "0.1.0"

from .adapters.registry import get_adapter, load_adapters
from .extract import extract_array, extract_scalar
from .reporter import ProgressReporter
from .schemas.progress import StreamProgress, StreamStatus

__all__ = [
    "ProgressReporter",
    "StreamProgress",
    "StreamStatus",
    "extract_array",
    "extract_scalar",
    "get_adapter",
    "load_adapters",
]
