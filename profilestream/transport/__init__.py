"""Transport adapters: SSE decoding and the async reporter driver."""

from profilestream.transport.driver import STREAM_CLOSED_MESSAGE, consume
from profilestream.transport.sse import SSEDecoder, iter_sse_events

__all__ = ["STREAM_CLOSED_MESSAGE", "SSEDecoder", "consume", "iter_sse_events"]
