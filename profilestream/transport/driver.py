"""Async driver that feeds transport events into a ProgressReporter.

Runs on the caller's event loop. While a throttled snapshot is pending,
the driver waits for the next event for at most one throttle interval;
if the transport goes quiet in the meantime the snapshot is flushed, so
the last emission always reflects everything received.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterable, AsyncIterator

from profilestream.reporter import ProgressReporter
from profilestream.schemas.progress import StreamProgress
from profilestream.schemas.streaming import TransportEvent

logger = logging.getLogger(__name__)

STREAM_CLOSED_MESSAGE = "Stream closed before completion"

_END = object()


async def _next_event(iterator: AsyncIterator[TransportEvent]) -> object:
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return _END


async def consume(
    reporter: ProgressReporter,
    events: AsyncIterable[TransportEvent],
    *,
    idle_flush: bool = True,
) -> StreamProgress:
    """Dispatch every event to the reporter until the stream terminates.

    Args:
        reporter: The stream's reporter; should already be started.
        events: Decoded transport events, in delivery order.
        idle_flush: Flush a pending snapshot when no event arrives within
                    one throttle interval.

    Returns:
        The final emitted StreamProgress. A transport exception, or an
        event stream that ends without ``complete``/``error``, leaves the
        reporter in the error state. Nothing is retried.
    """
    iterator = aiter(events)
    next_event = asyncio.ensure_future(_next_event(iterator))
    try:
        while True:
            timeout = reporter.interval if idle_flush and reporter.pending else None
            done, _ = await asyncio.wait({next_event}, timeout=timeout)
            if not done:
                reporter.flush()
                continue

            try:
                event = next_event.result()
            except Exception as e:
                logger.warning("Transport failed for %s stream: %s", reporter.adapter.name, e)
                reporter.flush()
                reporter.on_error(str(e) or type(e).__name__)
                break

            if event is _END:
                reporter.flush()
                if not reporter.progress.is_terminal:
                    reporter.on_error(STREAM_CLOSED_MESSAGE)
                break

            reporter.dispatch(event)
            if reporter.progress.is_terminal:
                break
            next_event = asyncio.ensure_future(_next_event(iterator))
    finally:
        if not next_event.done():
            next_event.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await next_event
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()

    return reporter.progress
