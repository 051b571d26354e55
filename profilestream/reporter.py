"""Throttled progress reporting for streamed profile parsing.

The ProgressReporter owns one stream's lifecycle: it accumulates token
chunks, rescans the whole buffer through the active SchemaAdapter on each
throttle tick, and hands a fresh StreamProgress snapshot to every
registered listener. Terminal events (complete, error) bypass the throttle.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any

from profilestream.accumulator import Accumulator
from profilestream.adapters.engine import summarize
from profilestream.schemas.adapter import SchemaAdapter
from profilestream.schemas.config import StreamConfig
from profilestream.schemas.progress import (
    STREAMING_STATUSES,
    StreamProgress,
    StreamStatus,
    can_transition,
)
from profilestream.schemas.streaming import TransportEvent, TransportEventType

logger = logging.getLogger(__name__)

# Sync listeners run inline; async ones are scheduled on the running loop
ProgressListener = Callable[[StreamProgress], Any]


class ProgressReporter:
    """Drives extraction for one stream and publishes throttled snapshots.

    Single-threaded: every method runs extraction synchronously on the
    caller. Each logical stream gets its own reporter; nothing is shared
    between instances.

    Args:
        adapter: Extraction table for this stream's source type.
        config: Stream defaults (throttle interval). Defaults to StreamConfig().
        clock: Monotonic time source in seconds, injectable for tests.
    """

    def __init__(
        self,
        adapter: SchemaAdapter,
        *,
        config: StreamConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._adapter = adapter
        self._config = config or StreamConfig()
        self._clock = clock
        self._listeners: list[ProgressListener] = []
        self._listener_tasks: set[asyncio.Task] = set()
        self._buffer = Accumulator()

        self._status = StreamStatus.IDLE
        self._message: str | None = None
        self._profile: Any = None
        self._metadata: dict[str, Any] | None = None
        self._error: str | None = None
        self._progress = StreamProgress(source=adapter.name)

    # ── State ─────────────────────────────────────────────────────

    @property
    def adapter(self) -> SchemaAdapter:
        return self._adapter

    @property
    def interval(self) -> float:
        """Throttle interval in seconds."""
        return self._config.throttle_seconds

    @property
    def status(self) -> StreamStatus:
        return self._status

    @property
    def text(self) -> str:
        """The accumulated stream buffer."""
        return self._buffer.text

    @property
    def progress(self) -> StreamProgress:
        """The most recently emitted snapshot."""
        return self._progress

    @property
    def is_streaming(self) -> bool:
        return self._status not in (
            StreamStatus.IDLE, StreamStatus.COMPLETE, StreamStatus.ERROR,
        )

    @property
    def pending(self) -> bool:
        """True when text has arrived since the last emission."""
        return self._buffer.pending

    # ── Listeners ─────────────────────────────────────────────────

    def add_listener(self, listener: ProgressListener) -> None:
        """Register a listener to receive progress snapshots."""
        self._listeners.append(listener)

    def remove_listener(self, listener: ProgressListener) -> None:
        """Remove a previously registered listener."""
        self._listeners = [ln for ln in self._listeners if ln is not listener]

    # ── Lifecycle ─────────────────────────────────────────────────

    def start(
        self, status: StreamStatus | str | None = None, message: str | None = None
    ) -> StreamProgress | None:
        """Enter the adapter's initial phase (uploading or fetching) and emit."""
        target = StreamStatus(status) if status else self._adapter.initial_status
        return self.on_status(target, message or self._adapter.initial_message or None)

    def on_status(
        self, status: StreamStatus | str, message: str | None = None
    ) -> StreamProgress | None:
        """Apply a phase change reported by the transport and emit it."""
        try:
            target = StreamStatus(status)
        except ValueError:
            logger.warning("Ignoring unknown stream status %r", status)
            return None
        if target in (StreamStatus.COMPLETE, StreamStatus.ERROR):
            logger.warning(
                "Status event cannot end a stream (%s); waiting for the terminal event",
                target,
            )
            return None
        if target != self._status and not self._transition(target):
            return None
        self._message = message
        return self._emit()

    def on_token(self, chunk: str) -> StreamProgress | None:
        """Append a token chunk; emit if the throttle interval has elapsed.

        Returns the emitted snapshot, or None when the emission was deferred.
        """
        if self._status in (StreamStatus.COMPLETE, StreamStatus.ERROR):
            logger.warning("Dropping token received after %s", self._status)
            return None
        if not chunk:
            return None

        self._buffer.append(chunk)
        if self._status not in STREAMING_STATUSES:
            if not self._transition(self._adapter.streaming_status):
                return None
            self._message = self._adapter.streaming_message

        if self._buffer.due(self._clock(), self._config.throttle_seconds):
            return self._emit()
        return None

    def flush(self) -> StreamProgress | None:
        """Emit a deferred snapshot now, if text arrived since the last one."""
        if not self._buffer.pending or not self.is_streaming:
            return None
        return self._emit()

    def on_complete(
        self, profile: Any, metadata: dict[str, Any] | None = None
    ) -> StreamProgress | None:
        """Finish the stream with the transport's authoritative profile.

        The profile is taken as-is from the terminal event; the locally
        extracted partial_data is never promoted to the final result.
        """
        if not self._transition(StreamStatus.COMPLETE):
            return None
        self._profile = profile
        self._metadata = metadata
        self._message = self._adapter.complete_message
        logger.debug(
            "%s stream complete after %d chunks (%d characters)",
            self._adapter.name, self._buffer.chunk_count, len(self._buffer),
        )
        return self._emit()

    def on_error(self, message: str) -> StreamProgress | None:
        """Fail the stream, surfacing the transport's message verbatim."""
        if not self._transition(StreamStatus.ERROR):
            return None
        self._error = message
        self._message = message
        return self._emit()

    def reset(self) -> StreamProgress:
        """Discard the buffer and all stream state, returning to idle."""
        self._status = StreamStatus.IDLE
        self._message = None
        self._profile = None
        self._metadata = None
        self._error = None
        progress = self._emit()
        # Clear timing after the idle emission so the next token is not throttled
        self._buffer.reset()
        return progress

    def dispatch(self, event: TransportEvent) -> StreamProgress | None:
        """Route a decoded transport event to the matching handler."""
        data = event.data
        name = event.event

        if name == TransportEventType.TOKEN:
            token = data.get("token", "")
            if not isinstance(token, str):
                logger.debug("Ignoring non-text token payload: %r", token)
                return None
            return self.on_token(token)

        if name == TransportEventType.STATUS:
            return self.on_status(data.get("status", ""), data.get("message"))

        if name == TransportEventType.COMPLETE:
            return self.on_complete(data.get("profile"), data.get("metadata"))

        if name == TransportEventType.ERROR:
            return self.on_error(str(data.get("error") or "Unknown error"))

        logger.debug("Ignoring transport event %r", name)
        return None

    # ── Snapshots ─────────────────────────────────────────────────

    def snapshot(self) -> StreamProgress:
        """Recompute a StreamProgress from the current buffer without emitting."""
        if self._status == StreamStatus.IDLE:
            return StreamProgress(source=self._adapter.name)

        fields_found, partial_data = summarize(self._adapter, self._buffer.text)
        return StreamProgress(
            status=self._status,
            source=self._adapter.name,
            message=self._message,
            fields_found=fields_found,
            partial_data=partial_data,
            profile=self._profile,
            metadata=self._metadata,
            error=self._error,
            streamed_text=self._buffer.text,
        )

    def _transition(self, target: StreamStatus) -> bool:
        if not can_transition(self._status, target):
            logger.warning(
                "Ignoring %s -> %s transition for %s stream",
                self._status, target, self._adapter.name,
            )
            return False
        logger.debug("%s stream: %s -> %s", self._adapter.name, self._status, target)
        self._status = target
        return True

    def _emit(self) -> StreamProgress:
        progress = self.snapshot()
        self._buffer.mark_emitted(self._clock())
        self._progress = progress

        for listener in self._listeners:
            try:
                result = listener(progress)
                if asyncio.iscoroutine(result):
                    self._schedule(result)
            except Exception:
                logger.exception("Progress listener error for %s stream", self._adapter.name)
        return progress

    def _schedule(self, coro: Coroutine[Any, Any, Any]) -> None:
        """Run an async listener's coroutine on the caller's event loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning(
                "Async progress listener for %s stream needs a running event loop; skipped",
                self._adapter.name,
            )
            return
        task = loop.create_task(coro)
        self._listener_tasks.add(task)
        task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Task) -> None:
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Progress listener error for %s stream",
                self._adapter.name,
                exc_info=exc,
            )
