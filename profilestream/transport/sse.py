"""Server-sent event decoding for the profile parsing endpoints.

The endpoints write ``event: <name>`` followed by ``data: <json>`` and a
blank line. Network reads split those frames at arbitrary points, so the
decoder keeps the unfinished trailing line until the next feed.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from profilestream.schemas.streaming import TransportEvent

logger = logging.getLogger(__name__)

_DEFAULT_EVENT = "message"


class SSEDecoder:
    """Incremental line decoder for ``text/event-stream`` bodies."""

    def __init__(self) -> None:
        self._partial: str = ""
        self._event: str = _DEFAULT_EVENT

    def feed(self, text: str) -> list[TransportEvent]:
        """Decode a chunk of stream text and return any complete events."""
        self._partial += text
        lines = self._partial.split("\n")
        self._partial = lines.pop()

        events: list[TransportEvent] = []
        for line in lines:
            event = self._handle_line(line.rstrip("\r"))
            if event is not None:
                events.append(event)
        return events

    def close(self) -> list[TransportEvent]:
        """Decode whatever is left once the body ends without a final newline."""
        remainder, self._partial = self._partial, ""
        if not remainder:
            return []
        event = self._handle_line(remainder.rstrip("\r"))
        return [event] if event is not None else []

    def _handle_line(self, line: str) -> TransportEvent | None:
        if not line.strip():
            # Blank line ends the current event
            self._event = _DEFAULT_EVENT
            return None

        if line.startswith(":"):
            return None  # comment / keep-alive

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value.strip() or _DEFAULT_EVENT
            return None

        if field != "data":
            return None

        try:
            data = json.loads(value)
        except ValueError:
            logger.error("Failed to parse SSE data for %r event: %.120s", self._event, value)
            return None

        if not isinstance(data, dict):
            data = {"value": data}
        return TransportEvent(event=self._event, data=data)


async def iter_sse_events(chunks: AsyncIterable[str | bytes]) -> AsyncIterator[TransportEvent]:
    """Decode an async stream of body chunks into TransportEvents, in order."""
    decoder = SSEDecoder()
    utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
    async for chunk in chunks:
        text = utf8.decode(chunk) if isinstance(chunk, bytes) else chunk
        for event in decoder.feed(text):
            yield event
    for event in decoder.feed(utf8.decode(b"", final=True)):
        yield event
    for event in decoder.close():
        yield event
