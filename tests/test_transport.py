"""Tests for profilestream.transport: SSE decoding and the async driver."""

from __future__ import annotations

import asyncio
import json

import pytest

from profilestream.adapters.registry import get_adapter
from profilestream.reporter import ProgressReporter
from profilestream.schemas.config import StreamConfig
from profilestream.schemas.progress import StreamStatus
from profilestream.schemas.streaming import TransportEvent
from profilestream.transport.driver import STREAM_CLOSED_MESSAGE, consume
from profilestream.transport.sse import SSEDecoder, iter_sse_events

_BODY = (
    'event: status\ndata: {"status": "parsing", "message": "Analyzing..."}\n\n'
    'event: token\ndata: {"token": "{\\"name\\":\\"Ana\\","}\n\n'
    'event: token\ndata: {"token": "\\"skills\\":[\\"Go\\"]}"}\n\n'
    'event: complete\ndata: {"profile": {"name": "Ana", "skills": ["Go"]}}\n\n'
)


def _decode_all(body: str, split: int | None = None) -> list[TransportEvent]:
    decoder = SSEDecoder()
    if split is None:
        events = decoder.feed(body)
    else:
        events = decoder.feed(body[:split]) + decoder.feed(body[split:])
    return events + decoder.close()


async def _aiter(items):
    for item in items:
        yield item


async def _collect(aiterable) -> list:
    return [item async for item in aiterable]


def _token(text: str) -> TransportEvent:
    return TransportEvent(event="token", data={"token": text})


def _complete(profile: dict) -> TransportEvent:
    return TransportEvent(event="complete", data={"profile": profile})


# ══════════════════════════════════════════════════════════════════
# SSEDecoder
# ══════════════════════════════════════════════════════════════════


class TestSSEDecoder:
    def test_decodes_events_in_order(self):
        events = _decode_all(_BODY)
        assert [e.event for e in events] == ["status", "token", "token", "complete"]
        assert events[1].data == {"token": '{"name":"Ana",'}
        assert events[3].data["profile"] == {"name": "Ana", "skills": ["Go"]}

    def test_split_at_every_boundary(self):
        expected = _decode_all(_BODY)
        for k in range(len(_BODY) + 1):
            assert _decode_all(_BODY, k) == expected, f"split at {k}"

    def test_crlf_line_endings(self):
        body = _BODY.replace("\n", "\r\n")
        assert _decode_all(body) == _decode_all(_BODY)

    def test_malformed_data_skipped(self):
        body = (
            "event: token\ndata: {not json\n\n"
            'event: token\ndata: {"token": "ok"}\n\n'
        )
        events = _decode_all(body)
        assert events == [_token("ok")]

    def test_comments_ignored(self):
        body = ': keep-alive\n\nevent: token\n: ping\ndata: {"token": "x"}\n\n'
        assert _decode_all(body) == [_token("x")]

    def test_non_object_data_wrapped(self):
        events = _decode_all("event: progress\ndata: 42\n\n")
        assert events == [TransportEvent(event="progress", data={"value": 42})]

    def test_event_name_resets_after_blank_line(self):
        body = 'event: token\ndata: {"token": "a"}\n\ndata: {"x": 1}\n\n'
        events = _decode_all(body)
        assert [e.event for e in events] == ["token", "message"]

    def test_data_without_space(self):
        assert _decode_all('event:token\ndata:{"token":"a"}\n\n') == [_token("a")]

    def test_unknown_fields_ignored(self):
        body = 'id: 7\nretry: 1000\nevent: token\ndata: {"token": "a"}\n\n'
        assert _decode_all(body) == [_token("a")]

    def test_close_flushes_unterminated_line(self):
        decoder = SSEDecoder()
        assert decoder.feed('event: complete\ndata: {"profile": {}}') == []
        assert decoder.close() == [_complete({})]
        assert decoder.close() == []

    def test_partial_line_held_back(self):
        decoder = SSEDecoder()
        assert decoder.feed('event: token\ndata: {"tok') == []
        assert decoder.feed('en": "a"}\n') == [_token("a")]


class TestIterSSEEvents:
    @pytest.mark.asyncio
    async def test_text_chunks(self):
        chunks = [_BODY[i:i + 7] for i in range(0, len(_BODY), 7)]
        events = await _collect(iter_sse_events(_aiter(chunks)))
        assert events == _decode_all(_BODY)

    @pytest.mark.asyncio
    async def test_multibyte_split_across_reads(self):
        body = 'event: token\ndata: {"token": "José ✓"}\n\n'.encode()
        chunks = [body[i:i + 1] for i in range(len(body))]
        events = await _collect(iter_sse_events(_aiter(chunks)))
        assert events == [_token("José ✓")]

    @pytest.mark.asyncio
    async def test_body_without_trailing_newline(self):
        body = b'event: error\ndata: {"error": "quota exceeded"}'
        events = await _collect(iter_sse_events(_aiter([body])))
        assert events == [TransportEvent(event="error", data={"error": "quota exceeded"})]


# ══════════════════════════════════════════════════════════════════
# consume()
# ══════════════════════════════════════════════════════════════════


def _reporter(source: str = "resume", throttle_ms: int = 0, **kwargs) -> ProgressReporter:
    return ProgressReporter(
        get_adapter(source), config=StreamConfig(throttle_ms=throttle_ms), **kwargs
    )


class TestConsume:
    @pytest.mark.asyncio
    async def test_runs_to_completion(self):
        reporter = _reporter()
        reporter.start()
        events = _aiter([
            _token('{"name":"Ana",'),
            _token('"skills":["Go"]}'),
            _complete({"name": "Ana", "skills": ["Go"]}),
        ])
        final = await consume(reporter, events)
        assert final.status == StreamStatus.COMPLETE
        assert final.profile == {"name": "Ana", "skills": ["Go"]}
        assert final.partial_data == {"name": "Ana", "skills_count": 1}
        assert final is reporter.progress

    @pytest.mark.asyncio
    async def test_decoded_sse_pipeline(self):
        reporter = _reporter()
        reporter.start()
        raw = _BODY.encode()
        chunks = [raw[i:i + 5] for i in range(0, len(raw), 5)]
        final = await consume(reporter, iter_sse_events(_aiter(chunks)))
        assert final.status == StreamStatus.COMPLETE
        assert reporter.text == '{"name":"Ana","skills":["Go"]}'

    @pytest.mark.asyncio
    async def test_stream_closed_without_terminal_event(self):
        reporter = _reporter()
        reporter.start()
        final = await consume(reporter, _aiter([_token('{"name":"Ana"')]))
        assert final.status == StreamStatus.ERROR
        assert final.error == STREAM_CLOSED_MESSAGE
        assert final.partial_data == {"name": "Ana"}

    @pytest.mark.asyncio
    async def test_empty_stream_is_error(self):
        reporter = _reporter()
        reporter.start()
        final = await consume(reporter, _aiter([]))
        assert final.error == STREAM_CLOSED_MESSAGE

    @pytest.mark.asyncio
    async def test_transport_exception_becomes_error(self):
        async def _failing():
            yield _token('{"name":"Ana",')
            raise ConnectionError("connection reset by peer")

        reporter = _reporter()
        reporter.start()
        final = await consume(reporter, _failing())
        assert final.status == StreamStatus.ERROR
        assert final.error == "connection reset by peer"
        assert final.partial_data == {"name": "Ana"}

    @pytest.mark.asyncio
    async def test_exception_without_message_uses_type_name(self):
        async def _failing():
            raise TimeoutError()
            yield  # pragma: no cover

        reporter = _reporter()
        final = await consume(reporter, _failing())
        assert final.error == "TimeoutError"

    @pytest.mark.asyncio
    async def test_error_event_ends_stream(self):
        reporter = _reporter()
        reporter.start()
        events = _aiter([
            _token("{"),
            TransportEvent(event="error", data={"error": "Failed to parse resume"}),
            _token('"name":"late"'),
        ])
        final = await consume(reporter, events)
        assert final.error == "Failed to parse resume"
        assert reporter.text == "{"

    @pytest.mark.asyncio
    async def test_stops_reading_after_complete(self):
        resumed: list[bool] = []

        async def _events():
            yield _complete({"name": "Ana"})
            resumed.append(True)
            yield _token("ignored")

        reporter = _reporter()
        reporter.start()
        final = await consume(reporter, _events())
        assert final.status == StreamStatus.COMPLETE
        assert resumed == []

    @pytest.mark.asyncio
    async def test_idle_flush_emits_deferred_snapshot(self):
        emitted = []

        async def _events():
            yield _token('{"name":')
            yield _token('"Ana",')
            await asyncio.sleep(0.1)
            yield _complete({"name": "Ana"})

        # Frozen clock: no token is ever due, so only the idle flush can emit
        reporter = _reporter(throttle_ms=20, clock=lambda: 0.0)
        reporter.add_listener(emitted.append)
        reporter.start()
        await consume(reporter, _events())

        statuses = [p.status for p in emitted]
        assert statuses == [StreamStatus.UPLOADING, StreamStatus.PARSING, StreamStatus.COMPLETE]
        assert emitted[1].partial_data == {"name": "Ana"}

    @pytest.mark.asyncio
    async def test_idle_flush_disabled(self):
        emitted = []

        async def _events():
            yield _token('{"name":"Ana",')
            await asyncio.sleep(0.05)
            yield _complete({"name": "Ana"})

        reporter = _reporter(throttle_ms=20, clock=lambda: 0.0)
        reporter.add_listener(emitted.append)
        reporter.start()
        await consume(reporter, _events(), idle_flush=False)

        statuses = [p.status for p in emitted]
        assert statuses == [StreamStatus.UPLOADING, StreamStatus.COMPLETE]

    @pytest.mark.asyncio
    async def test_final_flush_before_closed_error(self):
        emitted = []
        reporter = _reporter(throttle_ms=20, clock=lambda: 0.0)
        reporter.add_listener(emitted.append)
        reporter.start()
        await consume(reporter, _aiter([_token('{"name":"Ana"')]))

        statuses = [p.status for p in emitted]
        assert statuses == [StreamStatus.UPLOADING, StreamStatus.PARSING, StreamStatus.ERROR]
        assert emitted[1].streamed_text == '{"name":"Ana"'

    @pytest.mark.asyncio
    async def test_plain_async_iterable(self):
        class _Events:
            def __init__(self, items):
                self._items = list(items)

            def __aiter__(self):
                return self

            async def __anext__(self):
                if not self._items:
                    raise StopAsyncIteration
                return self._items.pop(0)

        reporter = _reporter()
        reporter.start()
        final = await consume(reporter, _Events([_complete({"ok": True})]))
        assert final.profile == {"ok": True}

    @pytest.mark.asyncio
    async def test_streams_run_concurrently(self):
        async def _events(name: str):
            for chunk in ['{"name":', json.dumps(name), "}"]:
                await asyncio.sleep(0)
                yield _token(chunk)
            yield _complete({"name": name})

        resume = _reporter("resume")
        github = _reporter("github")
        results = await asyncio.gather(
            consume(resume, _events("Ana")), consume(github, _events("Bo")),
        )
        assert [r.partial_data["name"] for r in results] == ["Ana", "Bo"]
        assert resume.text == '{"name":"Ana"}'
        assert github.text == '{"name":"Bo"}'
