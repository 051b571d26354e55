"""Tests for profilestream.accumulator."""

from __future__ import annotations

from profilestream.accumulator import Accumulator


class TestAccumulator:
    def test_starts_empty(self):
        buf = Accumulator()
        assert buf.text == ""
        assert len(buf) == 0
        assert buf.pending is False

    def test_append_concatenates(self):
        buf = Accumulator()
        buf.append('{"na')
        buf.append('me":')
        assert buf.text == '{"name":'
        assert buf.chunk_count == 2
        assert buf.pending is True

    def test_empty_chunk_ignored(self):
        buf = Accumulator()
        buf.append("")
        assert buf.chunk_count == 0
        assert buf.pending is False

    def test_due_before_first_emission(self):
        assert Accumulator().due(0.0, 0.05) is True

    def test_due_after_interval(self):
        buf = Accumulator()
        buf.mark_emitted(10.0)
        assert buf.due(10.01, 0.05) is False
        assert buf.due(10.05, 0.05) is True

    def test_mark_emitted_clears_pending(self):
        buf = Accumulator()
        buf.append("{")
        buf.mark_emitted(1.0)
        assert buf.pending is False
        assert buf.last_emit == 1.0

    def test_reset(self):
        buf = Accumulator()
        buf.append("{")
        buf.mark_emitted(1.0)
        buf.append("}")
        buf.reset()
        assert buf.text == ""
        assert buf.chunk_count == 0
        assert buf.last_emit is None
        assert buf.pending is False
