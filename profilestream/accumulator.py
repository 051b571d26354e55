"""Text accumulation and emission timing for one profile stream."""

from __future__ import annotations


class Accumulator:
    """Append-only buffer for the tokens of a single stream.

    Also owns the throttle bookkeeping for that stream: when the last
    snapshot went out and whether text has arrived since. Both are
    cleared together by ``reset()`` so a restarted stream starts clean.
    """

    def __init__(self) -> None:
        self.text: str = ""
        self.chunk_count: int = 0
        self.last_emit: float | None = None
        self.pending: bool = False

    def __len__(self) -> int:
        return len(self.text)

    def append(self, chunk: str) -> None:
        """Concatenate a chunk to the buffer."""
        if not chunk:
            return
        self.text += chunk
        self.chunk_count += 1
        self.pending = True

    def due(self, now: float, interval: float) -> bool:
        """Whether enough time has passed since the last emission."""
        return self.last_emit is None or now - self.last_emit >= interval

    def mark_emitted(self, now: float) -> None:
        self.last_emit = now
        self.pending = False

    def reset(self) -> None:
        """Clear the buffer and timing state."""
        self.text = ""
        self.chunk_count = 0
        self.last_emit = None
        self.pending = False
