"""String-aware scanning helpers for partial JSON buffers.

Both extractors need the same two primitives: find where a JSON string
token ends (honouring backslash escapes), and find where the value of a
named key starts. Neither ever raises on malformed or truncated input.
"""

from __future__ import annotations

import json
from typing import Any

_WHITESPACE = " \t\r\n"


def string_end(buffer: str, start: int) -> int:
    """Return the index of the quote closing the string opened at ``start``.

    ``buffer[start]`` must be the opening quote. Returns -1 when the string
    has not been closed yet.
    """
    i = start + 1
    length = len(buffer)
    while i < length:
        char = buffer[i]
        if char == "\\":
            i += 2
            continue
        if char == '"':
            return i
        i += 1
    return -1


def skip_whitespace(buffer: str, index: int) -> int:
    """Advance past JSON whitespace; may return ``len(buffer)``."""
    length = len(buffer)
    while index < length and buffer[index] in _WHITESPACE:
        index += 1
    return index


def find_value_start(
    buffer: str, field_name: str, opener: str | None = None
) -> int | None:
    """Locate the first character of the value for key ``field_name``.

    Only string tokens that start outside another string and are followed
    by a colon count as keys, so text inside values never matches. The
    first occurrence wins regardless of nesting depth. With ``opener``
    set (``"["`` for arrays, ``'"'`` for strings), occurrences whose value
    starts with any other character are skipped and the scan goes on.

    Returns the index of the value's first non-whitespace character, or
    None when no matching key (or nothing after its colon) has arrived yet.
    """
    i = 0
    length = len(buffer)
    while i < length:
        if buffer[i] != '"':
            i += 1
            continue

        end = string_end(buffer, i)
        if end == -1:
            return None

        after = skip_whitespace(buffer, end + 1)
        if after < length and buffer[after] == ":" and buffer[i + 1:end] == field_name:
            value_start = skip_whitespace(buffer, after + 1)
            if value_start >= length:
                return None
            if opener is None or buffer[value_start] == opener:
                return value_start
            i = value_start
            continue

        i = end + 1
    return None


def decode_string(raw: str) -> str | None:
    """Decode the raw text between two quotes as a JSON string.

    Literal control characters are accepted since models emit raw
    newlines inside values. Returns None for an invalid escape.
    """
    try:
        return json.loads(f'"{raw}"', strict=False)
    except ValueError:
        return None


def parse_fragment(text: str) -> tuple[bool, Any]:
    """Parse a standalone JSON fragment, returning (ok, value)."""
    try:
        return True, json.loads(text, strict=False)
    except ValueError:
        return False, None
