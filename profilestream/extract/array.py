"""Array element extraction from a partial JSON buffer.

Walks the target array's bracket span character by character, tracking
string and escape state plus nesting depth, and collects only elements
that are already complete. An element still being written at the end of
the buffer is left out; it shows up on a later tick once it closes.
"""

from __future__ import annotations

import logging

from profilestream.extract.scanner import decode_string, find_value_start, parse_fragment
from profilestream.schemas.adapter import ArrayMode
from profilestream.schemas.streaming import ArrayExtraction

logger = logging.getLogger(__name__)

_WHITESPACE = " \t\r\n"


def extract_array(
    buffer: str,
    field_name: str,
    mode: ArrayMode | str = ArrayMode.OBJECTS,
) -> ArrayExtraction:
    """Collect the complete elements of array ``field_name``.

    Args:
        buffer: Accumulated stream text, a prefix of a JSON document.
        field_name: Raw JSON key of the array.
        mode: ``strings`` collects top-level string elements once they are
              followed by ``,`` or ``]``; ``objects`` collects top-level
              objects once their closing brace arrives. An unknown mode
              extracts nothing.

    Returns:
        An ArrayExtraction. ``found`` is False until ``"field_name": [``
        has streamed in; ``complete`` is True once the matching ``]`` has.
        Occurrences of the key holding a non-array value are skipped.
    """
    try:
        mode = ArrayMode(mode)
    except ValueError:
        logger.warning("Unknown array mode %r for %s; nothing extracted", mode, field_name)
        return ArrayExtraction()

    start = find_value_start(buffer, field_name, opener="[")
    if start is None:
        return ArrayExtraction()

    elements: list = []
    in_string = False
    escape_pending = False
    depth = 0
    token_start = -1
    candidate_start = -1
    closed_token: str | None = None

    length = len(buffer)
    i = start + 1
    while i < length:
        char = buffer[i]

        if in_string:
            if escape_pending:
                escape_pending = False
            elif char == "\\":
                escape_pending = True
            elif char == '"':
                in_string = False
                if token_start >= 0:
                    closed_token = buffer[token_start + 1:i]
                    token_start = -1
            i += 1
            continue

        if char == '"':
            in_string = True
            if depth == 0 and mode == ArrayMode.STRINGS:
                token_start = i
                closed_token = None

        elif char in "{[":
            if depth == 0 and char == "{" and mode == ArrayMode.OBJECTS:
                candidate_start = i
            depth += 1

        elif char in "}]":
            if depth == 0:
                if char == "]":
                    _take_token(elements, closed_token)
                    return ArrayExtraction(elements=elements, found=True, complete=True)
            else:
                depth -= 1
                if depth == 0 and candidate_start >= 0:
                    _take_candidate(elements, buffer[candidate_start:i + 1], field_name)
                    candidate_start = -1

        elif char == ",":
            if depth == 0:
                _take_token(elements, closed_token)
                closed_token = None

        elif depth == 0 and char not in _WHITESPACE:
            # Bare literal (number, true, null) between elements
            closed_token = None

        i += 1

    return ArrayExtraction(elements=elements, found=True, complete=False)


def _take_token(elements: list, raw: str | None) -> None:
    """Append a delimited top-level string token, if it decodes."""
    if raw is None:
        return
    value = decode_string(raw)
    if value is not None:
        elements.append(value)


def _take_candidate(elements: list, text: str, field_name: str) -> None:
    """Parse a balanced object candidate and append it on success."""
    ok, value = parse_fragment(text)
    if ok and isinstance(value, dict):
        elements.append(value)
    else:
        logger.debug("Discarded unparseable %s element: %.80s", field_name, text)
