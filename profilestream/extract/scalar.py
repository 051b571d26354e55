"""Scalar field extraction from a partial JSON buffer."""

from __future__ import annotations

from profilestream.extract.scanner import decode_string, find_value_start, string_end


def extract_scalar(buffer: str, field_name: str) -> str | None:
    """Return the string value of ``field_name`` once it is fully streamed.

    The value is reported only after its closing quote has arrived; an
    escaped quote inside the value is not a terminator. Returns None when
    the field is absent or still being written. Occurrences holding a
    ``null`` or numeric value are skipped in favour of a later string one.
    """
    start = find_value_start(buffer, field_name, opener='"')
    if start is None:
        return None

    end = string_end(buffer, start)
    if end == -1:
        return None

    return decode_string(buffer[start + 1:end])


def extract_first_scalar(buffer: str, field_names: list[str]) -> str | None:
    """Try several raw field names in order and return the first value found."""
    for name in field_names:
        value = extract_scalar(buffer, name)
        if value is not None:
            return value
    return None
