"""Applies a SchemaAdapter to a stream buffer.

One engine for every profile source: the adapter table decides which
fields and arrays are pulled out and how they are labelled.
"""

from __future__ import annotations

from typing import Any

from profilestream.extract.array import extract_array
from profilestream.extract.scalar import extract_first_scalar
from profilestream.schemas.adapter import SchemaAdapter


def summarize(adapter: SchemaAdapter, buffer: str) -> tuple[int, dict[str, Any]]:
    """Extract everything the adapter declares from ``buffer``.

    Returns:
        Tuple of (fields_found, partial_data). ``fields_found`` counts found
        scalars plus arrays holding at least one complete element.
    """
    fields_found = 0
    partial_data: dict[str, Any] = {}

    for scalar in adapter.scalars:
        value = extract_first_scalar(buffer, scalar.keys)
        if value is not None:
            partial_data[scalar.label] = value
            fields_found += 1

    for array in adapter.arrays:
        result = extract_array(buffer, array.key, array.mode)
        if not result.found:
            continue
        partial_data[f"{array.label}_count"] = len(result.elements)
        if array.include_items:
            partial_data[array.label] = result.elements
        if result.elements:
            fields_found += 1

    return fields_found, partial_data
