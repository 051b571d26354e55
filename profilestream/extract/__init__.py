"""Partial-JSON extractors for streamed LLM output."""

from profilestream.extract.array import extract_array
from profilestream.extract.scalar import extract_first_scalar, extract_scalar

__all__ = ["extract_array", "extract_first_scalar", "extract_scalar"]
