"""Schema adapters: per-source extraction tables and the engine that applies them."""

from profilestream.adapters.engine import summarize
from profilestream.adapters.registry import get_adapter, load_adapters, load_stream_config

__all__ = ["get_adapter", "load_adapters", "load_stream_config", "summarize"]
