"""Adapter registry and TOML configuration loader.

Loads schema adapter tables from adapters.toml and stream defaults from
defaults.toml. Provides lookup by adapter name.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from profilestream.schemas.adapter import SchemaAdapter
from profilestream.schemas.config import StreamConfig

# Default config directory relative to the profilestream package
_CONFIG_DIR = Path(__file__).parent.parent / "config"


def load_adapters(config_path: Path | None = None) -> dict[str, SchemaAdapter]:
    """Load the schema adapter registry from a TOML file.

    Args:
        config_path: Path to adapters.toml. Defaults to profilestream/config/adapters.toml.

    Returns:
        Dictionary mapping adapter names to SchemaAdapter instances.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML structure is invalid.
    """
    path = config_path or _CONFIG_DIR / "adapters.toml"
    if not path.exists():
        raise FileNotFoundError(f"Adapter registry not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    adapters_section = raw.get("adapters")
    if not adapters_section or not isinstance(adapters_section, dict):
        raise ValueError(f"No [adapters] section found in {path}")

    registry: dict[str, SchemaAdapter] = {}
    for name, entry in adapters_section.items():
        if not isinstance(entry, dict):
            continue
        registry[name] = SchemaAdapter(name=name, **entry)

    return registry


def load_stream_config(config_path: Path | None = None) -> StreamConfig:
    """Load stream defaults from a TOML file.

    Args:
        config_path: Path to defaults.toml. Defaults to profilestream/config/defaults.toml.

    Returns:
        StreamConfig with values from the TOML file.

    Raises:
        FileNotFoundError: If the config file does not exist.
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise FileNotFoundError(f"Stream config not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    return StreamConfig(**raw.get("stream", {}))


def get_adapter(
    name: str, registry: dict[str, SchemaAdapter] | None = None
) -> SchemaAdapter:
    """Look up one adapter by name.

    Raises:
        ValueError: If no adapter with that name is registered.
    """
    adapters = registry if registry is not None else load_adapters()
    try:
        return adapters[name]
    except KeyError:
        known = ", ".join(sorted(adapters)) or "(none)"
        raise ValueError(f"Unknown adapter '{name}'. Known adapters: {known}") from None
