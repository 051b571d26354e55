"""Stream configuration schema, loaded from defaults.toml."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StreamConfig(BaseModel):
    """Defaults shared by every profile stream."""

    throttle_ms: int = Field(
        default=50, ge=0, description="Minimum interval between progress emissions"
    )
    preview_chars: int = Field(
        default=400, gt=0, description="Tail of the buffer shown in the CLI preview"
    )

    @property
    def throttle_seconds(self) -> float:
        return self.throttle_ms / 1000.0
