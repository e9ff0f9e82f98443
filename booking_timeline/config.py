"""Engine settings with environment overrides."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

NO_REFERENCE = "INDEPENDENT_BOOKING"

_ENV_FIELDS = {
    "TIMELINE_MAX_LAYER": "max_layer",
    "TIMELINE_GAP_OFFSET_PERCENT": "gap_offset_percent",
    "TIMELINE_CLIP_TO_MONTH": "clip_to_current_month",
    "TIMELINE_HIDE_MATCHED_EXTERNAL": "hide_matched_external",
}


class LayoutSettings(BaseModel):
    max_layer: int = Field(default=15, ge=1)
    gap_offset_percent: float = Field(default=12.0, ge=0, le=100)
    clip_to_current_month: bool = True
    hide_matched_external: bool = True
    no_reference_sentinel: str = NO_REFERENCE

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> LayoutSettings:
        """Build settings from ``TIMELINE_*`` environment variables.

        Unset variables keep their defaults. Values are validated like any
        other input, so an unreadable one raises ``ValidationError``.
        """
        env = os.environ if environ is None else environ
        values = {
            field: env[name].strip()
            for name, field in _ENV_FIELDS.items()
            if name in env
        }
        return cls(**values)
