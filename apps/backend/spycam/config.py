from __future__ import annotations

from copy import deepcopy
import os
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DisplayConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sprite_msg_code: int = Field(default=0x20, ge=0, le=0xFF)
    teardown_msg_code: int = Field(default=0x10, ge=0, le=0xFF)
    teardown_value: int = Field(default=1, ge=0, le=0xFF)


class DiagnosticsConfig(BaseModel):
    # the output location is fixed at startup, see CaptureSession.diagnostics_dir
    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(
        default_factory=lambda: os.getenv("SPYCAM_DIAGNOSTICS", "1") not in ("0", "false", "no")
    )


class PipelineConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    frame_source: Literal["push", "synthetic"] = Field(
        default_factory=lambda: os.getenv("SPYCAM_FRAME_SOURCE", "push")
    )
    synthetic_fps: float = Field(default=5.0, gt=0.0, le=60.0)
    synthetic_width: int = Field(default=352, ge=2, le=4096)
    synthetic_height: int = Field(default=288, ge=2, le=4096)

    frame_interval_ms: int = Field(
        default_factory=lambda: int(os.getenv("SPYCAM_FRAME_INTERVAL_MS", "4000")), ge=0
    )
    rotation_degrees: int = 270
    target_width: int = Field(default=280, ge=1, le=4096)
    target_height: int = Field(default=280, ge=1, le=4096)
    threshold: int = Field(default=128, ge=0, le=255)
    size_cap_bytes: int = Field(default=25_000, ge=1)

    display: DisplayConfig = Field(default_factory=DisplayConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)

    @field_validator("rotation_degrees")
    @classmethod
    def _quarter_turns_only(cls, value: int) -> int:
        if value % 90 != 0:
            raise ValueError("rotation must be a multiple of 90 degrees")
        return value % 360


def deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    merged = deepcopy(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_pipeline_config(current: PipelineConfig, patch: dict[str, Any]) -> PipelineConfig:
    merged_dict = deep_merge(current.model_dump(), patch)
    return PipelineConfig.model_validate(merged_dict)
