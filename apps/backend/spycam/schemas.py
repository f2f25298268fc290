from __future__ import annotations

import base64
from typing import Any

from pydantic import BaseModel, Field

from spycam.pipeline.types import YUV420_SEMI_PLANAR, PlaneBuffer, RawFrame


class WsMessage(BaseModel):
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)


class PlanePayload(BaseModel):
    bytes_b64: str
    bytes_per_row: int = Field(ge=1)
    bytes_per_pixel: int = Field(default=1, ge=1)


class RawFramePayload(BaseModel):
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    format: str = YUV420_SEMI_PLANAR
    planes: list[PlanePayload] = Field(min_length=3, max_length=3)

    def to_raw_frame(self) -> RawFrame:
        return RawFrame(
            width=self.width,
            height=self.height,
            format=self.format,
            planes=tuple(
                PlaneBuffer(
                    data=base64.b64decode(plane.bytes_b64),
                    bytes_per_row=plane.bytes_per_row,
                    bytes_per_pixel=plane.bytes_per_pixel,
                )
                for plane in self.planes
            ),
        )


class FrameOutcomeResponse(BaseModel):
    outcome: str
    state: str
    frames_in: int


class StatusResponse(BaseModel):
    state: str
    revision: int
    metrics: dict[str, float]
    last_error: str | None = None
    preview_available: bool = False
    display_clients: int = 0


class HealthResponse(BaseModel):
    status: str = "ok"
    state: str
