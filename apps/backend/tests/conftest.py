from __future__ import annotations

import base64

from spycam.pipeline.types import PlaneBuffer, RawFrame
from spycam.services.transport import DisplayTransport, TxMessage


def uniform_frame(
    width: int,
    height: int,
    y: int,
    u: int = 128,
    v: int = 128,
    interleaved: bool = False,
) -> RawFrame:
    """YUV420 frame with constant samples; NV12 layout when ``interleaved``, else I420."""
    chroma_w, chroma_h = (width + 1) // 2, (height + 1) // 2
    luma = PlaneBuffer(data=bytes([y]) * (width * height), bytes_per_row=width)

    if interleaved:
        uv = bytes([u, v]) * (chroma_w * chroma_h)
        return RawFrame(
            width=width,
            height=height,
            planes=(
                luma,
                PlaneBuffer(data=uv, bytes_per_row=chroma_w * 2, bytes_per_pixel=2),
                PlaneBuffer(data=uv[1:], bytes_per_row=chroma_w * 2, bytes_per_pixel=2),
            ),
        )

    return RawFrame(
        width=width,
        height=height,
        planes=(
            luma,
            PlaneBuffer(data=bytes([u]) * (chroma_w * chroma_h), bytes_per_row=chroma_w),
            PlaneBuffer(data=bytes([v]) * (chroma_w * chroma_h), bytes_per_row=chroma_w),
        ),
    )


def frame_payload(frame: RawFrame) -> dict:
    return {
        "width": frame.width,
        "height": frame.height,
        "format": frame.format,
        "planes": [
            {
                "bytes_b64": base64.b64encode(plane.data).decode("ascii"),
                "bytes_per_row": plane.bytes_per_row,
                "bytes_per_pixel": plane.bytes_per_pixel,
            }
            for plane in frame.planes
        ],
    }


class RecordingTransport(DisplayTransport):
    def __init__(self) -> None:
        self.sent: list[TxMessage] = []

    async def send_message(self, message: TxMessage) -> int:
        self.sent.append(message)
        return 1


class FakeClock:
    def __init__(self, now_ms: float = 0.0) -> None:
        self.now_ms = now_ms

    def __call__(self) -> float:
        return self.now_ms
