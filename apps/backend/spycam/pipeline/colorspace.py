from __future__ import annotations

import numpy as np

from spycam.pipeline.types import YUV420_SEMI_PLANAR, RawFrame


class MalformedFrameError(ValueError):
    """Raised when a raw frame's plane geometry cannot address every output pixel."""


def yuv420_to_rgb(frame: RawFrame) -> np.ndarray:
    """Convert a strided YUV420 frame into an ``(height, width, 3)`` uint8 RGB array.

    Chroma is sampled at ``(x // 2, y // 2)`` using the U plane's row and pixel stride
    for both chroma planes, which covers interleaved (NV12/NV21) and planar (I420) layouts.
    """
    _check_geometry(frame)
    width, height = frame.width, frame.height
    y_plane, u_plane, v_plane = frame.planes

    rows = np.arange(height, dtype=np.int64)
    cols = np.arange(width, dtype=np.int64)

    y_index = rows[:, None] * y_plane.bytes_per_row + cols[None, :]
    uv_index = (
        (rows // 2)[:, None] * u_plane.bytes_per_row
        + (cols // 2)[None, :] * u_plane.bytes_per_pixel
    )

    y = np.frombuffer(y_plane.data, dtype=np.uint8)[y_index].astype(np.float64)
    u = np.frombuffer(u_plane.data, dtype=np.uint8)[uv_index].astype(np.float64) - 128.0
    v = np.frombuffer(v_plane.data, dtype=np.uint8)[uv_index].astype(np.float64) - 128.0

    r = y + 1.370705 * v
    g = y - 0.698001 * v - 0.337633 * u
    b = y + 1.732446 * u

    rgb = np.stack([r, g, b], axis=-1)
    # clamp first, then truncate toward zero
    return np.clip(rgb, 0.0, 255.0).astype(np.uint8)


def _check_geometry(frame: RawFrame) -> None:
    if frame.format != YUV420_SEMI_PLANAR:
        raise MalformedFrameError(f"unsupported pixel format: {frame.format}")
    if len(frame.planes) != 3:
        raise MalformedFrameError(f"expected 3 planes, got {len(frame.planes)}")
    if frame.width <= 0 or frame.height <= 0:
        raise MalformedFrameError(f"invalid frame size {frame.width}x{frame.height}")

    y_plane, u_plane, v_plane = frame.planes
    if y_plane.bytes_per_row < frame.width:
        raise MalformedFrameError(
            f"luma stride {y_plane.bytes_per_row} shorter than width {frame.width}"
        )
    if u_plane.bytes_per_pixel < 1 or u_plane.bytes_per_row < 1:
        raise MalformedFrameError("chroma strides must be positive")

    y_needed = (frame.height - 1) * y_plane.bytes_per_row + frame.width
    if len(y_plane.data) < y_needed:
        raise MalformedFrameError(f"luma plane has {len(y_plane.data)} bytes, needs {y_needed}")

    uv_needed = (
        (frame.height - 1) // 2 * u_plane.bytes_per_row
        + (frame.width - 1) // 2 * u_plane.bytes_per_pixel
        + 1
    )
    for name, plane in (("U", u_plane), ("V", v_plane)):
        if len(plane.data) < uv_needed:
            raise MalformedFrameError(f"{name} plane has {len(plane.data)} bytes, needs {uv_needed}")
