from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

import numpy as np

from spycam.config import PipelineConfig
from spycam.pipeline.types import PlaneBuffer, RawFrame

logger = logging.getLogger(__name__)

FrameCallback = Callable[[RawFrame], Awaitable[Any]]


class FrameSourceError(RuntimeError):
    """Raised when a frame source cannot be brought up."""


class FrameSource(ABC):
    """Producer of raw frames; delivers them one at a time to a callback."""

    @abstractmethod
    async def start(self, callback: FrameCallback) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...


class PushFrameSource(FrameSource):
    """Frames pushed in from outside (HTTP or WebSocket ingest)."""

    def __init__(self) -> None:
        self._callback: FrameCallback | None = None

    @property
    def started(self) -> bool:
        return self._callback is not None

    async def start(self, callback: FrameCallback) -> None:
        self._callback = callback

    async def stop(self) -> None:
        self._callback = None

    async def push(self, frame: RawFrame) -> Any:
        if self._callback is None:
            raise FrameSourceError("push source is not started")
        return await self._callback(frame)


class SyntheticFrameSource(FrameSource):
    """Emits a moving NV12 test pattern at a fixed rate.

    Stopping lets the frame currently in the callback finish before the task exits.
    """

    def __init__(self, width: int, height: int, fps: float) -> None:
        self.width = width
        self.height = height
        self.period_s = 1.0 / fps
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self, callback: FrameCallback) -> None:
        if self._task is not None:
            raise FrameSourceError("synthetic source already running")
        self._stopping.clear()
        self._task = asyncio.create_task(self._run(callback))
        logger.info("synthetic source started %dx%d @ %.1f fps", self.width, self.height, 1.0 / self.period_s)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None
        logger.info("synthetic source stopped")

    async def _run(self, callback: FrameCallback) -> None:
        tick = 0
        while not self._stopping.is_set():
            try:
                await callback(build_test_frame(self.width, self.height, tick))
            except Exception:
                logger.exception("synthetic frame %d was not handled", tick)
            tick += 1
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.period_s)
            except asyncio.TimeoutError:
                pass


def build_test_frame(width: int, height: int, tick: int) -> RawFrame:
    """Deterministic NV12 frame: diagonal luma bars that drift with ``tick``, neutral chroma."""
    x = np.arange(width, dtype=np.int32)
    y = np.arange(height, dtype=np.int32)
    xx, yy = np.meshgrid(x, y)
    luma = (((xx + yy + tick * 8) // 24) % 2 * 200 + 28).astype(np.uint8)

    chroma_w, chroma_h = (width + 1) // 2, (height + 1) // 2
    uv = np.full((chroma_h, chroma_w * 2), 128, dtype=np.uint8)
    uv_bytes = uv.tobytes()
    return RawFrame(
        width=width,
        height=height,
        planes=(
            PlaneBuffer(data=luma.tobytes(), bytes_per_row=width, bytes_per_pixel=1),
            PlaneBuffer(data=uv_bytes, bytes_per_row=chroma_w * 2, bytes_per_pixel=2),
            PlaneBuffer(data=uv_bytes[1:], bytes_per_row=chroma_w * 2, bytes_per_pixel=2),
        ),
    )


def build_frame_source(config: PipelineConfig) -> FrameSource:
    if config.frame_source == "synthetic":
        return SyntheticFrameSource(config.synthetic_width, config.synthetic_height, config.synthetic_fps)
    return PushFrameSource()
