from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from spycam.config import PipelineConfig, merge_pipeline_config
from spycam.pipeline.rate_limit import RateLimiter
from spycam.pipeline.runner import BitmapPipeline
from spycam.pipeline.types import EncodedBitmap, RawFrame, StageError, StageErrorKind
from spycam.services.diagnostics import DiagnosticPersister
from spycam.services.sources import FrameSource, FrameSourceError, build_frame_source
from spycam.services.transport import DisplayTransport, TxCode, TxSprite

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    STOPPING = "stopping"


class FrameOutcome(str, Enum):
    DELIVERED = "delivered"
    RATE_LIMITED = "rate_limited"
    BUSY = "busy"
    REJECTED = "rejected"
    FAILED = "failed"
    IGNORED = "ignored"


class SessionStateError(RuntimeError):
    """Raised when a lifecycle transition is requested from the wrong state."""


@dataclass
class SessionMetrics:
    frames_in: int = 0
    frames_admitted: int = 0
    frames_delivered: int = 0
    frames_rate_limited: int = 0
    frames_busy: int = 0
    frames_rejected: int = 0
    frames_failed: int = 0
    avg_latency_ms: float = 0.0


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class CaptureSession:
    """Owns the frame source, the pipeline and all per-run mutable state.

    Frame handling for one admitted frame runs entirely under ``_lock``; frames
    that arrive while it is held are dropped, never queued.
    """

    transport: DisplayTransport
    config: PipelineConfig = field(default_factory=PipelineConfig)
    source_factory: Callable[[PipelineConfig], FrameSource] = build_frame_source
    clock: Callable[[], float] = _monotonic_ms
    revision: int = 1
    metrics: SessionMetrics = field(default_factory=SessionMetrics)
    diagnostics_dir: str | None = field(default_factory=lambda: os.getenv("SPYCAM_DIAGNOSTICS_DIR"))

    def __post_init__(self) -> None:
        self._lock = asyncio.Lock()
        self.state = SessionState.IDLE
        self.preview: EncodedBitmap | None = None
        self.last_error: str | None = None
        self._source: FrameSource | None = None
        self._rate_limiter = RateLimiter(self.config.frame_interval_ms)
        self._apply_config(self.config)

    @property
    def source(self) -> FrameSource | None:
        return self._source

    def _apply_config(self, config: PipelineConfig) -> None:
        self._pipeline = BitmapPipeline(config)
        self._rate_limiter.interval_ms = config.frame_interval_ms
        self._persister = (
            DiagnosticPersister(self.diagnostics_dir) if config.diagnostics.enabled else None
        )

    async def update_config(self, patch: dict[str, Any]) -> PipelineConfig:
        async with self._lock:
            config = merge_pipeline_config(self.config, patch)
            self._apply_config(config)
            self.config = config
            self.revision += 1
            return self.config

    async def start(self) -> None:
        if self.state is not SessionState.IDLE:
            raise SessionStateError(f"cannot start capture while {self.state.value}")

        self.state = SessionState.INITIALIZING
        source = self.source_factory(self.config)
        try:
            await source.start(self.handle_frame)
        except Exception as error:
            self.state = SessionState.IDLE
            self.last_error = f"frame source failed to start: {error}"
            logger.error("frame source initialisation failed: %s", error)
            raise FrameSourceError(str(error)) from error

        self._source = source
        self._rate_limiter.reset()
        self.state = SessionState.RUNNING
        logger.info("capture running with %s", type(source).__name__)

    async def stop(self) -> None:
        if self.state is not SessionState.RUNNING:
            return

        self.state = SessionState.STOPPING
        source, self._source = self._source, None
        if source is not None:
            try:
                await source.stop()
            except Exception:
                logger.exception("frame source failed to stop cleanly")

        # drain the in-flight frame
        async with self._lock:
            pass

        display = self.config.display
        try:
            await self.transport.send_message(
                TxCode(msg_code=display.teardown_msg_code, value=display.teardown_value)
            )
        except Exception as error:
            logger.error("failed to send teardown code: %s", error)

        self.preview = None
        self.state = SessionState.IDLE
        logger.info("capture stopped")

    async def handle_frame(self, frame: RawFrame) -> FrameOutcome:
        if self.state is not SessionState.RUNNING:
            return FrameOutcome.IGNORED

        self.metrics.frames_in += 1
        if self._lock.locked():
            self.metrics.frames_busy += 1
            return FrameOutcome.BUSY

        async with self._lock:
            if not self._rate_limiter.admit(self.clock()):
                self.metrics.frames_rate_limited += 1
                return FrameOutcome.RATE_LIMITED

            self.metrics.frames_admitted += 1
            try:
                return await self._process_admitted(frame)
            except Exception as error:
                logger.exception("unexpected failure handling %dx%d frame", frame.width, frame.height)
                self.last_error = f"session: {type(error).__name__}: {error}"
                self.metrics.frames_failed += 1
                return FrameOutcome.FAILED

    async def _process_admitted(self, frame: RawFrame) -> FrameOutcome:
        started = time.perf_counter()
        result = await asyncio.to_thread(self._pipeline.process, frame)
        if not result.ok:
            return self._drop(result.error, frame)

        bitmap: EncodedBitmap = result.value
        self.preview = bitmap

        if self._persister is not None:
            await self._persister.persist(bitmap)

        try:
            await self.transport.send_message(
                TxSprite(msg_code=self.config.display.sprite_msg_code, png_bytes=bitmap.data)
            )
        except Exception as error:
            logger.error("failed to send bitmap to display: %s", error)
            self.last_error = f"transport: {error}"
            self.metrics.frames_failed += 1
            return FrameOutcome.FAILED

        latency_ms = (time.perf_counter() - started) * 1000
        self.metrics.frames_delivered += 1
        self.metrics.avg_latency_ms = (
            self.metrics.avg_latency_ms * 0.9 + latency_ms * 0.1
            if self.metrics.frames_delivered > 1
            else latency_ms
        )
        logger.info("bitmap delivered to display in %.1f ms", latency_ms)
        return FrameOutcome.DELIVERED

    def _drop(self, error: StageError, frame: RawFrame) -> FrameOutcome:
        if error.kind is StageErrorKind.OVER_BUDGET:
            logger.warning("frame rejected: %s", error.detail)
            self.metrics.frames_rejected += 1
            return FrameOutcome.REJECTED

        logger.error(
            "frame %dx%d dropped at stage %s (%s): %s",
            frame.width,
            frame.height,
            error.stage,
            error.kind.value,
            error.detail,
        )
        self.last_error = f"{error.stage}: {error.detail}"
        self.metrics.frames_failed += 1
        return FrameOutcome.FAILED
