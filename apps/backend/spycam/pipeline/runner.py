from __future__ import annotations

import logging
from typing import Any, Callable

from spycam.config import PipelineConfig
from spycam.pipeline.budget import SizeBudgetValidator, uncompressed_size
from spycam.pipeline.colorspace import MalformedFrameError, yuv420_to_rgb
from spycam.pipeline.encoding import encode_bitmap
from spycam.pipeline.palette import to_palette_image
from spycam.pipeline.transforms import binarize, resize, rotate_clockwise, to_grayscale
from spycam.pipeline.types import EncodedBitmap, RawFrame, StageErrorKind, StageResult

logger = logging.getLogger(__name__)


class BitmapPipeline:
    """Frame-to-bitmap transform: YUV420 in, size-checked 1-bit PNG out.

    Every stage runs through ``_run_stage`` so a failure surfaces as a named
    ``StageResult`` error instead of an exception escaping the frame callback.
    """

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config
        self._validator = SizeBudgetValidator(config.size_cap_bytes)

    def process(self, frame: RawFrame) -> StageResult[EncodedBitmap]:
        config = self.config
        context = f"{frame.width}x{frame.height}"

        stages: list[tuple[str, Callable[[Any], Any]]] = [
            ("colorspace", yuv420_to_rgb),
            ("rotate", lambda rgb: rotate_clockwise(rgb, config.rotation_degrees)),
            ("grayscale", to_grayscale),
            ("resize", lambda gray: resize(gray, config.target_width, config.target_height)),
            ("binarize", lambda gray: binarize(gray, config.threshold)),
            ("palette", to_palette_image),
            ("encode", encode_bitmap),
        ]

        value: Any = frame
        for name, stage in stages:
            result = self._run_stage(name, stage, value, context)
            if not result.ok:
                return result
            value = result.value

        bitmap: EncodedBitmap = value
        logger.info(
            "encoded %dx%d bitmap, %d bytes png", bitmap.width, bitmap.height, bitmap.byte_length
        )
        return self._check_budget(bitmap)

    def _check_budget(self, bitmap: EncodedBitmap) -> StageResult[EncodedBitmap]:
        size = uncompressed_size(bitmap.width, bitmap.height, bitmap.bits_per_pixel)
        logger.info("uncompressed size: %d bytes", size)
        if not self._validator.accepts(bitmap):
            return StageResult.failure(
                StageErrorKind.OVER_BUDGET,
                "budget",
                f"uncompressed size {size} exceeds {self._validator.cap_bytes} bytes",
            )
        return StageResult.success(bitmap)

    @staticmethod
    def _run_stage(
        name: str,
        stage: Callable[[Any], Any],
        value: Any,
        context: str,
    ) -> StageResult[Any]:
        try:
            output = stage(value)
        except MalformedFrameError as error:
            return StageResult.failure(StageErrorKind.MALFORMED_FRAME, name, str(error))
        except Exception as error:
            return StageResult.failure(
                StageErrorKind.TRANSFORM_FAILED, name, f"{type(error).__name__}: {error}"
            )
        logger.debug("stage %s done for %s frame", name, context)
        return StageResult.success(output)
