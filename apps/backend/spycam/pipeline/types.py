from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

import numpy as np

YUV420_SEMI_PLANAR = "YUV420SemiPlanar"

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class PlaneBuffer:
    data: bytes
    bytes_per_row: int
    bytes_per_pixel: int = 1


@dataclass(frozen=True, slots=True)
class RawFrame:
    width: int
    height: int
    planes: tuple[PlaneBuffer, ...]
    format: str = YUV420_SEMI_PLANAR


@dataclass(slots=True)
class PaletteImage:
    indices: np.ndarray
    palette: tuple[tuple[int, int, int], ...]

    @property
    def width(self) -> int:
        return int(self.indices.shape[1])

    @property
    def height(self) -> int:
        return int(self.indices.shape[0])


@dataclass(frozen=True, slots=True)
class EncodedBitmap:
    data: bytes
    width: int
    height: int
    bits_per_pixel: int = 1

    @property
    def byte_length(self) -> int:
        return len(self.data)


class StageErrorKind(str, Enum):
    MALFORMED_FRAME = "malformed_frame"
    TRANSFORM_FAILED = "transform_failed"
    OVER_BUDGET = "over_budget"


@dataclass(frozen=True, slots=True)
class StageError:
    kind: StageErrorKind
    stage: str
    detail: str


@dataclass(frozen=True)
class StageResult(Generic[T]):
    value: T | None = None
    error: StageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> StageResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: StageErrorKind, stage: str, detail: str) -> StageResult[T]:
        return cls(error=StageError(kind=kind, stage=stage, detail=detail))
