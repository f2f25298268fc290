from __future__ import annotations

from spycam.pipeline.types import EncodedBitmap

DEFAULT_SIZE_CAP_BYTES = 25_000


def uncompressed_size(width: int, height: int, bits_per_pixel: int = 1) -> int:
    return width * height * bits_per_pixel // 8


class SizeBudgetValidator:
    """Gate on the theoretical raw size a bitmap occupies on the display.

    The check ignores the PNG byte count; it approximates the receiving device's
    raw transfer cost at the bitmap's nominal bit depth.
    """

    def __init__(self, cap_bytes: int = DEFAULT_SIZE_CAP_BYTES) -> None:
        self.cap_bytes = cap_bytes

    def measure(self, bitmap: EncodedBitmap) -> int:
        return uncompressed_size(bitmap.width, bitmap.height, bitmap.bits_per_pixel)

    def accepts(self, bitmap: EncodedBitmap) -> bool:
        return self.measure(bitmap) <= self.cap_bytes
