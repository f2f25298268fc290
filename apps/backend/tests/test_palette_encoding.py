import numpy as np
import pytest

from spycam.pipeline.encoding import decode_bitmap, encode_bitmap
from spycam.pipeline.palette import DISPLAY_PALETTE, to_palette_image
from spycam.pipeline.transforms import binarize

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def test_palette_indices_are_zero_or_one() -> None:
    binary = binarize(np.random.default_rng(11).integers(0, 256, (20, 30), dtype=np.uint8))

    image = to_palette_image(binary)

    assert image.width == 30 and image.height == 20
    assert set(np.unique(image.indices)) <= {0, 1}
    assert len(image.palette) == 2
    assert image.palette == ((0, 0, 0), (255, 255, 255))
    assert np.array_equal(image.indices == 1, binary == 255)


def test_encoded_bitmap_round_trips_indices_and_palette() -> None:
    checker = (np.indices((17, 23)).sum(axis=0) % 2 * 255).astype(np.uint8)
    image = to_palette_image(checker)

    bitmap = encode_bitmap(image)
    decoded = decode_bitmap(bitmap.data)

    assert bitmap.data.startswith(PNG_SIGNATURE)
    assert bitmap.byte_length == len(bitmap.data)
    assert (bitmap.width, bitmap.height, bitmap.bits_per_pixel) == (23, 17, 1)
    assert np.array_equal(decoded.indices, image.indices)
    assert decoded.palette == DISPLAY_PALETTE


def test_decode_rejects_non_indexed_png() -> None:
    from io import BytesIO

    from PIL import Image

    buffer = BytesIO()
    Image.new("RGB", (2, 2)).save(buffer, format="PNG")

    with pytest.raises(ValueError):
        decode_bitmap(buffer.getvalue())
