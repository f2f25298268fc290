from __future__ import annotations

from io import BytesIO

import numpy as np
from PIL import Image

from spycam.pipeline.types import EncodedBitmap, PaletteImage


def encode_bitmap(image: PaletteImage) -> EncodedBitmap:
    """Serialize a two-colour palette image as a 1-bit indexed PNG."""
    bits_per_pixel = max(1, (len(image.palette) - 1).bit_length())

    raster = Image.frombytes("P", (image.width, image.height), image.indices.tobytes())
    raster.putpalette([channel for color in image.palette for channel in color])

    out_buffer = BytesIO()
    raster.save(out_buffer, format="PNG", bits=bits_per_pixel, optimize=True)
    return EncodedBitmap(
        data=out_buffer.getvalue(),
        width=image.width,
        height=image.height,
        bits_per_pixel=bits_per_pixel,
    )


def decode_bitmap(data: bytes, palette_size: int = 2) -> PaletteImage:
    with Image.open(BytesIO(data)) as raw:
        if raw.mode != "P":
            raise ValueError(f"expected an indexed PNG, got mode {raw.mode}")
        indices = np.asarray(raw, dtype=np.uint8).copy()
        flat = raw.getpalette() or []

    flat = flat[: palette_size * 3]
    palette = tuple(tuple(flat[i : i + 3]) for i in range(0, len(flat), 3))
    return PaletteImage(indices=indices, palette=palette)
