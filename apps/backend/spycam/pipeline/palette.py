from __future__ import annotations

import numpy as np

from spycam.pipeline.types import PaletteImage

BLACK_INDEX = 0
WHITE_INDEX = 1

# Display default palette: index 0 black, index 1 white
DISPLAY_PALETTE: tuple[tuple[int, int, int], ...] = (
    (0x00, 0x00, 0x00),
    (0xFF, 0xFF, 0xFF),
)


def to_palette_image(binary: np.ndarray) -> PaletteImage:
    indices = np.where(binary == 0, BLACK_INDEX, WHITE_INDEX).astype(np.uint8)
    return PaletteImage(indices=indices, palette=DISPLAY_PALETTE)
