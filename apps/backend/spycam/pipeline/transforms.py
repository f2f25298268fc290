from __future__ import annotations

import numpy as np
from PIL import Image


def rotate_clockwise(image: np.ndarray, degrees: int) -> np.ndarray:
    """Rotate an image array clockwise by a multiple of 90 degrees.

    Odd quarter turns swap width and height.
    """
    if degrees % 90 != 0:
        raise ValueError(f"rotation must be a multiple of 90 degrees, got {degrees}")
    # np.rot90 turns counter-clockwise for positive k
    quarter_turns = (-(degrees // 90)) % 4
    return np.ascontiguousarray(np.rot90(image, k=quarter_turns, axes=(0, 1)))


def to_grayscale(rgb: np.ndarray) -> np.ndarray:
    # Pillow "L": (R*19595 + G*38470 + B*7471 + 0x8000) >> 16, i.e. rounded BT.601 luma
    gray = Image.fromarray(rgb).convert("L")
    return np.asarray(gray, dtype=np.uint8)


def resize(gray: np.ndarray, width: int, height: int) -> np.ndarray:
    if gray.shape[1] == width and gray.shape[0] == height:
        return gray
    resized = Image.fromarray(gray).resize((width, height), Image.Resampling.BILINEAR)
    return np.asarray(resized, dtype=np.uint8)


def binarize(gray: np.ndarray, threshold: int = 128) -> np.ndarray:
    return np.where(gray > threshold, 255, 0).astype(np.uint8)
