import numpy as np
import pytest

from conftest import uniform_frame
from spycam.pipeline.colorspace import MalformedFrameError, yuv420_to_rgb
from spycam.pipeline.types import PlaneBuffer, RawFrame


def test_neutral_chroma_yields_gray() -> None:
    rgb = yuv420_to_rgb(uniform_frame(4, 4, y=200))

    assert rgb.shape == (4, 4, 3)
    assert rgb.dtype == np.uint8
    assert np.all(rgb == 200)


def test_chroma_offsets_follow_conversion_coefficients() -> None:
    rgb = yuv420_to_rgb(uniform_frame(2, 2, y=100, u=128, v=200))

    # R = 100 + 1.370705 * 72, G = 100 - 0.698001 * 72, truncated after clamping
    assert tuple(rgb[0, 0]) == (198, 49, 100)


def test_values_are_clamped() -> None:
    rgb = yuv420_to_rgb(uniform_frame(2, 2, y=250, u=255, v=255))

    assert tuple(rgb[1, 1]) == (255, 118, 255)


def test_interleaved_and_planar_layouts_agree() -> None:
    planar = yuv420_to_rgb(uniform_frame(6, 4, y=90, u=60, v=170))
    interleaved = yuv420_to_rgb(uniform_frame(6, 4, y=90, u=60, v=170, interleaved=True))

    assert np.array_equal(planar, interleaved)


def test_random_frame_stays_in_range_with_padded_strides() -> None:
    rng = np.random.default_rng(7)
    width, height, y_stride = 9, 7, 16
    chroma_w, chroma_h = 5, 4
    frame = RawFrame(
        width=width,
        height=height,
        planes=(
            PlaneBuffer(data=rng.integers(0, 256, y_stride * height, dtype=np.uint8).tobytes(), bytes_per_row=y_stride),
            PlaneBuffer(data=rng.integers(0, 256, 8 * chroma_h, dtype=np.uint8).tobytes(), bytes_per_row=8),
            PlaneBuffer(data=rng.integers(0, 256, 8 * chroma_h, dtype=np.uint8).tobytes(), bytes_per_row=8),
        ),
    )

    rgb = yuv420_to_rgb(frame)

    assert rgb.shape == (height, width, 3)
    assert rgb.min() >= 0 and rgb.max() <= 255


def test_chroma_is_shared_by_two_by_two_blocks() -> None:
    frame = RawFrame(
        width=4,
        height=2,
        planes=(
            PlaneBuffer(data=bytes([128]) * 8, bytes_per_row=4),
            PlaneBuffer(data=bytes([128, 228]), bytes_per_row=2),
            PlaneBuffer(data=bytes([128, 128]), bytes_per_row=2),
        ),
    )

    rgb = yuv420_to_rgb(frame)

    assert np.array_equal(rgb[:, 0], rgb[:, 1])
    assert np.array_equal(rgb[:, 2], rgb[:, 3])
    assert rgb[0, 0, 2] == 128
    assert rgb[0, 2, 2] == 255


def test_short_luma_plane_is_malformed() -> None:
    good = uniform_frame(4, 4, y=10)
    frame = RawFrame(
        width=4,
        height=4,
        planes=(PlaneBuffer(data=bytes(10), bytes_per_row=4),) + good.planes[1:],
    )

    with pytest.raises(MalformedFrameError):
        yuv420_to_rgb(frame)


def test_missing_plane_is_malformed() -> None:
    good = uniform_frame(4, 4, y=10)

    with pytest.raises(MalformedFrameError):
        yuv420_to_rgb(RawFrame(width=4, height=4, planes=good.planes[:2]))


def test_unknown_format_is_malformed() -> None:
    good = uniform_frame(4, 4, y=10)

    with pytest.raises(MalformedFrameError):
        yuv420_to_rgb(RawFrame(width=4, height=4, planes=good.planes, format="BGRA8888"))
