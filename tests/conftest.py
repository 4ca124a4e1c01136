"""Shared fixtures: small in-memory source images built with Pillow."""

import io
import logging

import numpy as np
import pytest
from PIL import Image


def encode_image(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def solid_png():
    """Factory: solid-colour PNG bytes of a given mode, size and colour."""
    def _make(size=(16, 8), color=0, mode="L") -> bytes:
        return encode_image(Image.new(mode, size, color))
    return _make


@pytest.fixture
def gradient_png() -> bytes:
    """64x48 RGB image with a horizontal ramp and a coloured stripe."""
    arr = np.zeros((48, 64, 3), dtype=np.uint8)
    arr[..., 0] = np.linspace(0, 255, 64, dtype=np.uint8)[None, :]
    arr[..., 1] = np.linspace(255, 0, 48, dtype=np.uint8)[:, None]
    arr[10:20, :, 2] = 200
    return encode_image(Image.fromarray(arr))


@pytest.fixture
def mid_gray_grid() -> np.ndarray:
    return np.full((4, 4), 127, dtype=np.uint8)


@pytest.fixture
def encode():
    """Serialize a Pillow image to bytes in the given format."""
    return encode_image


@pytest.fixture
def gradient_jpeg(gradient_png) -> bytes:
    return encode_image(Image.open(io.BytesIO(gradient_png)).convert("RGB"), "JPEG")


@pytest.fixture
def checkerboard_bmp() -> bytes:
    """Expected file for a 4x4 grid dithered from flat 127 gray."""
    return bytes.fromhex(
        "424d4e000000000000003e000000"                # file header
        "2800000004000000fcffffff0100010000000000"    # info header
        "10000000130b0000130b00000200000002000000"
        "00000000ffffff00"                            # palette
        "a0000000" "50000000" "a0000000" "50000000"   # pixel rows
    )


@pytest.fixture(autouse=True)
def reset_epx_logging():
    """Drop handlers installed by setup_logging so they never outlive a test."""
    yield
    root = logging.getLogger("epx")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
