"""Stage 1: decode a source image and normalize it to a fixed-size grayscale grid."""

import io
import struct

import numpy as np
from PIL import Image, ImageOps

from epx.errors import DecodeError, InvalidDimensions
from epx.logging import audit, get_logger, trace

log = get_logger("resample")

# Background used for letterbox padding and for flattening transparency
BACKGROUND = 255


def check_dimensions(width, height):
    """Raise InvalidDimensions unless both sides are positive integers."""
    for side in (width, height):
        if isinstance(side, bool) or not isinstance(side, (int, np.integer)) or side <= 0:
            raise InvalidDimensions(width, height)


@trace
def load_image(data: bytes) -> Image.Image:
    """Decode raw image bytes with Pillow.

    EXIF orientation is applied and only the first frame of a multi-frame
    file is used. The pixels are fully loaded and the frame count read here,
    so truncated files and broken frame chains fail now rather than during
    resampling. Pillow plugins report corrupt containers with TypeError,
    EOFError, IndexError or struct.error as well as OSError.

    Raises:
        DecodeError: the bytes are empty, corrupt or in an unsupported format.
    """
    if not data:
        raise DecodeError("empty image data")
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        fmt = img.format or "unknown"
        frames = getattr(img, "n_frames", 1)
        img = ImageOps.exif_transpose(img)
    except (OSError, SyntaxError, ValueError, TypeError, EOFError, IndexError,
            struct.error, Image.DecompressionBombError) as e:
        raise DecodeError(f"cannot decode image: {e}") from e

    audit("image.decoded", logger=log,
          format=fmt, mode=img.mode,
          size=f"{img.size[0]}x{img.size[1]}",
          frames=frames)
    return img


def _to_luminance(img: Image.Image) -> Image.Image:
    """Convert to 8-bit luma (ITU-R 601-2), flattening any alpha onto white."""
    has_alpha = img.mode in ("RGBA", "LA", "PA") or (
        img.mode in ("P", "L", "RGB") and "transparency" in img.info
    )
    if has_alpha:
        rgba = img.convert("RGBA")
        canvas = Image.new("RGBA", rgba.size, (BACKGROUND, BACKGROUND, BACKGROUND, 255))
        img = Image.alpha_composite(canvas, rgba)
    if img.mode in ("I;16", "I;16B", "I;16L", "I"):
        # 16/32-bit grayscale: scale down to 8 bits instead of clipping
        arr = np.asarray(img, dtype=np.float64)
        peak = arr.max() if arr.size else 0
        if peak > 255:
            arr = arr * (255.0 / (65535.0 if peak <= 65535 else peak))
        return Image.fromarray(np.clip(arr, 0, 255).astype(np.uint8))
    return img.convert("L")


def contain_size(src: tuple[int, int], dst: tuple[int, int]) -> tuple[int, int]:
    """Largest size with src's aspect ratio that fits inside dst (each side >= 1)."""
    sw, sh = src
    dw, dh = dst
    scale = min(dw / sw, dh / sh)
    return (
        max(1, min(dw, round(sw * scale))),
        max(1, min(dh, round(sh * scale))),
    )


@trace
def to_grayscale_grid(image: Image.Image, width: int, height: int) -> np.ndarray:
    """Fit an image inside width x height and return its grayscale grid.

    The image keeps its aspect ratio and is scaled up or down to touch the
    target box; the remaining area is padded with white and the image is
    centred. Nothing is cropped or stretched.

    Returns:
        uint8 array of shape (height, width), 0 = black, 255 = white.
    """
    check_dimensions(width, height)
    gray = _to_luminance(image)

    fitted = contain_size(gray.size, (width, height))
    if fitted != gray.size:
        gray = gray.resize(fitted, Image.LANCZOS)

    canvas = Image.new("L", (width, height), BACKGROUND)
    offset = ((width - fitted[0]) // 2, (height - fitted[1]) // 2)
    canvas.paste(gray, offset)

    audit("grid.normalized", logger=log,
          source=f"{image.size[0]}x{image.size[1]}",
          fitted=f"{fitted[0]}x{fitted[1]}",
          target=f"{width}x{height}",
          offset=f"{offset[0]},{offset[1]}")
    return np.array(canvas, dtype=np.uint8)


def normalize(data: bytes, width: int, height: int) -> np.ndarray:
    """Decode image bytes and produce a width x height grayscale grid."""
    check_dimensions(width, height)
    return to_grayscale_grid(load_image(data), width, height)
