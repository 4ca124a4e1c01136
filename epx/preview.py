"""PNG previews of encoded bitmaps, as they will look on the panel."""

import io

from PIL import Image

from epx.bmp import decode_bmp
from epx.errors import DecodeError
from epx.logging import trace


@trace
def render_preview(bitmap: bytes, scale: int = 1) -> Image.Image:
    """Render an encoded bitmap as a mode '1' image, black where bits are set.

    Pillow's own BMP reader maps set bits to palette index 1 (white), which
    shows these files inverted, so the pixels are unpacked with decode_bmp.

    Raises:
        DecodeError: the bitmap is malformed, or it is a header-only file.
            encode_bmp writes such files for empty grids and they are valid
            bitmaps, but there is no pixel to draw so no image is returned.
    """
    grid = decode_bmp(bitmap)
    height, width = grid.shape
    if not width or not height:
        raise DecodeError(f"bitmap has no pixels to preview ({width}x{height})")
    img = Image.fromarray(grid).convert("1", dither=Image.Dither.NONE)
    if scale > 1:
        img = img.resize((width * scale, height * scale), Image.NEAREST)
    return img


def render_preview_png(bitmap: bytes, scale: int = 1) -> bytes:
    """PNG bytes of ``render_preview``."""
    buf = io.BytesIO()
    render_preview(bitmap, scale=scale).save(buf, format="PNG")
    return buf.getvalue()
