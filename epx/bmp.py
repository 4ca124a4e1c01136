"""Stage 3: pack a two-level grid into a 1-bit-per-pixel Windows bitmap.

Layout of every file produced here::

    offset  size  field
    0       14    file header   "BM", file size, reserved, pixel offset (62)
    14      40    info header   BITMAPINFOHEADER, height stored negative (top-down)
    54      8     palette       index 0 = black, index 1 = white
    62      ...   pixel rows    ceil(W/8) bytes, MSB first, zero-padded to 4 bytes

A set bit marks a black pixel. That is the convention the e-paper firmware
reads, so it is kept even though a generic BMP viewer will show the image
inverted.
"""

import struct
from dataclasses import dataclass, field

import numpy as np

from epx.dither import BLACK, WHITE
from epx.errors import DecodeError
from epx.logging import audit, get_logger, trace

log = get_logger("bmp")

FILE_HEADER = struct.Struct("<2sIHHI")
INFO_HEADER = struct.Struct("<IiiHHIIiiII")
PALETTE = struct.Struct("<II")

SIGNATURE = b"BM"
PIXEL_OFFSET = FILE_HEADER.size + INFO_HEADER.size + PALETTE.size  # 62
INFO_HEADER_SIZE = INFO_HEADER.size  # 40
PIXELS_PER_METER = 2835  # ~72 DPI
PALETTE_BLACK = 0x000000
PALETTE_WHITE = 0xFFFFFF


def row_bytes(width: int) -> int:
    """Packed bytes per row before padding."""
    return (width + 7) // 8


def row_stride(width: int) -> int:
    """Bytes per stored row, padded to a multiple of 4."""
    packed = row_bytes(width)
    return packed + (4 - packed % 4) % 4


def bitmap_size(width: int, height: int) -> int:
    """Total file length for a width x height bitmap."""
    return PIXEL_OFFSET + height * row_stride(width)


@dataclass(frozen=True)
class BitmapHeader:
    """Fields parsed from a 1-bpp bitmap header."""
    file_size: int
    pixel_offset: int
    width: int
    height: int
    top_down: bool
    planes: int
    bits_per_pixel: int
    compression: int
    image_size: int
    x_ppm: int
    y_ppm: int
    colors_used: int
    colors_important: int
    palette: list[tuple[int, int, int]] = field(default_factory=list)

    @property
    def stride(self) -> int:
        return row_stride(self.width)


def _pack_rows(grid: np.ndarray) -> bytes:
    height, width = grid.shape
    packed = np.packbits(grid == BLACK, axis=1)
    pad = row_stride(width) - packed.shape[1]
    if pad:
        packed = np.pad(packed, ((0, 0), (0, pad)))
    return packed.tobytes()


@trace
def encode_bmp(grid: np.ndarray) -> bytes:
    """Serialize a dithered grid into a complete 1-bpp BMP file.

    Pixels equal to 0 become set bits; anything else is white. A grid with
    no rows or no columns yields a valid 62-byte header-only file.

    Args:
        grid: uint8 array of shape (height, width) holding 0 and 255.

    Returns:
        The file bytes, exactly ``bitmap_size(width, height)`` long.
    """
    height, width = grid.shape
    pixels = _pack_rows(grid)
    image_size = len(pixels)
    file_size = PIXEL_OFFSET + image_size

    header = (
        FILE_HEADER.pack(SIGNATURE, file_size, 0, 0, PIXEL_OFFSET)
        + INFO_HEADER.pack(
            INFO_HEADER_SIZE,
            width,
            -height,  # negative height = rows stored top-down
            1,        # planes
            1,        # bits per pixel
            0,        # BI_RGB, no compression
            image_size,
            PIXELS_PER_METER,
            PIXELS_PER_METER,
            2,        # colors used
            2,        # important colors
        )
        + PALETTE.pack(PALETTE_BLACK, PALETTE_WHITE)
    )
    data = header + pixels

    audit("bitmap.encoded", logger=log,
          size=f"{width}x{height}", stride=row_stride(width), bytes=len(data))
    return data


def _unpack_palette(entry: int) -> tuple[int, int, int]:
    # Palette entries are stored B, G, R, reserved
    return ((entry >> 16) & 0xFF, (entry >> 8) & 0xFF, entry & 0xFF)


def read_header(data: bytes) -> BitmapHeader:
    """Parse and validate the headers of a 1-bpp bitmap.

    Raises:
        DecodeError: the data is too short, not a BMP, or not an uncompressed
            1-bpp BITMAPINFOHEADER file.
    """
    if len(data) < PIXEL_OFFSET:
        raise DecodeError(f"bitmap too short: {len(data)} bytes")

    sig, file_size, _, _, offset = FILE_HEADER.unpack_from(data, 0)
    if sig != SIGNATURE:
        raise DecodeError(f"bad bitmap signature {sig!r}")

    (info_size, width, height, planes, bpp, compression, image_size,
     x_ppm, y_ppm, colors_used, colors_important) = INFO_HEADER.unpack_from(data, FILE_HEADER.size)
    if info_size != INFO_HEADER_SIZE:
        raise DecodeError(f"unsupported info header size {info_size}")
    if bpp != 1 or compression != 0:
        raise DecodeError(f"expected uncompressed 1-bpp bitmap, got bpp={bpp} compression={compression}")
    if width < 0:
        raise DecodeError(f"negative bitmap width {width}")

    n_colors = colors_used or 2
    palette_end = FILE_HEADER.size + info_size + 4 * n_colors
    if n_colors > 2 or palette_end > len(data):
        raise DecodeError(f"bad palette size {n_colors}")
    entries = struct.unpack_from(f"<{n_colors}I", data, FILE_HEADER.size + info_size)

    return BitmapHeader(
        file_size=file_size,
        pixel_offset=offset,
        width=width,
        height=abs(height),
        top_down=height < 0,
        planes=planes,
        bits_per_pixel=bpp,
        compression=compression,
        image_size=image_size,
        x_ppm=x_ppm,
        y_ppm=y_ppm,
        colors_used=colors_used,
        colors_important=colors_important,
        palette=[_unpack_palette(e) for e in entries],
    )


@trace
def decode_bmp(data: bytes) -> np.ndarray:
    """Unpack a 1-bpp bitmap into a (height, width) grid of 0 and 255.

    Uses the same convention as ``encode_bmp``: a set bit is black. Bottom-up
    files are flipped so row 0 is always the top of the image.
    """
    header = read_header(data)
    width, height = header.width, header.height
    if width == 0 or height == 0:
        return np.zeros((height, width), dtype=np.uint8)

    stride = header.stride
    end = header.pixel_offset + stride * height
    if end > len(data):
        raise DecodeError(f"bitmap truncated: need {end} bytes, have {len(data)}")

    rows = np.frombuffer(data, dtype=np.uint8, count=stride * height, offset=header.pixel_offset)
    bits = np.unpackbits(rows.reshape(height, stride), axis=1)[:, :width]
    grid = np.where(bits == 1, BLACK, WHITE).astype(np.uint8)
    if not header.top_down:
        grid = grid[::-1].copy()
    return grid
