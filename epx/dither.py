"""Stage 2: Floyd-Steinberg error diffusion from 8-bit grayscale to two levels."""

import numpy as np

from epx.logging import audit, get_logger, trace

log = get_logger("dither")

BLACK = 0
WHITE = 255
THRESHOLD = 128

# (dx, dy, numerator) over a denominator of 16, in diffusion order
FS_KERNEL = (
    (1, 0, 7),
    (-1, 1, 3),
    (0, 1, 5),
    (1, 1, 1),
)


def _share(error: int, numerator: int) -> int:
    """error * numerator / 16, truncated toward zero."""
    return int(error * numerator / 16)


def quantize(value: int) -> int:
    return BLACK if value < THRESHOLD else WHITE


@trace
def floyd_steinberg(grid: np.ndarray) -> np.ndarray:
    """Dither a grayscale grid to pure black (0) and white (255).

    Pixels are visited row by row, left to right. Each pixel is thresholded
    at 128 and its signed error is pushed to the unvisited neighbours with
    weights 7/16 (right), 3/16 (below-left), 5/16 (below) and 1/16
    (below-right). Every share is truncated toward zero on its own, and
    shares falling outside the grid are dropped.

    The accumulator is a list of Python ints, so intermediate values may go
    below 0 or above 255 without wrapping. The input array is not modified.

    Args:
        grid: uint8 array of shape (height, width).

    Returns:
        New uint8 array of the same shape holding only 0 and 255.
    """
    height, width = grid.shape
    acc = grid.astype(np.int64).ravel().tolist()

    for y in range(height):
        row = y * width
        for x in range(width):
            idx = row + x
            old = acc[idx]
            new = quantize(old)
            acc[idx] = new
            error = old - new
            if not error:
                continue
            for dx, dy, num in FS_KERNEL:
                nx = x + dx
                if 0 <= nx < width and y + dy < height:
                    acc[idx + dy * width + dx] += _share(error, num)

    out = np.array(acc, dtype=np.uint8).reshape(height, width)
    audit("grid.dithered", logger=log,
          size=f"{width}x{height}",
          black=int(np.count_nonzero(out == BLACK)),
          white=int(np.count_nonzero(out == WHITE)))
    return out
