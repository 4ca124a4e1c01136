"""EP-X conversion pipeline: image bytes -> 1-bpp e-paper bitmap + fingerprint + base64."""

from dataclasses import dataclass
from pathlib import Path

from epx.bmp import encode_bmp
from epx.dither import floyd_steinberg
from epx.fingerprint import fingerprint, from_base64, to_base64
from epx.logging import audit, get_logger, trace
from epx.resample import check_dimensions, normalize

log = get_logger("converter")

# Panel size used when the caller does not pass one (400x300, 4.2" e-paper)
DEFAULT_WIDTH = 400
DEFAULT_HEIGHT = 300


@dataclass(frozen=True)
class EncodedArtifact:
    """Result of one conversion. The caller owns it; nothing is cached here."""
    bitmap: bytes
    fingerprint: str
    base64: str
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.bitmap)

    def decode(self) -> bytes:
        """Decode the stored base64 text back to bitmap bytes."""
        return from_base64(self.base64)


@trace
def convert_image(data: bytes, width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT) -> EncodedArtifact:
    """Convert raw image bytes to a monochrome bitmap for an e-paper panel.

    Args:
        data: Encoded source image in any format Pillow can read.
        width: Target panel width in pixels.
        height: Target panel height in pixels.

    Returns:
        EncodedArtifact with the bitmap bytes, their MD5 fingerprint and
        their base64 text.

    Raises:
        InvalidDimensions: width or height is not a positive integer.
        DecodeError: the image bytes cannot be decoded.
    """
    check_dimensions(width, height)

    gray = normalize(data, width, height)
    binary = floyd_steinberg(gray)
    bitmap = encode_bmp(binary)

    artifact = EncodedArtifact(
        bitmap=bitmap,
        fingerprint=fingerprint(bitmap),
        base64=to_base64(bitmap),
        width=width,
        height=height,
    )
    audit("bitmap.converted", logger=log,
          source_bytes=len(data), size=f"{width}x{height}",
          bitmap_bytes=artifact.size, fingerprint=artifact.fingerprint)
    return artifact


def convert_file(path: str | Path, width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT) -> EncodedArtifact:
    """Read an image file from disk and convert it."""
    return convert_image(Path(path).read_bytes(), width=width, height=height)
