"""Stage 4: content fingerprint and base64 text transform for encoded bitmaps."""

import base64
import binascii
import hashlib

from epx.errors import DecodeError

# MD5 is only used as a cache-validation token (ETag), never for integrity
FINGERPRINT_LENGTH = 32


def fingerprint(data: bytes) -> str:
    """Return the 32-character lowercase hex MD5 digest of ``data``."""
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def to_base64(data: bytes) -> str:
    """Standard padded base64 of ``data`` as ASCII text."""
    return base64.b64encode(data).decode("ascii")


def from_base64(text: str) -> bytes:
    """Decode standard base64 text back to bytes.

    Raises:
        DecodeError: the text contains characters outside the base64 alphabet
            or has invalid padding.
    """
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"invalid base64 text: {e}") from e
