"""Exception hierarchy for the EP-X codec.

Every failure the pipeline can surface derives from ``CodecError`` so callers
can map a single base class onto their own responses. Both concrete errors are
also ``ValueError`` subclasses: they describe bad input, never a transient
condition, and retrying with the same input cannot succeed.
"""


class CodecError(Exception):
    """Base exception for all EP-X codec errors."""


class DecodeError(CodecError, ValueError):
    """Input could not be decoded.

    Raised when:
    - source image bytes are corrupt, empty or in an unsupported format
    - a bitmap handed to the reader is truncated or not a 1-bpp BMP
    - base64 text is malformed
    """


class InvalidDimensions(CodecError, ValueError):
    """Target width or height is not a positive integer."""

    def __init__(self, width, height):
        self.width = width
        self.height = height
        super().__init__(f"target size must be positive integers, got {width!r}x{height!r}")
