"""Content type detection"""

import mimetypes
from typing import Callable

MimetypeDetector = Callable[[str, bytes], str]

DEFAULT_MIMETYPE = "application/octet-stream"
TEXT_MIMETYPE = "text/plain"


def _looks_like_text(sample: bytes) -> bool:
    if not sample or b"\x00" in sample:
        return False
    try:
        sample.decode("utf-8")
    except UnicodeDecodeError as err:
        # A multi-byte character may be cut at the end of the sample
        if err.reason != "unexpected end of data":
            return False
    return True


def detect_mimetype(filename: str, sample: bytes) -> str:
    """Guess a content type from a filename and the first bytes of content

    Args:
        filename: Base name or path of the file
        sample: Leading bytes of the content (may be empty)

    Returns:
        A MIME type string, never None
    """
    guessed, _ = mimetypes.guess_type(filename, strict=False)
    if guessed:
        return guessed
    if _looks_like_text(sample):
        return TEXT_MIMETYPE
    return DEFAULT_MIMETYPE
