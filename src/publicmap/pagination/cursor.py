"""
Cursor Pagination Codec

Opaque pagination tokens over offset-based reads of the public snapshot.
"""
import base64
import binascii
from typing import Optional

from config.settings import settings

# Largest offset a signed 64-bit OFFSET clause accepts
MAX_OFFSET = 2 ** 63 - 1


def encode_cursor(offset: int) -> str:
    """Encode a non-negative offset as an opaque URL-safe token."""
    if offset < 0:
        raise ValueError("offset must be non-negative")
    return base64.urlsafe_b64encode(str(offset).encode("ascii")).decode("ascii")


def decode_cursor(cursor: Optional[str]) -> int:
    """
    Decode a token back to an offset.

    Missing or malformed tokens, and offsets outside [0, MAX_OFFSET], decode
    to 0 instead of failing the request.
    """
    if not cursor:
        return 0
    try:
        decoded = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("ascii")
        offset = int(decoded)
    except (binascii.Error, UnicodeError, ValueError):
        return 0
    return offset if 0 <= offset <= MAX_OFFSET else 0


def clamp_limit(
    limit: Optional[int],
    default: int = None,
    maximum: int = None
) -> int:
    """Clamp a requested page size to [1, maximum], defaulting when absent."""
    default = default or settings.map_default_limit
    maximum = maximum or settings.map_max_limit
    if limit is None:
        return default
    return min(max(1, int(limit)), maximum)
