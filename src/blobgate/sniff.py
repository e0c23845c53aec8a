"""Magic-number based content type detection.

Stored hints are never trusted; the content type is always derived from the
first bytes of the object.
"""

import logging
from pathlib import Path

import filetype

from .constants import DEFAULT_CONTENT_TYPE, SNIFF_LEN, TEXT_CONTENT_TYPE

logger = logging.getLogger(__name__)

# Bytes that never appear in plain text (everything below 0x20 except TAB, LF, FF, CR, ESC)
_BINARY_BYTES = bytes(b for b in range(0x20) if b not in (0x09, 0x0A, 0x0C, 0x0D, 0x1B))


def _looks_like_text(head: bytes) -> bool:
    if any(b in _BINARY_BYTES for b in head):
        return False
    try:
        head.decode("utf-8")
    except UnicodeDecodeError as e:
        # A multi-byte sequence may be cut at the sniff boundary
        return e.start >= len(head) - 3 and e.reason == "unexpected end of data"
    return True


def detect_content_type(head: bytes) -> str:
    """
    Detect the content type of a payload from its leading bytes.

    Args:
        head: Leading bytes of the object (only the first 512 are considered)

    Returns:
        MIME type; ``text/plain; charset=utf-8`` for plain text and
        ``application/octet-stream`` when detection is inconclusive
        (including an empty payload)
    """
    head = bytes(head[:SNIFF_LEN])
    if not head:
        return DEFAULT_CONTENT_TYPE
    kind = filetype.guess_mime(head)
    if kind:
        return kind
    if _looks_like_text(head):
        return TEXT_CONTENT_TYPE
    return DEFAULT_CONTENT_TYPE


def sniff_file(path: Path) -> str:
    """Detect a file's content type, falling back to octet-stream if it cannot be read."""
    try:
        with open(path, "rb") as f:
            head = f.read(SNIFF_LEN)
    except OSError as e:
        logger.debug("Could not open %s for sniffing: %s", path, e)
        return DEFAULT_CONTENT_TYPE
    return detect_content_type(head)
