"""Utility functions for blobgate."""

import io
import time
from datetime import datetime, timezone
from typing import BinaryIO, Iterator, Optional, Union

from .constants import COPY_CHUNK_SIZE
from .errors import TransferTimeoutError


def as_reader(payload: Union[BinaryIO, bytes, bytearray, memoryview]) -> BinaryIO:
    """Wrap raw bytes in a stream; pass file-like objects through."""
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(payload))
    return payload


def iter_chunks(
    reader: BinaryIO,
    key: str = "",
    timeout: Optional[float] = None,
    chunk_size: int = COPY_CHUNK_SIZE,
) -> Iterator[bytes]:
    """
    Yield chunks from reader until EOF, enforcing an overall deadline.

    The deadline starts at the first read and is checked after every chunk.

    Raises:
        TransferTimeoutError: If timeout elapses before the stream is drained
    """
    deadline = time.monotonic() + timeout if timeout is not None else None
    for chunk in iter(lambda: reader.read(chunk_size), b""):
        if deadline is not None and time.monotonic() > deadline:
            raise TransferTimeoutError(key, timeout)
        yield chunk


def copy_stream(
    reader: BinaryIO,
    writer: BinaryIO,
    key: str = "",
    timeout: Optional[float] = None,
    chunk_size: int = COPY_CHUNK_SIZE,
) -> int:
    """
    Copy reader to writer in chunks.

    Args:
        reader: Source stream
        writer: Destination stream
        key: Object key, for error messages
        timeout: Maximum seconds for the whole copy (checked between chunks)
        chunk_size: Bytes per read

    Returns:
        Number of bytes copied

    Raises:
        TransferTimeoutError: If timeout elapses before the stream is drained
    """
    total = 0
    for chunk in iter_chunks(reader, key=key, timeout=timeout, chunk_size=chunk_size):
        writer.write(chunk)
        total += len(chunk)
    return total


def read_all(reader: BinaryIO, key: str = "", timeout: Optional[float] = None) -> bytes:
    """Drain a stream into memory under the same timeout rules as copy_stream."""
    buf = io.BytesIO()
    copy_stream(reader, buf, key=key, timeout=timeout)
    return buf.getvalue()


def utc_from_timestamp(ts: float) -> datetime:
    """Timezone-aware UTC datetime from a Unix timestamp."""
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"
