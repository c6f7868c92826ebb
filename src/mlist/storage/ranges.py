"""Single byte-range parsing and bounded file streaming."""
import os
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

import aiofiles
from aiofiles.threadpool.binary import AsyncBufferedReader

from mlist.errors import InvalidRangeError, from_os_error

CHUNK_SIZE = 64 * 1024

_DIGITS = re.compile(r"[0-9]+")

O_NOFOLLOW = getattr(os, "O_NOFOLLOW", 0)


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte window into a file of known size."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, file_size: int) -> str:
        """Format the Content-Range header value."""
        return f"bytes {self.start}-{self.end}/{file_size}"


def _parse_offset(value: str, message: str) -> int:
    if not _DIGITS.fullmatch(value):
        raise InvalidRangeError(message)
    return int(value)


def parse_range_header(header_value: str, file_size: int) -> ByteRange:
    """Parse a single ``bytes=`` range against a file size.

    Supported shapes are ``N-``, ``N-M`` and the suffix form ``-N``. A suffix
    longer than the file selects the whole file, and an end past EOF is
    clamped to the last byte.

    Args:
        header_value: Raw Range header.
        file_size: Size of the file in bytes.

    Returns:
        A window satisfying ``0 <= start <= end < file_size``.

    Raises:
        InvalidRangeError: If the file is empty, the header is malformed,
            names several ranges, or cannot be satisfied.
    """
    if file_size == 0:
        raise InvalidRangeError("Range request cannot be satisfied for an empty file.")

    raw = header_value.strip()
    if not raw.startswith("bytes="):
        raise InvalidRangeError("Only bytes ranges are supported.")
    raw_range = raw[len("bytes="):]

    if "," in raw_range:
        raise InvalidRangeError("Multiple ranges are not supported.")

    start_part, sep, end_part = raw_range.partition("-")
    if not sep:
        raise InvalidRangeError("Malformed Range header.")

    if not start_part:
        suffix_len = _parse_offset(end_part, "Malformed suffix byte range.")
        if suffix_len == 0:
            raise InvalidRangeError("Suffix byte range must be greater than zero.")
        read_len = min(suffix_len, file_size)
        return ByteRange(start=file_size - read_len, end=file_size - 1)

    start = _parse_offset(start_part, "Malformed start byte range.")
    if start >= file_size:
        raise InvalidRangeError("Range start is beyond end of file.")

    if end_part:
        end = _parse_offset(end_part, "Malformed end byte range.")
    else:
        end = file_size - 1

    end = min(end, file_size - 1)
    if end < start:
        raise InvalidRangeError("Range end cannot be smaller than range start.")

    return ByteRange(start=start, end=end)


def _nofollow_opener(path: str, flags: int) -> int:
    return os.open(path, flags | O_NOFOLLOW)


async def open_file(path: Path) -> AsyncBufferedReader:
    """Open a regular file for streaming without following a final symlink.

    Opening happens before any response is started, so a file that vanished
    or was swapped since it was checked still yields a proper error.

    Args:
        path: Canonical path of a regular file.

    Returns:
        Open async binary handle. The caller owns it until it is passed to
        :func:`iter_file_range`.

    Raises:
        NotFoundError: If the file no longer exists.
        ForbiddenError: If it is unreadable or has become a symlink.
    """
    try:
        return await aiofiles.open(path, "rb", opener=_nofollow_opener)
    except OSError as e:
        raise from_os_error(e, "file") from e


async def iter_file_range(
    file: AsyncBufferedReader,
    start: int,
    length: int,
    chunk_size: int = CHUNK_SIZE,
) -> AsyncIterator[bytes]:
    """Stream exactly ``length`` bytes of an open file starting at ``start``.

    The generator owns the handle and closes it as soon as the consumer
    stops iterating, which includes the client disconnecting mid-stream.

    Args:
        file: Handle from :func:`open_file`.
        start: First byte offset.
        length: Number of bytes to emit.
        chunk_size: Maximum size of each yielded chunk.

    Yields:
        File content chunks; fewer bytes overall only if the file shrank.
    """
    try:
        await file.seek(start)
        remaining = length
        while remaining > 0:
            data = await file.read(min(chunk_size, remaining))
            if not data:
                break
            remaining -= len(data)
            yield data
    finally:
        await file.close()
