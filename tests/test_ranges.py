"""Range header parsing and bounded streaming tests."""

import asyncio
from pathlib import Path

import pytest

from mlist.errors import ForbiddenError, InvalidRangeError, NotFoundError
from mlist.storage.ranges import ByteRange, iter_file_range, open_file, parse_range_header


def test_open_ended_range() -> None:
    byte_range = parse_range_header("bytes=10-", 100)
    assert (byte_range.start, byte_range.end, byte_range.length) == (10, 99, 90)


def test_suffix_range() -> None:
    byte_range = parse_range_header("bytes=-20", 100)
    assert (byte_range.start, byte_range.end) == (80, 99)


def test_suffix_longer_than_file_selects_whole_file() -> None:
    assert parse_range_header("bytes=-500", 100) == ByteRange(start=0, end=99)


def test_closed_range() -> None:
    assert parse_range_header("bytes=0-0", 100) == ByteRange(start=0, end=0)
    assert parse_range_header(" bytes=5-9 ", 100) == ByteRange(start=5, end=9)


def test_end_past_eof_is_clamped() -> None:
    assert parse_range_header("bytes=90-200", 100) == ByteRange(start=90, end=99)


@pytest.mark.parametrize(
    "header",
    [
        "bytes=100-120",
        "bytes=0-10,20-30",
        "bytes=-0",
        "bytes=20-10",
        "bytes=5",
        "bytes=",
        "bytes=a-b",
        "bytes=+5-",
        "bytes=--5",
        "bytes=1-2-3",
        "items=0-10",
        "0-10",
    ],
)
def test_rejected_ranges(header: str) -> None:
    with pytest.raises(InvalidRangeError):
        parse_range_header(header, 100)


def test_empty_file_has_no_satisfiable_range() -> None:
    with pytest.raises(InvalidRangeError):
        parse_range_header("bytes=0-", 0)


def test_content_range() -> None:
    assert ByteRange(start=10, end=19).content_range(100) == "bytes 10-19/100"


def _collect(path: Path, start: int, length: int, chunk_size: int) -> list[bytes]:
    async def scenario() -> list[bytes]:
        file = await open_file(path)
        return [chunk async for chunk in iter_file_range(file, start, length, chunk_size)]

    return asyncio.run(scenario())


def test_iter_file_range_emits_exact_window(tmp_path: Path) -> None:
    data = bytes(range(100))
    path = tmp_path / "blob.bin"
    path.write_bytes(data)

    chunks = _collect(path, 10, 25, chunk_size=7)

    assert b"".join(chunks) == data[10:35]
    assert max(len(c) for c in chunks) <= 7


def test_iter_file_range_stops_at_eof(tmp_path: Path) -> None:
    data = bytes(range(100))
    path = tmp_path / "blob.bin"
    path.write_bytes(data)

    assert b"".join(_collect(path, 90, 50, chunk_size=64)) == data[90:]


def test_closing_stream_early_releases_handle(tmp_path: Path) -> None:
    """A consumer that stops after one chunk leaves no open file behind."""
    path = tmp_path / "blob.bin"
    path.write_bytes(bytes(range(256)) * 8)

    async def scenario() -> tuple[bytes, bool, bool]:
        file = await open_file(path)
        stream = iter_file_range(file, 0, 2048, chunk_size=16)
        first = await stream.__anext__()
        open_mid_stream = not file.closed
        await stream.aclose()
        return first, open_mid_stream, file.closed

    first, open_mid_stream, closed = asyncio.run(scenario())

    assert first == bytes(range(16))
    assert open_mid_stream
    assert closed


def test_full_read_releases_handle(tmp_path: Path) -> None:
    path = tmp_path / "blob.bin"
    path.write_bytes(b"abc")

    async def scenario() -> bool:
        file = await open_file(path)
        assert b"".join([c async for c in iter_file_range(file, 0, 3)]) == b"abc"
        return file.closed

    assert asyncio.run(scenario())


def test_open_missing_file(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        asyncio.run(open_file(tmp_path / "gone.bin"))


def test_open_refuses_symlink(tmp_path: Path) -> None:
    target = tmp_path / "real.bin"
    target.write_bytes(b"x")
    link = tmp_path / "link.bin"
    link.symlink_to(target)

    with pytest.raises(ForbiddenError):
        asyncio.run(open_file(link))
