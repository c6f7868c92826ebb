"""Security-first path resolution for the served tree."""
import asyncio
import os
import stat
import unicodedata
from pathlib import Path

from mlist.errors import BadRequestError, ForbiddenError, NotFoundError, from_os_error

PRIVATE_MARKER_FILE = ".private"
PASSWORD_MARKER_FILE = ".password"

MARKER_FILES: frozenset[str] = frozenset({PRIVATE_MARKER_FILE, PASSWORD_MARKER_FILE})

# Characters with the Unicode White_Space property. Unlike str.isspace(), this
# leaves out the \x1c-\x1f separators, which are control characters.
UNICODE_WHITESPACE = (
    "\t\n\x0b\x0c\r \x85\xa0\u1680"
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000"
)


def is_marker_name(name: str) -> bool:
    """Check if a filename is a reserved marker file.

    Args:
        name: Bare filename.

    Returns:
        True for ``.password`` and ``.private``.
    """
    return name in MARKER_FILES


def _has_control_char(segment: str) -> bool:
    return any(unicodedata.category(ch) == "Cc" for ch in segment)


def normalize_relative_path(raw: str | None) -> str:
    """Validate a client-supplied relative path.

    Traversal syntax is rejected outright instead of being resolved away.

    Args:
        raw: Untrusted path from a query string, URL or request body.

    Returns:
        The path with segments joined by a single ``/``; ``""`` for the root.

    Raises:
        BadRequestError: If the path is absolute, contains a backslash, an
            empty, ``.`` or ``..`` segment, or a control character.
    """
    path = (raw or "").strip(UNICODE_WHITESPACE)
    if not path or path == "/":
        return ""

    if path.startswith("/"):
        raise BadRequestError("Path must be relative.")

    if "\\" in path:
        raise BadRequestError("Backslash is not allowed in path.")

    segments = []
    for segment in path.split("/"):
        if segment in ("", ".", ".."):
            raise BadRequestError("Invalid path segment.")
        if _has_control_char(segment):
            raise BadRequestError("Path contains disallowed control characters.")
        segments.append(segment)

    return "/".join(segments)


def ensure_not_marker_path(relative_path: str) -> None:
    """Reject paths whose final segment is a marker file.

    Raises:
        NotFoundError: Marker files are indistinguishable from missing files.
    """
    if is_marker_name(relative_path.rsplit("/", 1)[-1]):
        raise NotFoundError("File not found.")


def _lstat(path: Path) -> os.stat_result:
    try:
        return path.lstat()
    except OSError as e:
        raise from_os_error(e, "path") from e


def _check_symlink_segments(root: Path, relative_path: str) -> None:
    if not relative_path:
        return

    cursor = root
    for segment in relative_path.split("/"):
        cursor = cursor / segment
        if stat.S_ISLNK(_lstat(cursor).st_mode):
            raise ForbiddenError("Symbolic links are not allowed.")


def _resolve_existing_path(root: Path, relative_path: str) -> Path:
    _check_symlink_segments(root, relative_path)

    candidate = root / relative_path if relative_path else root
    if stat.S_ISLNK(_lstat(candidate).st_mode):
        raise ForbiddenError("Symbolic links are not allowed.")

    try:
        canonical = Path(os.path.realpath(candidate, strict=True))
    except OSError as e:
        raise from_os_error(e, "path") from e

    if not canonical.is_relative_to(root):
        raise ForbiddenError("Path escapes configured root directory.")

    return canonical


async def resolve_existing_path(root: Path, relative_path: str) -> Path:
    """Resolve a normalized relative path to a canonical path inside root.

    Every segment is checked with ``lstat`` before canonicalization so that
    a symlink planted at any depth is refused, then the canonical result is
    checked against the root again.

    Args:
        root: Canonical root directory.
        relative_path: Output of :func:`normalize_relative_path`.

    Returns:
        Canonical absolute path of an existing entry.

    Raises:
        ForbiddenError: If a symlink is met or the path escapes the root.
        NotFoundError: If the entry does not exist.
    """
    return await asyncio.to_thread(_resolve_existing_path, root, relative_path)


def relative_string_from_root(root: Path, absolute_path: Path) -> str:
    """Express an absolute path as a root-relative posix string.

    Args:
        root: Canonical root directory.
        absolute_path: Path inside the root.

    Returns:
        Root-relative path, ``""`` for the root itself.

    Raises:
        ForbiddenError: If the path is outside the root.
    """
    if absolute_path == root:
        return ""
    try:
        relative = absolute_path.relative_to(root)
    except ValueError as e:
        raise ForbiddenError("Path is outside configured root directory.") from e

    if any(part in ("", ".", "..") for part in relative.parts):
        raise ForbiddenError("Invalid path component.")

    return relative.as_posix()
