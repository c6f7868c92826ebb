"""Password and hide marker discovery along a path's ancestor chain."""
import asyncio
import os
import stat
from dataclasses import dataclass
from pathlib import Path

import aiofiles

from mlist.errors import ForbiddenError, from_os_error
from mlist.storage.paths import (
    PASSWORD_MARKER_FILE,
    PRIVATE_MARKER_FILE,
    relative_string_from_root,
)

O_NOFOLLOW = getattr(os, "O_NOFOLLOW", 0)


@dataclass(frozen=True)
class PrivateAnchor:
    """Directory whose password marker governs access to a target.

    Attributes:
        scope: Root-relative path of the anchor directory, ``""`` for root.
        password: Trimmed marker contents.
        marker_file: Name of the marker that produced the anchor.
    """

    scope: str
    password: str
    marker_file: str = PASSWORD_MARKER_FILE


def _nofollow_opener(path: str, flags: int) -> int:
    return os.open(path, flags | O_NOFOLLOW)


def _marker_exists(marker_path: Path) -> bool:
    try:
        st = marker_path.lstat()
    except (FileNotFoundError, NotADirectoryError):
        return False
    except OSError as e:
        raise from_os_error(e, "marker file") from e

    if stat.S_ISLNK(st.st_mode):
        raise ForbiddenError("Private marker file cannot be a symbolic link.")
    if not stat.S_ISREG(st.st_mode):
        raise ForbiddenError("Private marker file must be a regular file.")
    return True


async def marker_exists(directory: Path, marker_name: str) -> bool:
    """Check for a marker file in a directory.

    Args:
        directory: Directory to inspect.
        marker_name: Marker filename.

    Returns:
        True if the marker is present as a regular file.

    Raises:
        ForbiddenError: If the marker is a symlink or not a regular file.
    """
    return await asyncio.to_thread(_marker_exists, directory / marker_name)


async def read_marker_password(directory: Path) -> str | None:
    """Read the password marker of a directory, if any.

    Returns:
        Trimmed marker contents, or None when the directory has no marker.
    """
    if not await marker_exists(directory, PASSWORD_MARKER_FILE):
        return None

    marker_path = directory / PASSWORD_MARKER_FILE
    try:
        async with aiofiles.open(
            marker_path, encoding="utf-8", opener=_nofollow_opener
        ) as f:
            raw = await f.read()
    except UnicodeDecodeError as e:
        raise ForbiddenError("Private marker file is not valid UTF-8.") from e
    except OSError as e:
        raise from_os_error(e, "marker file") from e

    return raw.strip()


def _parent_within_root(current: Path, root: Path) -> Path:
    parent = current.parent
    if parent == current or not parent.is_relative_to(root):
        raise ForbiddenError("Path is outside configured root directory.")
    return parent


async def find_private_anchor(
    root: Path,
    target: Path,
    target_is_dir: bool,
) -> PrivateAnchor | None:
    """Find the nearest ancestor-or-self directory carrying a password.

    Markers are re-read on every call so edits apply immediately.

    Args:
        root: Canonical root directory.
        target: Canonical path being accessed.
        target_is_dir: Whether ``target`` is a directory; files start the
            walk at their parent.

    Returns:
        The nearest anchor, or None if the target is public.

    Raises:
        ForbiddenError: If the target or a walked parent is outside the root,
            or a marker file is malformed.
    """
    if not target.is_relative_to(root):
        raise ForbiddenError("Path is outside configured root directory.")

    current = target if target_is_dir else target.parent
    if not current.is_relative_to(root):
        raise ForbiddenError("Path is outside configured root directory.")

    while True:
        password = await read_marker_password(current)
        if password is not None:
            return PrivateAnchor(
                scope=relative_string_from_root(root, current),
                password=password,
            )

        if current == root:
            return None

        current = _parent_within_root(current, root)


async def has_private_hide_marker(directory: Path) -> bool:
    """Check whether a directory hides itself from its parent's listing."""
    return await marker_exists(directory, PRIVATE_MARKER_FILE)
