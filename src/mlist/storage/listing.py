"""Single-level directory listing with access annotations."""

import asyncio
import mimetypes
import os
import stat
from dataclasses import dataclass
from pathlib import Path

import structlog

from mlist.auth.sessions import SessionRecord, is_scope_authorized
from mlist.errors import AuthRequiredError, BadRequestError, from_os_error
from mlist.storage.anchors import find_private_anchor, has_private_hide_marker
from mlist.storage.paths import is_marker_name, resolve_existing_path
from mlist.storage.schemas import ListEntry, ListResponse

logger = structlog.get_logger()

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class RawEntry:
    """Directory entry as seen without following symlinks."""

    name: str
    is_dir: bool
    is_file: bool
    is_symlink: bool


def guess_mime_type(name: str) -> str:
    """Guess a MIME type from a filename extension."""
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type or DEFAULT_MIME_TYPE


def _scan_directory(path: Path) -> list[RawEntry]:
    try:
        with os.scandir(path) as it:
            return [
                RawEntry(
                    name=entry.name,
                    is_dir=entry.is_dir(follow_symlinks=False),
                    is_file=entry.is_file(follow_symlinks=False),
                    is_symlink=entry.is_symlink(),
                )
                for entry in it
            ]
    except OSError as e:
        raise from_os_error(e, "directory") from e


def _stat(path: Path, context: str) -> os.stat_result:
    try:
        return path.stat()
    except OSError as e:
        raise from_os_error(e, context) from e


async def _build_entry(
    root: Path,
    relative_path: str,
    raw: RawEntry,
    session: SessionRecord | None,
) -> ListEntry | None:
    entry_path = f"{relative_path}/{raw.name}" if relative_path else raw.name

    resolved = await resolve_existing_path(root, entry_path)
    st = await asyncio.to_thread(_stat, resolved, "directory entry")

    if raw.is_dir and await has_private_hide_marker(resolved):
        return None

    anchor = await find_private_anchor(root, resolved, raw.is_dir)
    requires_auth = anchor is not None
    authorized = anchor is None or is_scope_authorized(session, anchor.scope)

    return ListEntry(
        name=raw.name,
        path=entry_path,
        kind="dir" if raw.is_dir else "file",
        size=st.st_size if raw.is_file else None,
        mtime=int(st.st_mtime),
        mime_type=guess_mime_type(raw.name) if raw.is_file else None,
        requires_auth=requires_auth,
        authorized=authorized,
    )


async def list_directory(
    root: Path,
    relative_path: str,
    session: SessionRecord | None,
) -> ListResponse:
    """List a directory the session is allowed to see.

    Marker files, symlinks, special files and directories hidden by a
    ``.private`` marker are left out. Directories sort first, then entries
    are ordered case-insensitively by name.

    Args:
        root: Canonical root directory.
        relative_path: Normalized, non-marker relative path.
        session: Current valid session, if any.

    Returns:
        Listing with per-entry access annotations.

    Raises:
        BadRequestError: If the path is not a directory.
        AuthRequiredError: If the directory's anchor is not unlocked.
    """
    resolved = await resolve_existing_path(root, relative_path)
    st = await asyncio.to_thread(_stat, resolved, "directory")
    if not stat.S_ISDIR(st.st_mode):
        raise BadRequestError("Path is not a directory.")

    anchor = await find_private_anchor(root, resolved, True)
    if anchor is not None and not is_scope_authorized(session, anchor.scope):
        raise AuthRequiredError()

    entries: list[ListEntry] = []
    for raw in await asyncio.to_thread(_scan_directory, resolved):
        if is_marker_name(raw.name) or raw.is_symlink:
            continue
        if not (raw.is_dir or raw.is_file):
            continue

        entry = await _build_entry(root, relative_path, raw, session)
        if entry is not None:
            entries.append(entry)

    entries.sort(key=lambda e: (0 if e.kind == "dir" else 1, e.name.lower()))

    logger.debug("directory_listed", path=relative_path, entries=len(entries))

    return ListResponse(
        path=relative_path,
        entries=entries,
        requires_auth=anchor is not None,
        authorized=True,
    )
