"""Directory listing and file streaming endpoints."""
import asyncio
import os
import stat
from pathlib import Path

import structlog
from fastapi import APIRouter, Header, Query, Request
from fastapi.responses import StreamingResponse

from mlist.auth import current_session, is_scope_authorized
from mlist.config import Settings
from mlist.errors import AuthRequiredError, BadRequestError, NotFoundError, from_os_error
from mlist.storage import (
    content_disposition_inline,
    ensure_not_marker_path,
    find_private_anchor,
    guess_mime_type,
    is_marker_name,
    iter_file_range,
    list_directory,
    normalize_relative_path,
    open_file,
    parse_range_header,
    resolve_existing_path,
)
from mlist.storage.schemas import ErrorResponse, ListResponse

logger = structlog.get_logger()

router = APIRouter(tags=["files"])

ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.get(
    "/api/list",
    response_model=ListResponse,
    responses=ERROR_RESPONSES,
    summary="List a directory",
    description="Returns directories first, then files, sorted case-insensitively.",
)
async def list_path(
    request: Request,
    path: str | None = Query(default=None, description="Path relative to the root"),
) -> ListResponse:
    """List a directory under the served root.

    Args:
        request: FastAPI request (provides access to app state).
        path: Relative directory path; empty or ``/`` for the root.

    Returns:
        Directory listing with access annotations.
    """
    settings: Settings = request.app.state.settings
    relative_path = normalize_relative_path(path)
    ensure_not_marker_path(relative_path)

    session = await current_session(request)
    return await list_directory(settings.root_dir, relative_path, session)


@router.get(
    "/api/file",
    response_class=StreamingResponse,
    responses={**ERROR_RESPONSES, 416: {"model": ErrorResponse}},
    summary="Stream a file",
)
async def get_file(
    request: Request,
    path: str | None = Query(default=None, description="Path relative to the root"),
    range_header: str | None = Header(default=None, alias="Range"),
) -> StreamingResponse:
    """Stream a file by query parameter, honoring a single Range."""
    relative_path = normalize_relative_path(path)
    return await serve_file(request, relative_path, range_header)


@router.get(
    "/d/{path:path}",
    response_class=StreamingResponse,
    responses={**ERROR_RESPONSES, 416: {"model": ErrorResponse}},
    summary="Stream a file by direct link",
)
async def get_direct_file(
    request: Request,
    path: str,
    range_header: str | None = Header(default=None, alias="Range"),
) -> StreamingResponse:
    """Stream a file addressed in the URL path, for shareable deep links."""
    relative_path = normalize_relative_path(path)
    return await serve_file(request, relative_path, range_header)


def _stat(path: Path) -> os.stat_result:
    try:
        return path.stat()
    except OSError as e:
        raise from_os_error(e, "file") from e


async def serve_file(
    request: Request,
    relative_path: str,
    range_header: str | None,
) -> StreamingResponse:
    """Build a streaming response for a protected or public file.

    Args:
        request: Incoming request.
        relative_path: Normalized relative path.
        range_header: Raw Range header, if sent.

    Returns:
        200 with the full body, or 206 with the requested window.

    Raises:
        BadRequestError: If the path is empty or not a regular file.
        NotFoundError: If the path is missing or names a marker file.
        ForbiddenError: If the file became unreadable or a symlink before
            it was opened.
        AuthRequiredError: If the file's anchor is not unlocked.
        InvalidRangeError: If the Range header cannot be satisfied.
    """
    ensure_not_marker_path(relative_path)
    if not relative_path:
        raise BadRequestError("Path must reference a file.")

    settings: Settings = request.app.state.settings
    root = settings.root_dir

    resolved = await resolve_existing_path(root, relative_path)
    st = await asyncio.to_thread(_stat, resolved)
    if not stat.S_ISREG(st.st_mode):
        raise BadRequestError("Path is not a file.")

    if is_marker_name(resolved.name):
        raise NotFoundError("File not found.")

    session = await current_session(request)
    anchor = await find_private_anchor(root, resolved, False)
    if anchor is not None and not is_scope_authorized(session, anchor.scope):
        raise AuthRequiredError()

    file_size = st.st_size
    headers = {
        "Content-Disposition": content_disposition_inline(resolved.name),
        "Accept-Ranges": "bytes",
    }

    if range_header is not None:
        byte_range = parse_range_header(range_header, file_size)
        start, length = byte_range.start, byte_range.length
        status_code = 206
        headers["Content-Range"] = byte_range.content_range(file_size)
    else:
        start, length = 0, file_size
        status_code = 200
    headers["Content-Length"] = str(length)

    file = await open_file(resolved)

    logger.debug("file_stream_started", path=relative_path, status=status_code, length=length)

    return StreamingResponse(
        iter_file_range(file, start, length),
        status_code=status_code,
        headers=headers,
        media_type=guess_mime_type(resolved.name),
    )
