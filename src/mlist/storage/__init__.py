"""Served tree access: path guarding, anchors, listing and byte ranges."""

from mlist.storage.anchors import (
    PrivateAnchor,
    find_private_anchor,
    has_private_hide_marker,
)
from mlist.storage.disposition import content_disposition_inline
from mlist.storage.listing import guess_mime_type, list_directory
from mlist.storage.paths import (
    MARKER_FILES,
    PASSWORD_MARKER_FILE,
    PRIVATE_MARKER_FILE,
    ensure_not_marker_path,
    is_marker_name,
    normalize_relative_path,
    relative_string_from_root,
    resolve_existing_path,
)
from mlist.storage.ranges import (
    ByteRange,
    iter_file_range,
    open_file,
    parse_range_header,
)
