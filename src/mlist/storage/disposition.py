"""Content-Disposition header encoding for arbitrary filenames."""

from mlist.storage.paths import UNICODE_WHITESPACE

RFC5987_ATTR_EXTRA: frozenset[int] = frozenset(b"!#$&+-.^_`|~")


def ascii_filename_fallback(name: str) -> str:
    """Build the quoted ASCII ``filename`` parameter for legacy clients.

    Args:
        name: Original filename.

    Returns:
        Printable ASCII with quotes, backslashes, controls and non-ASCII
        replaced by ``_`` (whitespace by a space); ``file`` if nothing is left.
    """
    out = []
    for ch in name:
        if ch.isascii() and ch.isprintable() and ch not in ('"', "\\"):
            out.append(ch)
        elif ch in UNICODE_WHITESPACE:
            out.append(" ")
        else:
            out.append("_")
    return "".join(out).strip() or "file"


def _escape_quoted_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _is_attr_char(byte: int) -> bool:
    return (
        (0x30 <= byte <= 0x39)
        or (0x41 <= byte <= 0x5A)
        or (0x61 <= byte <= 0x7A)
        or byte in RFC5987_ATTR_EXTRA
    )


def rfc5987_encode(name: str) -> str:
    """Percent-encode a filename for the ``filename*`` parameter."""
    return "".join(
        chr(byte) if _is_attr_char(byte) else f"%{byte:02X}"
        for byte in name.encode("utf-8")
    )


def content_disposition_inline(name: str) -> str:
    """Produce an inline Content-Disposition with both filename forms.

    Args:
        name: Original filename.

    Returns:
        Header value such as
        ``inline; filename="a.txt"; filename*=UTF-8''a.txt``.
    """
    fallback = _escape_quoted_string(ascii_filename_fallback(name))
    return f"inline; filename=\"{fallback}\"; filename*=UTF-8''{rfc5987_encode(name)}"
