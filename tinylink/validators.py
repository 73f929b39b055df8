"""Pure syntax checks for target URLs and short codes."""

import re
from typing import Optional
from urllib.parse import urlsplit, unquote

ALLOWED_SCHEMES = ("http", "https")

# Letters, digits, space and @ _ + = - . $ % & !  ("<" and ">" never, codes end up in HTML)
CODE_RE = re.compile(r"[A-Za-z0-9 _@+=\-.$%&!]{6,30}")

_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_WHITESPACE_RE = re.compile(r"[\s\x00-\x1f\x7f]")


def is_valid_target_url(url) -> bool:
    """Return True for an absolute http(s) URL with a host."""
    if not url or not isinstance(url, str):
        return False
    if _WHITESPACE_RE.search(url):
        return False
    try:
        parts = urlsplit(url)
        # .port raises ValueError for a non-numeric or out of range port
        parts.port
    except ValueError:
        return False
    return parts.scheme in ALLOWED_SCHEMES and bool(parts.hostname)


def is_valid_code(code) -> bool:
    if not isinstance(code, str):
        return False
    return CODE_RE.fullmatch(code) is not None


def decode_code(raw: str) -> Optional[str]:
    """Percent-decode a raw path segment.

    Returns None when the segment is empty, has a stray ``%`` or decodes to
    bytes that are not UTF-8.
    """
    if not raw or _BAD_ESCAPE_RE.search(raw):
        return None
    try:
        return unquote(raw, errors="strict")
    except UnicodeDecodeError:
        return None
