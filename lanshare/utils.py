"""
Utility functions for lanshare
"""

import hashlib
import mimetypes
import os
import re
import time
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Optional
import logging

from .models import HttpRange, MIME_TYPES, DEFAULT_MIME_TYPE

logger = logging.getLogger(__name__)


def get_mime_type(file_path: Path) -> str:
    """Get MIME type for file"""
    suffix = file_path.suffix.lower()

    # Check our custom MIME types first
    if suffix in MIME_TYPES:
        return MIME_TYPES[suffix]

    # Fall back to system mimetypes
    mime_type, _ = mimetypes.guess_type(str(file_path))
    return mime_type or DEFAULT_MIME_TYPE


def get_file_extension(filename: str) -> str:
    """Get file extension in lowercase"""
    return os.path.splitext(filename)[1].lower()


def normalize_path(path: str, sep: str = os.sep) -> str:
    """Map the platform's native separator to '/'

    On POSIX a backslash is an ordinary file name character and is kept.
    """
    if sep == '/':
        return path
    return path.replace(sep, '/')


_BYTE_RANGE_RE = re.compile(r"^\s*(\d*)\s*-\s*(\d*)\s*$")


def parse_http_range(range_header: str) -> Optional[HttpRange]:
    """
    Parse the first range of a Range header

    Only the `bytes` unit is understood. Later ranges of a multi-range
    request are ignored, so the response is always a single part.

    Returns:
        HttpRange, or None when the header is malformed and should be ignored
    """
    unit, has_ranges, ranges = (range_header or "").partition("=")
    if not has_ranges or unit.strip().lower() != "bytes":
        return None

    match = _BYTE_RANGE_RE.match(ranges.split(",", 1)[0])
    if match is None:
        return None

    first, last = match.groups()
    if not first and not last:
        return None
    if not first:
        return HttpRange(suffix_length=int(last))
    return HttpRange(start=int(first), end=int(last) if last else None)


def create_content_range_header(start: int, end: int, total: int) -> str:
    """Create Content-Range header value"""
    return f"bytes {start}-{end}/{total}"


def generate_etag(file_path: Path, stat: os.stat_result) -> str:
    """Generate ETag for file based on path, mtime and size"""
    data = f"{file_path}:{stat.st_mtime_ns}:{stat.st_size}"
    return hashlib.md5(data.encode()).hexdigest()


def format_http_date(timestamp: float) -> str:
    """Format a POSIX timestamp as an RFC 7231 date"""
    return time.strftime("%a, %d %b %Y %H:%M:%S GMT", time.gmtime(timestamp))


def parse_http_date(value: str) -> Optional[float]:
    """Parse an RFC 7231 date header into a POSIX timestamp"""
    if not value:
        return None
    try:
        return parsedate_to_datetime(value).timestamp()
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def format_uptime(seconds: float) -> str:
    """Format elapsed seconds the way Go prints a time.Duration

    Digits past the shown precision are dropped, never rounded up, so a
    later reading never prints smaller than an earlier one.
    """
    micros = max(0, round(seconds * 1_000_000))
    if micros < 1_000_000:
        return f"{micros // 1000}.{micros % 1000 // 100}ms"

    hours, millis = divmod(micros // 1000, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs = f"{millis // 1000}.{millis % 1000:03d}s"
    if hours:
        return f"{hours}h{minutes}m{secs}"
    if minutes:
        return f"{minutes}m{secs}"
    return secs


def file_headers(
    etag: str,
    mtime: float,
    content_type: Optional[str] = None,
    content_length: Optional[int] = None,
) -> dict:
    """Validator and range headers for a download response"""
    headers = {
        "ETag": f'"{etag}"',
        "Last-Modified": format_http_date(mtime),
        "Accept-Ranges": "bytes",
        "Cache-Control": "no-cache",
    }
    if content_type is not None:
        headers["Content-Type"] = content_type
        headers["X-Content-Type-Options"] = "nosniff"
    if content_length is not None:
        headers["Content-Length"] = str(content_length)
    return headers
