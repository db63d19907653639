"""
=============================================================================
FILE SERVING
=============================================================================

serve_file(request, path) turns one filesystem path into a complete
HTTP response. The rest of the server only decides WHICH path to serve;
everything about HOW it is served lives here.

=============================================================================
FLOW
=============================================================================

    serve_file(request, "/var/www//docs/")
        │
        ├──► ".." segment in URL?             → 400 invalid URL path
        ├──► URL ends with /index.html?       → 301 ./
        ├──► stat()                           → 404 / 403 / 500 on error
        │
        ├──► DIRECTORY
        │       URL without trailing '/'      → 301 <name>/
        │       index.html present            → serve it (continue below)
        │       otherwise                     → 404 (no listings rendered)
        │
        ├──► FILE, URL with trailing '/'      → 301 ../<name>
        │
        ├──► PRECONDITIONS
        │       If-Match / If-Unmodified-Since → 412
        │       If-None-Match / If-Modified-Since → 304
        │       If-Range mismatch             → Range ignored
        │
        └──► CONTENT
                Range → 206 (single) or 206 multipart/byteranges
                otherwise → 200, body streamed from the open file

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The dispatcher builds the path by concatenation, so the only thing that
keeps "GET /../../etc/passwd" inside the folder is the ".." check at the
top of serve_file(). It looks at path SEGMENTS of the request URL:

    /a/../b        → rejected    ("..", a segment)
    /a\\..\\b        → rejected    (backslash counts as a separator)
    /notes..txt    → allowed     (".." inside a name is fine)

=============================================================================
CACHING HEADERS
=============================================================================

    Last-Modified: Sat, 15 Jun 2024 10:00:00 GMT   (mtime, whole seconds)
    ETag: "1718445600-5120"                         (mtime-size)

Both are validators only. No Cache-Control or Expires is emitted.

=============================================================================
"""

import logging
import os
import posixpath
import re
import stat
import uuid
from datetime import datetime, timezone
from typing import BinaryIO, Optional
from urllib.parse import quote

from ..http.mime_types import SNIFF_LENGTH, get_content_type, sniff_content_type
from ..http.ranges import InvalidRangeError, NoOverlapError, parse_range, sum_ranges_size
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    error_response, not_found, forbidden, internal_error,
    format_http_date, parse_http_date,
)


logger = logging.getLogger(__name__)


INDEX_PAGE = "index.html"

_ETAG_PATTERN = re.compile(r'(?:W/)?"[^"]*"|\*')


# =============================================================================
# ENTRY POINT
# =============================================================================

def serve_file(request: HTTPRequest, name: str) -> HTTPResponse:
    """
    Serve the file (or directory index) at `name` for `request`.

    Args:
        request: The parsed request. Its path drives redirects and the
                 ".." check; its headers drive ranges and preconditions.
        name: Filesystem path chosen by the path resolver.

    Returns:
        A response. On 200/206 with a single part, the body is an open
        file that the caller must send (or close).
    """
    url_path = request.path

    if contains_dot_dot(url_path):
        logger.warning(f"Rejected path with '..' segment: {url_path}")
        return error_response(HTTPStatus.BAD_REQUEST, "invalid URL path")

    if url_path.endswith("/" + INDEX_PAGE):
        return _local_redirect(request, "./")

    try:
        info = os.stat(name)
    except OSError as e:
        return _error_from_os(e, name)

    if stat.S_ISDIR(info.st_mode):
        if not url_path.endswith("/"):
            return _local_redirect(request, posixpath.basename(url_path) + "/")

        name = name.rstrip("/") + "/" + INDEX_PAGE
        try:
            info = os.stat(name)
        except OSError:
            return not_found()
        if not stat.S_ISREG(info.st_mode):
            return not_found()

    elif url_path.endswith("/"):
        return _local_redirect(request, "../" + posixpath.basename(url_path.rstrip("/")))

    try:
        handle = open(name, "rb")
    except OSError as e:
        return _error_from_os(e, name)

    try:
        return _serve_content(request, handle, name, info)
    except Exception:
        handle.close()
        raise


def contains_dot_dot(path: str) -> bool:
    """True if any '/'- or '\\'-separated segment of path is exactly '..'."""
    if ".." not in path:
        return False
    return ".." in re.split(r"[/\\]", path)


# =============================================================================
# CONTENT
# =============================================================================

def _serve_content(
    request: HTTPRequest,
    handle: BinaryIO,
    name: str,
    info: os.stat_result,
) -> HTTPResponse:
    """Build the 200/206/304/412/416 response for an open regular file."""
    size = info.st_size
    mtime = _modtime(info)

    headers = {
        "Last-Modified": format_http_date(mtime),
        "ETag": f'"{int(info.st_mtime)}-{size}"',
    }

    early, range_header = _check_preconditions(request, headers, mtime)
    if early is not None:
        handle.close()
        return early

    content_type = get_content_type(name)
    if content_type is None:
        content_type = sniff_content_type(handle.read(SNIFF_LENGTH))
        handle.seek(0)

    try:
        ranges = parse_range(range_header, size)
    except InvalidRangeError as e:
        handle.close()
        response = error_response(HTTPStatus.RANGE_NOT_SATISFIABLE, str(e))
        if isinstance(e, NoOverlapError):
            response.headers["Content-Range"] = f"bytes */{size}"
        return response

    # Asking for more than the whole file is treated as asking for the file.
    if sum_ranges_size(ranges) > size:
        ranges = []

    builder = ResponseBuilder().headers(headers).header("Accept-Ranges", "bytes")

    if len(ranges) == 1:
        byte_range = ranges[0]
        return (builder
            .status(HTTPStatus.PARTIAL_CONTENT)
            .content_type(content_type)
            .header("Content-Range", byte_range.content_range(size))
            .file(handle, offset=byte_range.start, length=byte_range.length)
            .build())

    if len(ranges) > 1:
        boundary = uuid.uuid4().hex
        try:
            body = _multipart_body(handle, ranges, content_type, size, boundary)
        finally:
            handle.close()
        return (builder
            .status(HTTPStatus.PARTIAL_CONTENT)
            .content_type(f"multipart/byteranges; boundary={boundary}")
            .body(body)
            .build())

    return (builder
        .status(HTTPStatus.OK)
        .content_type(content_type)
        .file(handle, offset=0, length=size)
        .build())


def _multipart_body(handle, ranges, content_type: str, size: int, boundary: str) -> bytes:
    """
    Assemble a multipart/byteranges body.

        --<boundary>
        Content-Range: bytes 0-0/100
        Content-Type: text/plain

        <bytes>
        --<boundary>
        ...
        --<boundary>--
    """
    parts = []
    for index, byte_range in enumerate(ranges):
        handle.seek(byte_range.start)
        data = handle.read(byte_range.length)
        lead = b"" if index == 0 else b"\r\n"
        part_head = (
            f"--{boundary}\r\n"
            f"Content-Range: {byte_range.content_range(size)}\r\n"
            f"Content-Type: {content_type}\r\n"
            "\r\n"
        ).encode("latin-1")
        parts.append(lead + part_head + data)
    parts.append(f"\r\n--{boundary}--\r\n".encode("latin-1"))
    return b"".join(parts)


# =============================================================================
# CONDITIONAL REQUESTS (RFC 9110 §13)
# =============================================================================

def _check_preconditions(request: HTTPRequest, headers: dict, mtime: datetime):
    """
    Evaluate the If-* headers.

    Returns:
        (response, range_header). response is a finished 304/412 when the
        preconditions end the request, else None. range_header is the
        Range header to honour ("" when absent or voided by If-Range).
    """
    etag = headers["ETag"]

    result = _check_if_match(request, etag)
    if result is None:
        result = _check_if_unmodified_since(request, mtime)
    if result is False:
        return ResponseBuilder().status(HTTPStatus.PRECONDITION_FAILED).build(), ""

    none_match = _check_if_none_match(request, etag)
    if none_match is False:
        if request.method in ("GET", "HEAD"):
            return _not_modified(headers), ""
        return ResponseBuilder().status(HTTPStatus.PRECONDITION_FAILED).build(), ""
    if none_match is None and _check_if_modified_since(request, mtime) is False:
        return _not_modified(headers), ""

    range_header = request.get_header("range")
    if range_header and _check_if_range(request, etag, mtime) is False:
        range_header = ""
    return None, range_header


def _check_if_match(request: HTTPRequest, etag: str) -> Optional[bool]:
    header = request.get_header("if-match")
    if not header:
        return None
    for candidate in _ETAG_PATTERN.findall(header):
        if candidate == "*" or _strong_match(candidate, etag):
            return True
    return False


def _check_if_unmodified_since(request: HTTPRequest, mtime: datetime) -> Optional[bool]:
    since = parse_http_date(request.get_header("if-unmodified-since"))
    if since is None or _is_zero_time(mtime):
        return None
    return mtime <= since


def _check_if_none_match(request: HTTPRequest, etag: str) -> Optional[bool]:
    """False means "matched": the client's copy is current."""
    header = request.get_header("if-none-match")
    if not header:
        return None
    for candidate in _ETAG_PATTERN.findall(header):
        if candidate == "*" or _weak_match(candidate, etag):
            return False
    return True


def _check_if_modified_since(request: HTTPRequest, mtime: datetime) -> Optional[bool]:
    if request.method not in ("GET", "HEAD"):
        return None
    since = parse_http_date(request.get_header("if-modified-since"))
    if since is None or _is_zero_time(mtime):
        return None
    return mtime > since


def _check_if_range(request: HTTPRequest, etag: str, mtime: datetime) -> Optional[bool]:
    if request.method not in ("GET", "HEAD"):
        return None
    header = request.get_header("if-range")
    if not header:
        return None
    if header.startswith('"') or header.startswith("W/"):
        return _strong_match(header, etag)
    since = parse_http_date(header)
    if since is None or _is_zero_time(mtime):
        return False
    return int(mtime.timestamp()) == int(since.timestamp())


def _strong_match(a: str, b: str) -> bool:
    return a == b and not a.startswith("W/")


def _weak_match(a: str, b: str) -> bool:
    return a.removeprefix("W/") == b.removeprefix("W/")


def _not_modified(headers: dict) -> HTTPResponse:
    """304 keeps the validators, drops entity headers."""
    kept = dict(headers)
    if "ETag" in kept:
        kept.pop("Last-Modified", None)
    return ResponseBuilder().status(HTTPStatus.NOT_MODIFIED).headers(kept).build()


# =============================================================================
# HELPERS
# =============================================================================

def _modtime(info: os.stat_result) -> datetime:
    """mtime as an aware UTC datetime, truncated to whole seconds."""
    return datetime.fromtimestamp(int(info.st_mtime), tz=timezone.utc)


def _is_zero_time(mtime: datetime) -> bool:
    return mtime.timestamp() <= 0


def _local_redirect(request: HTTPRequest, location: str) -> HTTPResponse:
    """Relative 301, percent-encoded, keeping the query string."""
    location = quote(location)
    if request.query:
        location += "?" + request.query
    return ResponseBuilder().redirect(location).build()


def _error_from_os(error: OSError, name: str) -> HTTPResponse:
    if isinstance(error, (FileNotFoundError, NotADirectoryError)):
        return not_found()
    if isinstance(error, PermissionError):
        return forbidden()
    logger.error(f"Error serving {name}: {error}")
    return internal_error()
