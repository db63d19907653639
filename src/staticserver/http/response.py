"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

HTTPResponse holds what a handler wants to send. ResponseBuilder is the
fluent way to make one.

=============================================================================
TWO KINDS OF BODY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   IN-MEMORY BODY (body: bytes)                                      │
    │   ────────────────────────────                                      │
    │   Error pages, redirects, multipart range bodies.                   │
    │   Serialized together with the head by to_bytes().                  │
    │                                                                      │
    │   FILE BODY (file_body: FileBody)                                   │
    │   ───────────────────────────────                                   │
    │   An open file plus (offset, length). The connection streams it     │
    │   with socket.sendfile() after the head, so a 2 GB video never      │
    │   has to fit in memory.                                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    HTTP/1.1 206 Partial Content\\r\\n      ┐
    Content-Type: video/mp4\\r\\n           │  to_bytes()
    Content-Range: bytes 0-1023/90000\\r\\n │
    Content-Length: 1024\\r\\n              │
    \\r\\n                                  ┘
    <1024 bytes from the file>           ←  Connection.send_file()

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import BinaryIO, Dict, Optional, Union

from .status_codes import HTTPStatus


@dataclass
class FileBody:
    """A slice of an open file to be streamed as the response body."""

    file: BinaryIO
    offset: int = 0
    length: int = 0

    def close(self) -> None:
        self.file.close()


@dataclass
class HTTPResponse:
    """
    An HTTP response to be sent to the client.

    Use ResponseBuilder or the helpers at the bottom of this module to
    construct one.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    file_body: Optional[FileBody] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {self.status.value} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        """Number of body bytes this response announces."""
        if "Content-Length" in self.headers:
            return int(self.headers["Content-Length"])
        if self.file_body is not None:
            return self.file_body.length
        return len(self.body)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def strip_body(self) -> "HTTPResponse":
        """
        Drop the body but keep the headers describing it.

        Used for HEAD: the client gets the same Content-Length and
        Content-Type a GET would get, just no bytes after the head.
        """
        if self.status.allows_body:
            self.headers.setdefault("Content-Length", str(self.content_length))
        self.body = b""
        self.close()
        return self

    def close(self) -> None:
        """Release the open file, if any."""
        if self.file_body is not None:
            self.file_body.close()
            self.file_body = None

    def to_bytes(self, server_name: str = "static-file-server") -> bytes:
        """
        Serialize the status line, headers and in-memory body.

        A file body is NOT included; the connection streams it separately.

        Args:
            server_name: Value of the Server header.
        """
        response_headers = dict(self.headers)

        # 304 must not announce a body length.
        if self.status.allows_body and "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(self.content_length)

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        head = "\r\n".join(lines).encode("iso-8859-1", errors="replace") + b"\r\n"
        return head + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.PARTIAL_CONTENT)
            .content_type("video/mp4")
            .header("Content-Range", "bytes 0-1023/90000")
            .file(handle, offset=0, length=1024)
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._file_body: Optional[FileBody] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set an in-memory body. Strings are encoded as UTF-8."""
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Plain text body, the way error pages are sent."""
        self._headers["Content-Type"] = "text/plain; charset=utf-8"
        self._headers["X-Content-Type-Options"] = "nosniff"
        return self.body(text)

    def file(self, handle: BinaryIO, offset: int, length: int) -> "ResponseBuilder":
        """Stream `length` bytes of an open file starting at `offset`."""
        self._file_body = FileBody(file=handle, offset=offset, length=length)
        self._headers["Content-Length"] = str(length)
        return self

    def redirect(self, location: str) -> "ResponseBuilder":
        """301 to a location, relative locations are resolved by the client."""
        self._status = HTTPStatus.MOVED_PERMANENTLY
        self._headers["Location"] = location
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            file_body=self._file_body,
        )


# =============================================================================
# HTTP DATES
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an IMF-fixdate (RFC 9110 §5.6.7).

        Sat, 15 Jun 2024 10:00:00 GMT

    Always GMT. Day and month names are fixed English tokens, so this
    does not go through strftime (which is locale dependent).
    """
    dt = dt.astimezone(timezone.utc)
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def parse_http_date(value: str) -> Optional[datetime]:
    """
    Parse an HTTP date header value.

    Returns:
        An aware UTC datetime, or None when the value is not a date.
    """
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """Plain text error page: "<message>\\n"."""
    return ResponseBuilder().status(status).text(message + "\n").build()


def not_found() -> HTTPResponse:
    """The 404 every rejected or missing path gets."""
    return error_response(HTTPStatus.NOT_FOUND, "404 page not found")


def forbidden() -> HTTPResponse:
    return error_response(HTTPStatus.FORBIDDEN, "403 Forbidden")


def internal_error() -> HTTPResponse:
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, "500 Internal Server Error")
