"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes read from a connection into an HTTPRequest.

    GET /my/stuff/my%20file.txt?v=2 HTTP/1.1\\r\\n      ← request line
    Host: my.machine\\r\\n                               ← headers
    Range: bytes=0-99\\r\\n
    \\r\\n                                               ← end of headers

                    │ RequestParser.parse()
                    ▼

    HTTPRequest(method="GET",
                path="/my/stuff/my file.txt",     ← percent-decoded
                query="v=2",
                version="HTTP/1.1",
                headers={"host": "my.machine", "range": "bytes=0-99"})

=============================================================================
WHAT THE PARSER DOES NOT DO
=============================================================================

The decoded path is handed on verbatim: no normalization, no ".."
collapsing, no trailing-slash fixing. Whether a request is a directory
request is decided by its trailing '/', and the file server applies the
traversal check itself. Rewriting the path here would change both.

=============================================================================
PARSE ERRORS
=============================================================================

    400 Bad Request                 malformed request line or headers
    405 Method Not Allowed          unknown method token
    413 Payload Too Large           request bigger than the configured limit
    505 HTTP Version Not Supported  anything but HTTP/1.0 or HTTP/1.1

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import unquote, urlsplit


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code that should be sent back to the client.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Header names are stored lowercase, because HTTP header names are
    case-insensitive.
    """

    method: str
    path: str                                   # Decoded path, no query string
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query: str = ""                             # Raw query string, without '?'
    target: str = ""                            # Request target as sent
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def is_keep_alive(self) -> bool:
        """
        Should the connection stay open after the response?

        HTTP/1.1 keeps alive unless "Connection: close".
        HTTP/1.0 closes unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    Usage:
        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(raw_bytes, ("10.0.0.5", 51234))
    """

    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    # METHOD SP REQUEST-TARGET SP HTTP-VERSION
    REQUEST_LINE_PATTERN = re.compile(r"^([A-Za-z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data.

        Args:
            data: Complete request bytes (headers, blank line, body).
            client_address: Client (ip, port) for logging.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # Header bytes are ISO-8859-1 on the wire, every byte maps to one char.
        header_section = data[:header_end].decode("iso-8859-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, target, version = self._parse_request_line(lines[0])
        path, query = self._split_target(target)
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", "0"))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query=query,
            target=target,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        return method, target, version

    def _split_target(self, target: str) -> tuple[str, str]:
        """
        Split the request target into decoded path and raw query.

            "/a%20b/c.txt?x=1"        → ("/a b/c.txt", "x=1")
            "//docs/readme.txt"       → ("//docs/readme.txt", "")
            "http://host/a/b.txt"     → ("/a/b.txt", "")     (absolute-form)
            "*"                       → ("*", "")            (OPTIONS *)

        An origin-form target is split by hand: urlsplit() would read
        "//docs" as a network location.
        """
        if target == "*":
            return target, ""

        if target.startswith("/"):
            raw_path, _, query = target.partition("?")
            return unquote(raw_path), query

        parsed = urlsplit(target)
        if not parsed.scheme or not parsed.netloc:
            raise HTTPParseError(f"Invalid request target: {target!r}")

        path = unquote(parsed.path) or "/"
        return path, parsed.query

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a lowercase-keyed dict.

        Repeated headers are joined with ", " (RFC 9110 §5.3).
        Obsolete line folding (a line starting with whitespace) continues
        the previous header.
        """
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is None:
                    raise HTTPParseError("Header continuation without a header")
                headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Malformed header line: {line!r}")

            name, value = match.groups()
            name = name.lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers

