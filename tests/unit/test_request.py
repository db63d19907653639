"""
Unit tests for HTTP request parsing.
"""

import pytest

from staticserver.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
)


def parse_request(raw: bytes) -> HTTPRequest:
    return RequestParser().parse(raw)


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /my/stuff/my.file?v=2 HTTP/1.1\r\n"
        b"Host: my.machine:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Range: bytes=0-9\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/my/stuff/my.file"
        assert request.query == "v=2"
        assert request.target == "/my/stuff/my.file?v=2"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        """Test that headers are parsed correctly."""
        request = parse_request(sample_get_request)

        assert request.get_header("Host") == "my.machine:8080"
        assert request.get_header("User-Agent") == "pytest"
        assert request.headers["range"] == "bytes=0-9"
        assert request.is_keep_alive is True

    def test_path_is_percent_decoded(self):
        """Test URL-encoded path parsing."""
        raw = b"GET /my%20file.txt?q=hello%20world HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/my file.txt"
        assert request.query == "q=hello%20world"

    def test_path_is_not_normalized(self):
        """Dot segments and trailing slashes are passed on untouched."""
        raw = b"GET /a/../b/ HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/a/../b/"

    def test_encoded_dot_dot_is_decoded(self):
        """%2e%2e decodes to '..' so the file server can reject it."""
        raw = b"GET /%2e%2e/etc/passwd HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/../etc/passwd"

    def test_double_slash_path_kept(self):
        """A leading '//' is part of the path, not a host."""
        raw = b"GET //docs/readme.txt HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "//docs/readme.txt"
        assert request.query == ""

    def test_double_slash_path_with_query(self):
        raw = b"GET //my/stuff/x%20y?a=1 HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "//my/stuff/x y"
        assert request.query == "a=1"

    def test_empty_query(self):
        raw = b"GET /my.file? HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/my.file"
        assert request.query == ""

    def test_absolute_form_target(self):
        """Test a proxy-style absolute URL."""
        raw = b"GET http://my.machine/my.file HTTP/1.1\r\nHost: my.machine\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/my.file"

    def test_asterisk_target(self):
        raw = b"OPTIONS * HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.method == "OPTIONS"
        assert request.path == "*"

    def test_relative_target_rejected(self):
        raw = b"GET my.file HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_parse_invalid_method(self):
        """Test that invalid methods are rejected."""
        raw = b"INVALID /path HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 405

    def test_parse_invalid_request_line(self):
        """Test handling of malformed request line."""
        raw = b"GET\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_unsupported_version(self):
        raw = b"GET / HTTP/2.0\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 505

    def test_missing_header_terminator(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n")

    def test_malformed_header_line(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nno colon here\r\n\r\n")

    def test_parse_missing_headers(self):
        """Test parsing request with no headers."""
        raw = b"GET / HTTP/1.1\r\n\r\n"
        request = parse_request(raw)

        assert request.method == "GET"
        assert request.path == "/"
        assert len(request.headers) == 0

    def test_parse_request_too_large(self):
        """Test that oversized requests are rejected."""
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 413

    def test_http_version_parsing(self):
        """Test HTTP/1.0 and HTTP/1.1 version handling."""
        # HTTP/1.0 (Connection: close by default)
        request_10 = parse_request(b"GET / HTTP/1.0\r\nHost: test\r\n\r\n")
        assert request_10.version == "HTTP/1.0"
        assert request_10.is_keep_alive is False

        request_10_ka = parse_request(
            b"GET / HTTP/1.0\r\nConnection: Keep-Alive\r\n\r\n"
        )
        assert request_10_ka.is_keep_alive is True

        # HTTP/1.1 (keep-alive by default)
        request_11 = parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n\r\n")
        assert request_11.version == "HTTP/1.1"
        assert request_11.is_keep_alive is True

        request_11_close = parse_request(b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n")
        assert request_11_close.is_keep_alive is False

    def test_content_length_handling(self):
        """Test Content-Length validation."""
        body = b"test body"
        raw = (
            b"POST / HTTP/1.1\r\n"
            b"Content-Length: 9\r\n"
            b"\r\n"
        ) + body

        request = parse_request(raw)
        assert request.body == body

    def test_incomplete_body(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 20\r\n\r\nshort"

        with pytest.raises(HTTPParseError):
            parse_request(raw)

    def test_case_insensitive_headers(self):
        """Test that header names are case-insensitive."""
        raw = b"GET / HTTP/1.1\r\nIF-NONE-MATCH: \"abc\"\r\n\r\n"
        request = parse_request(raw)

        assert request.get_header("If-None-Match") == '"abc"'
        assert request.get_header("if-none-match") == '"abc"'

    def test_repeated_headers_are_joined(self):
        raw = b"GET / HTTP/1.1\r\nIf-Match: \"a\"\r\nIf-Match: \"b\"\r\n\r\n"
        request = parse_request(raw)

        assert request.get_header("if-match") == '"a", "b"'

    def test_folded_header(self):
        raw = b"GET / HTTP/1.1\r\nX-Long: first\r\n  second\r\n\r\n"
        request = parse_request(raw)

        assert request.get_header("x-long") == "first second"


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        """Test get_header with default value."""
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"

    def test_is_head(self):
        assert HTTPRequest(method="HEAD", path="/").is_head
        assert not HTTPRequest(method="GET", path="/").is_head
