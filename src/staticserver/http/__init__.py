"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The HTTP/1.1 message layer of the server:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       raw bytes → HTTPRequest                            │
    │ response.py      HTTPResponse / ResponseBuilder → bytes             │
    │ ranges.py        Range header parsing                               │
    │ mime_types.py    extension table + content sniffing                 │
    │ status_codes.py  HTTPStatus enum with reason phrases                │
    └─────────────────────────────────────────────────────────────────────┘

    REQUEST:                          RESPONSE:
    ─────────                         ──────────
    GET /path HTTP/1.1\\r\\n            HTTP/1.1 200 OK\\r\\n
    Header: Value\\r\\n                 Header: Value\\r\\n
    \\r\\n                              \\r\\n
                                      [body]

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    FileBody,
    error_response,
    not_found,
    forbidden,
    internal_error,
)
from .status_codes import HTTPStatus
from .mime_types import get_content_type, sniff_content_type
from .ranges import HTTPRange, parse_range

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "FileBody",
    "error_response",
    "not_found",
    "forbidden",
    "internal_error",
    "HTTPStatus",
    "get_content_type",
    "sniff_content_type",
    "HTTPRange",
    "parse_range",
]
