"""
=============================================================================
ACCESS LOG
=============================================================================

One line per request on the "staticserver.access" logger, in an
Apache-like format:

    10.0.0.5 - - [15/Jun/2024:10:00:00 +0000] "GET /my/stuff/a.css" 200 5120 0.84ms
    │                                          │                    │   │    │
    client ip                                  method + path        │   │    duration
                                                                    │   bytes announced
                                                                    status

The byte count is the Content-Length the response announces, which for
a streamed file is the slice length, not len(body).

Route it like any logger:

    logging.getLogger("staticserver.access").addHandler(file_handler)

=============================================================================
"""

import time
import logging
from dataclasses import dataclass

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("staticserver.access")


@dataclass
class RequestLog:
    """One access log entry."""

    method: str
    path: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogMiddleware(Middleware):
    """
    Times each request and logs the outcome.

    A handler exception is logged here at ERROR and re-raised, so the
    server still turns it into a 500.
    """

    def __init__(self, log_level: int = logging.INFO):
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if logger.isEnabledFor(self.log_level):
            entry = RequestLog(
                method=request.method,
                path=request.path,
                client_ip=request.client_address[0],
                status_code=int(response.status),
                content_length=response.content_length,
                duration_ms=duration_ms,
                timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
            )
            logger.log(self.log_level, entry.to_text())

        return response
