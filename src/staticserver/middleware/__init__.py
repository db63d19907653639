"""
Middleware for the static file server.

    from staticserver.middleware import MiddlewarePipeline, AccessLogMiddleware

    handler = MiddlewarePipeline().add(AccessLogMiddleware()).wrap(handler)
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import AccessLogMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "AccessLogMiddleware",
    "RequestLog",
]
