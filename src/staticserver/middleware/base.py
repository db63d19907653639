"""
=============================================================================
MIDDLEWARE
=============================================================================

Middleware wraps the request handler to add behaviour around it
without touching it (chain of responsibility):

    pipeline = MiddlewarePipeline()
    pipeline.add(AccessLogMiddleware())      # first added = outermost
    handler = pipeline.wrap(static_handler)

            ┌───────────────────────────────────────────────┐
            │  AccessLogMiddleware                          │
            │  ┌─────────────────────────────────────────┐  │
            │  │  StaticFileHandler                      │  │
            │  └─────────────────────────────────────────┘  │
            └───────────────────────────────────────────────┘

The request flows inward, the response flows back out through the same
layers in reverse.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The next middleware, or the final handler.
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class AddHeader(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Served-By", "edge-1")
                return response

    A middleware may also answer by itself without calling next().
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Handle request, usually by calling next(request)."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered list of middleware wrapped around a final handler."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around `handler`.

        [MW1, MW2] and handler become MW1 → MW2 → handler, so we wrap
        in reverse order.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
