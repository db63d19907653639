"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

The request dispatcher: the one handler the server runs for every
request.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    PER-REQUEST DECISIONS                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /my/stuff/docs/readme.txt                                      │
    │        │                                                             │
    │        ▼                                                             │
    │   listing policy ── reject ──► 404  (resolver not called)            │
    │        │                                                             │
    │        ▼                                                             │
    │   path resolver ─── None ────► 404  (file server not called)         │
    │        │                                                             │
    │        ▼  "/var/www//docs/readme.txt"                                │
    │   serve_file()  ─────────────► 200 / 206 / 301 / 304 / 400 / ...     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The handler holds no per-request state, so one instance serves every
worker thread.

=============================================================================
"""

import logging

from ..config import ServerConfig
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, not_found
from .files import serve_file
from .listing import RequestContext, should_reject_as_not_found
from .resolver import PathResolver, make_resolver


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Handler serving a folder, optionally under a URL prefix.

    =========================================================================
    USAGE
    =========================================================================

        handler = StaticFileHandler(
            folder="/var/www/",
            resolver=make_resolver("/var/www/", "/my/stuff"),
            show_listing=True,
        )
        response = handler(request)

    Usually built with build_handler(config).

    =========================================================================
    """

    def __init__(self, folder: str, resolver: PathResolver, show_listing: bool = True):
        """
        Args:
            folder: Directory being served, with a trailing '/'.
            resolver: Strategy mapping request paths to filesystem paths.
            show_listing: The SHOW_LISTING setting. When False, requests
                          for paths ending in '/' get a 404.
        """
        self.folder = folder
        self.resolver = resolver
        self.show_listing = show_listing

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        context = RequestContext.from_request(request)

        if should_reject_as_not_found(self.show_listing, context.is_directory_request):
            logger.debug(f"Directory request rejected: {context.url_path}")
            return not_found()

        target = self.resolver.resolve(context.url_path)
        if target is None:
            logger.debug(f"Path outside URL prefix: {context.url_path}")
            return not_found()

        return serve_file(request, target)

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)

    def __repr__(self) -> str:
        return (
            f"StaticFileHandler(folder={self.folder!r}, "
            f"resolver={self.resolver!r}, show_listing={self.show_listing})"
        )


def build_handler(config: ServerConfig) -> StaticFileHandler:
    """
    Create the handler for a configuration.

    Example:
        handler = build_handler(ServerConfig.from_env())
        HTTPServer(config, handler).run()
    """
    resolver = make_resolver(config.folder, config.url_prefix)
    return StaticFileHandler(config.folder, resolver, config.show_listing)
