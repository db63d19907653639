"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ static.py    StaticFileHandler / build_handler: the dispatcher      │
    │ listing.py   SHOW_LISTING policy for directory requests             │
    │ resolver.py  request path → filesystem path (direct or prefixed)    │
    │ files.py     serve_file(): one path → one HTTP response             │
    └─────────────────────────────────────────────────────────────────────┘

    from staticserver.handlers import build_handler

    handler = build_handler(config)
    response = handler(request)

=============================================================================
"""

from .files import serve_file, contains_dot_dot
from .listing import RequestContext, should_reject_as_not_found
from .resolver import PathResolver, DirectResolver, PrefixResolver, make_resolver
from .static import StaticFileHandler, build_handler

__all__ = [
    "serve_file",
    "contains_dot_dot",
    "RequestContext",
    "should_reject_as_not_found",
    "PathResolver",
    "DirectResolver",
    "PrefixResolver",
    "make_resolver",
    "StaticFileHandler",
    "build_handler",
]
