"""
=============================================================================
STATIC FILE SERVER
=============================================================================

A small HTTP(S) server that serves one folder, configured entirely from
environment variables.

    FOLDER=/var/www URL_PREFIX=/my/stuff static-file-server

    GET /my/stuff/css/site.css   →   /var/www//css/site.css

=============================================================================
PACKAGE LAYOUT
=============================================================================

    staticserver/
    ├── __main__.py      CLI: help / version / serve
    ├── config.py        ServerConfig.from_env(), validation
    ├── server.py        HTTPServer: connections → handler → responses
    ├── core/            sockets, TLS, thread pool
    ├── http/            request parsing, responses, ranges, MIME types
    ├── handlers/        listing policy, path resolution, file serving
    └── middleware/      access log

=============================================================================
"""

__version__ = "1.1"

from .config import ServerConfig, ConfigError
from .server import HTTPServer, setup_logging
from .handlers import StaticFileHandler, build_handler

__all__ = [
    "ServerConfig",
    "ConfigError",
    "HTTPServer",
    "setup_logging",
    "StaticFileHandler",
    "build_handler",
    "__version__",
]
