"""
=============================================================================
NETWORK CORE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer   resolve, bind, listen, (TLS), accept                 │
    │  ThreadPool     bounded workers, one connection per task             │
    │  Connection     buffered reads, timeouts, sendall / sendfile         │
    └─────────────────────────────────────────────────────────────────────┘

Thread-per-connection: a worker owns its connection until the client
goes away or the keep-alive timeout expires.

=============================================================================
"""

from .socket_server import SocketServer, create_tls_context
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "create_tls_context",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
