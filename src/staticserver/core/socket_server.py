"""
=============================================================================
LISTENING SOCKET
=============================================================================

Owns the listening socket: resolve the address, bind, listen, optionally
wrap in TLS, and accept connections until shutdown() is called.

=============================================================================
ADDRESS RESOLUTION
=============================================================================

HOST and PORT go through getaddrinfo(), exactly as typed:

    HOST=""            PORT="8080"   → every interface, IPv6 dual-stack
                                       when available, else 0.0.0.0
    HOST="127.0.0.1"   PORT="8080"   → 127.0.0.1:8080
    HOST="::1"         PORT="http"   → [::1]:80   (service names work)

    ┌─────────────────────────────────────────────────────────────────────┐
    │   start()                                                            │
    │     ├──► _resolve()          getaddrinfo(host or None, port)         │
    │     ├──► _create_socket()    SO_REUSEADDR, TCP_NODELAY               │
    │     ├──► bind() / listen()   errors are logged and re-raised         │
    │     ├──► wrap_socket()       TLS only, handshake deferred            │
    │     └──► _accept_loop()      blocks until shutdown()                 │
    └─────────────────────────────────────────────────────────────────────┘

The accept loop wakes up every second to check whether shutdown() was
called. There is no signal handling: Ctrl+C ends the process.

=============================================================================
"""

import socket
import ssl
import logging
import threading
from typing import Callable, Optional

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


def create_tls_context(cert_file: str, key_file: str) -> ssl.SSLContext:
    """
    Server-side TLS context from a PEM certificate chain and key.

    Raises:
        OSError: A file is missing or unreadable.
        ssl.SSLError: The files are not a valid certificate/key pair.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(certfile=cert_file, keyfile=key_file)
    return context


class SocketServer:
    """
    TCP (or TLS) listener handing accepted connections to a callback.

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)   # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig, ssl_context: Optional[ssl.SSLContext] = None):
        self.config = config
        self.ssl_context = ssl_context

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()

    @property
    def server_address(self) -> Optional[tuple]:
        """The bound address, once listening (the real port when PORT=0)."""
        if self._socket is None:
            return None
        return self._socket.getsockname()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. For tests and embedding."""
        return self._ready.wait(timeout)

    def _resolve(self) -> tuple:
        """
        Pick (family, sockaddr) for the configured HOST and PORT.

        Raises:
            socket.gaierror: The host or port cannot be resolved.
        """
        host = self.config.host or None
        infos = socket.getaddrinfo(
            host, self.config.port,
            type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE,
        )

        if host is None and socket.has_dualstack_ipv6():
            for family, _, _, _, sockaddr in infos:
                if family == socket.AF_INET6:
                    return family, sockaddr

        family, _, _, _, sockaddr = infos[0]
        return family, sockaddr

    def _create_socket(self, family: int) -> socket.socket:
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # Accept both IPv4 and IPv6 on the wildcard address.
        if family == socket.AF_INET6 and not self.config.host:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)

        sock.settimeout(1.0)
        return sock

    def start(self, connection_handler: Callable[[Connection], None]) -> None:
        """
        Bind, listen and accept until shutdown().

        Args:
            connection_handler: Called with each accepted Connection.

        Raises:
            OSError: Resolving, binding or listening failed.
        """
        address = self.config.bind_address
        family, sockaddr = self._resolve()
        sock = self._create_socket(family)

        try:
            sock.bind(sockaddr)
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {address}: {e}")
            raise

        if self.ssl_context is not None:
            sock = self.ssl_context.wrap_socket(
                sock, server_side=True, do_handshake_on_connect=False,
            )

        self._socket = sock
        self._running = True
        self._ready.set()

        scheme = "https" if self.ssl_context is not None else "http"
        logger.info(f"Listening on {scheme}://{address}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]) -> None:
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except ssl.SSLError as e:
                logger.debug(f"TLS accept error: {e}")
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self) -> None:
        """Stop the accept loop within about a second. Idempotent."""
        self._running = False

    def _cleanup(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._ready.clear()
        logger.info("Socket server stopped")
