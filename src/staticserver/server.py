"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ── accept ──► ThreadPool ──► _process_connection()    │
    │                                                 │                    │
    │                                   read_request()│ Connection         │
    │                                   parse()       │ RequestParser      │
    │                                   handler()     │ AccessLog → files  │
    │                                   send head     │                    │
    │                                   sendfile body │                    │
    │                                                 │                    │
    │                                   keep-alive? ──┘ loop               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHAT CAN GO WRONG, AND WHAT THE CLIENT SEES
=============================================================================

    Malformed request / bad method / bad version   400 / 405 / 505, close
    Request larger than max_request_size           413, close
    First request does not arrive in time          408, close
    Handler raises                                 500, connection stays
    Pool queue full                                503, close
    Idle keep-alive connection times out           closed quietly
    TLS handshake fails                            closed quietly

None of these stop the server. Only startup errors (bind, TLS files)
escape run().

=============================================================================
"""

import logging
import ssl
from typing import Callable, Optional

from .config import ServerConfig, LOG_LEVELS, DEFAULT_LOG_LEVEL
from .core import SocketServer, Connection, ThreadPool, create_tls_context
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus,
    error_response, internal_error,
)
from .middleware import MiddlewarePipeline, AccessLogMiddleware


logger = logging.getLogger(__name__)


Handler = Callable[[HTTPRequest], HTTPResponse]


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the process.

        2024-06-15 10:00:00 [INFO] staticserver.access: 10.0.0.5 - - [...] "GET /" 200 ...
    """
    level = level.upper()
    if level not in LOG_LEVELS:
        level = DEFAULT_LOG_LEVEL
    numeric_level = logging.getLevelName(level)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("staticserver").setLevel(numeric_level)


class HTTPServer:
    """
    Serves one handler over HTTP/1.1 (or HTTPS).

    =========================================================================
    USAGE
    =========================================================================

        config = ServerConfig.from_env()
        server = HTTPServer(config, build_handler(config))
        server.run()            # blocks

    From another thread (tests):

        server.wait_until_ready(5)
        host, port = server.server_address[:2]
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(self, config: ServerConfig, handler: Handler):
        self.config = config
        self.config.validate()

        self._socket_server = SocketServer(config)
        self._thread_pool = ThreadPool(
            min_workers=config.min_workers,
            max_workers=config.max_workers,
            queue_size=config.backlog,
        )
        self._parser = RequestParser(max_request_size=config.max_request_size)

        pipeline = MiddlewarePipeline().add(AccessLogMiddleware())
        self._handler = pipeline.wrap(handler)

        self._running = False

    @property
    def server_address(self) -> Optional[tuple]:
        return self._socket_server.server_address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def run(self) -> None:
        """
        Serve until shutdown() is called.

        Raises:
            OSError: The address cannot be bound, or the TLS certificate
                     and key cannot be loaded (ssl.SSLError is an OSError).
        """
        if self.config.tls_enabled:
            self._socket_server.ssl_context = create_tls_context(
                self.config.tls_cert, self.config.tls_key,
            )

        self._running = True
        self._thread_pool.start()

        logger.info(
            f"Serving {self.config.folder} "
            f"(prefix={self.config.url_prefix or '-'}, "
            f"show_listing={self.config.show_listing})"
        )

        try:
            self._socket_server.start(self._handle_connection)
        finally:
            self._running = False
            self._thread_pool.shutdown()

    def shutdown(self) -> None:
        """Stop accepting connections; run() returns shortly after."""
        self._running = False
        self._socket_server.shutdown()

    def _handle_connection(self, conn: Connection) -> None:
        """Runs in the accept loop: hand the connection to a worker."""
        if self._thread_pool.submit(self._process_connection, args=(conn,)):
            return

        logger.warning(
            f"[{conn.id}] Thread pool full ({self._thread_pool.size} workers), rejecting connection"
        )
        # A TLS connection has not shaken hands yet; just drop it.
        if not conn.is_tls:
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE)
        conn.close(drain=False)

    def _process_connection(self, conn: Connection) -> None:
        """The keep-alive loop for one connection (worker thread)."""
        with conn:
            try:
                conn.handshake()
            except (ssl.SSLError, OSError) as e:
                logger.debug(f"[{conn.id}] TLS handshake failed: {e}")
                return

            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                    break
                except ValueError as e:
                    logger.debug(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE)
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Parse error: {e}")
                    self._send_error(conn, HTTPStatus(e.status_code))
                    break

                keep_alive = request.is_keep_alive and self.config.keep_alive
                if not self._respond(conn, request, keep_alive):
                    break
                if not keep_alive:
                    break

                conn.set_keep_alive()

    def _respond(self, conn: Connection, request: HTTPRequest, keep_alive: bool) -> bool:
        """Run the handler and send its response. False if sending failed."""
        try:
            response = self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            response = internal_error()

        try:
            if request.is_head:
                response.strip_body()

            if keep_alive:
                response.headers.setdefault("Connection", "keep-alive")
                response.headers.setdefault(
                    "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                )
            else:
                response.headers["Connection"] = "close"

            if not conn.send_response(response.to_bytes(self.config.server_name)):
                return False
            if response.file_body is not None:
                return conn.send_file(response.file_body)
            return True
        finally:
            response.close()

    def _send_error(self, conn: Connection, status: HTTPStatus) -> None:
        """Error page for failures before a request reaches the handler."""
        response = error_response(status, f"{status.value} {status.phrase}")
        response.headers["Connection"] = "close"
        conn.send_response(response.to_bytes(self.config.server_name))
