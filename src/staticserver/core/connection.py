"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket (plain TCP or TLS) for the worker that
owns it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ONE CONNECTION, MANY REQUESTS                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept()                                                           │
    │       │                                                              │
    │   handshake()          TLS only, runs in the worker thread           │
    │       │                                                              │
    │   read_request() ◄──────────────┐   30 s for the first request,     │
    │       │                         │   5 s while idling in keep-alive  │
    │   send_response(head)           │                                    │
    │   send_file(body)               │   file bodies go out via           │
    │       │                         │   socket.sendfile()                │
    │       └── keep-alive? ──────────┘                                    │
    │       │                                                              │
    │   close()                                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Bytes read past the end of one request stay buffered for the next one,
so pipelined requests are not lost.

=============================================================================
"""

import socket
import ssl
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..http.response import FileBody


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its lifecycle."""
    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket (an ssl.SSLSocket when TLS is on).
        address: Client's (ip, port, ...) address tuple.
        id: Short identifier for log lines.
        requests_handled: Number of requests read so far.
    """

    socket: socket.socket
    address: tuple
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: float = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def is_tls(self) -> bool:
        return isinstance(self.socket, ssl.SSLSocket)

    def handshake(self) -> None:
        """
        Complete the TLS handshake, if this is a TLS connection.

        The listening socket is wrapped with do_handshake_on_connect=False
        so a slow client cannot stall the accept loop; the worker calls
        this before reading.

        Raises:
            ssl.SSLError, OSError: The handshake failed.
        """
        if self.is_tls:
            self.socket.do_handshake()

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request (headers plus Content-Length body).

        Returns:
            The request bytes, or None when the client closed the
            connection or went idle between keep-alive requests.

        Raises:
            TimeoutError: The first request did not arrive in time.
            ValueError: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                self._check_size()

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk
                self._check_size()

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]
            self.requests_handled += 1
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _check_size(self) -> None:
        if len(self._buffer) > self.max_request_size:
            raise ValueError(f"Request too large: {len(self._buffer)} bytes")

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError, ssl.SSLEOFError):
            return b""

    def _parse_content_length(self, headers: bytes) -> int:
        """Content-Length from raw header bytes, 0 when absent or invalid."""
        for line in headers.decode("iso-8859-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(int(line.split(":", 1)[1].strip()), 0)
                except ValueError:
                    return 0
        return 0

    def send_response(self, data: bytes) -> bool:
        """
        Send bytes with sendall().

        Returns:
            True on success, False if the client went away.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    def send_file(self, body: FileBody) -> bool:
        """
        Stream a file body with socket.sendfile().

        sendfile() uses os.sendfile() on plain sockets and falls back to
        read/send on TLS sockets.

        Returns:
            True on success, False if the client went away.
        """
        self.state = ConnectionState.WRITING
        if body.length == 0:
            return True
        try:
            self.socket.sendfile(body.file, offset=body.offset, count=body.length)
            return True
        except OSError as e:
            logger.debug(f"[{self.id}] Sending file failed: {e}")
            return False

    def set_keep_alive(self) -> None:
        self.state = ConnectionState.KEEP_ALIVE

    def close(self, drain: bool = True) -> None:
        """
        Shut down writing, drain briefly, then close. Idempotent.

        Args:
            drain: Read what the client still sends for up to 0.5 s
                   before closing. The accept loop passes False so a
                   rejected client cannot hold it up.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        if drain:
            try:
                self.socket.settimeout(0.5)
                while self.socket.recv(1024):
                    pass
            except OSError:
                pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
