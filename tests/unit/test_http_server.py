"""
Unit tests for HTTPServer's connection handling, with fake connections.
"""

import logging
from unittest import mock

import pytest

from staticserver.config import ConfigError, ServerConfig
from staticserver.http import HTTPRequest
from staticserver.http.response import ResponseBuilder
from staticserver.server import HTTPServer, setup_logging


def make_server(handler=None, **overrides) -> HTTPServer:
    config = ServerConfig(host="127.0.0.1", port="0", **overrides)
    return HTTPServer(config, handler or (lambda request: ResponseBuilder().text("ok").build()))


def fake_connection(is_tls=False):
    conn = mock.Mock()
    conn.id = "test"
    conn.is_tls = is_tls
    conn.send_response.return_value = True
    conn.send_file.return_value = True
    return conn


def sent(conn) -> bytes:
    return b"".join(call.args[0] for call in conn.send_response.call_args_list)


class TestConstruction:
    def test_invalid_config_rejected(self):
        with pytest.raises(ConfigError):
            make_server(tls_cert="only-a-cert.pem")

    def test_not_listening_yet(self):
        server = make_server()

        assert server.server_address is None
        assert server.wait_until_ready(0.01) is False


class TestPoolFull:
    """The accept loop's answer when no worker can take a connection."""

    def test_plain_connection_gets_503(self):
        server = make_server()
        server._thread_pool = mock.Mock()
        server._thread_pool.submit.return_value = False
        conn = fake_connection()

        server._handle_connection(conn)

        assert sent(conn).startswith(b"HTTP/1.1 503 Service Unavailable\r\n")
        conn.close.assert_called_once_with(drain=False)

    def test_tls_connection_dropped(self):
        server = make_server()
        server._thread_pool = mock.Mock()
        server._thread_pool.submit.return_value = False
        conn = fake_connection(is_tls=True)

        server._handle_connection(conn)

        conn.send_response.assert_not_called()
        conn.close.assert_called_once_with(drain=False)


class TestRespond:
    """_respond(): handler errors, HEAD, keep-alive headers."""

    def test_handler_exception_becomes_500(self, caplog):
        def broken(request):
            raise RuntimeError("boom")

        server = make_server(broken)
        conn = fake_connection()

        assert server._respond(conn, HTTPRequest(method="GET", path="/x"), keep_alive=True)

        reply = sent(conn)
        assert reply.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
        assert "Handler error" in caplog.text

    def test_head_sends_no_body(self):
        server = make_server()
        conn = fake_connection()

        server._respond(conn, HTTPRequest(method="HEAD", path="/x"), keep_alive=True)

        reply = sent(conn)
        assert b"Content-Length: 2\r\n" in reply
        assert reply.endswith(b"\r\n\r\n")
        conn.send_file.assert_not_called()

    def test_keep_alive_headers(self):
        server = make_server(keep_alive_timeout=5.0)
        conn = fake_connection()

        server._respond(conn, HTTPRequest(method="GET", path="/x"), keep_alive=True)

        reply = sent(conn)
        assert b"Connection: keep-alive\r\n" in reply
        assert b"Keep-Alive: timeout=5\r\n" in reply

    def test_close_header(self):
        server = make_server()
        conn = fake_connection()

        server._respond(conn, HTTPRequest(method="GET", path="/x"), keep_alive=False)

        assert b"Connection: close\r\n" in sent(conn)

    def test_file_body_streamed_and_closed(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"abcdef")
        handle = open(path, "rb")

        server = make_server(lambda request: ResponseBuilder().file(handle, 1, 3).build())
        conn = fake_connection()

        assert server._respond(conn, HTTPRequest(method="GET", path="/x"), keep_alive=True)

        body = conn.send_file.call_args.args[0]
        assert (body.offset, body.length) == (1, 3)
        assert handle.closed

    def test_send_failure_stops(self):
        server = make_server()
        conn = fake_connection()
        conn.send_response.return_value = False

        assert server._respond(conn, HTTPRequest(method="GET", path="/x"), keep_alive=True) is False


class TestSetupLogging:
    def test_level_applied(self):
        setup_logging("debug")

        assert logging.getLogger("staticserver").level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        setup_logging("chatty")

        assert logging.getLogger("staticserver").level == logging.INFO
