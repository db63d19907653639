"""
pytest configuration and fixtures.
"""

import logging
import os
import socket
import threading
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import HTTPServer, ServerConfig, build_handler
from staticserver.http import HTTPRequest


# Fixed mtime for files in the served folder: Sat, 15 Jun 2024 10:00:00 GMT
FIXED_MTIME = 1718445600

INDEX_HTML = b"<!DOCTYPE html><html><body>home</body></html>"
MY_FILE = b"0123456789abcdefghijklmnopqrstuvwxyz"


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """
    A served folder:

        web/
        ├── index.html
        ├── my.file
        ├── style.css
        ├── blob              (no extension, binary)
        ├── docs/
        │   └── readme.txt
        └── empty/
    """
    root = tmp_path / "web"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "my.file").write_bytes(MY_FILE)
    (root / "style.css").write_text("body { color: red; }\n")
    (root / "blob").write_bytes(b"\x00\x01\x02\x03binary")
    (root / "docs").mkdir()
    (root / "docs" / "readme.txt").write_text("read me\n")
    (root / "empty").mkdir()

    for path in root.rglob("*"):
        os.utime(path, (FIXED_MTIME, FIXED_MTIME))

    return root


@pytest.fixture
def folder(web_root: Path) -> str:
    """The served folder the way from_env() stores it: with a trailing '/'."""
    return str(web_root) + "/"


def make_request(path: str, method: str = "GET", headers: dict = None, query: str = "") -> HTTPRequest:
    """An already parsed request, for handler-level tests."""
    return HTTPRequest(
        method=method,
        path=path,
        headers={k.lower(): v for k, v in (headers or {}).items()},
        query=query,
        target=path + ("?" + query if query else ""),
        client_address=("127.0.0.1", 50000),
    )


@pytest.fixture
def request_factory():
    return make_request


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None
        self.error: BaseException = None

    @property
    def port(self) -> int:
        return self.server.server_address[1]

    def _run(self):
        try:
            self.server.run()
        except BaseException as e:
            self.error = e

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

        for _ in range(50):  # 5 seconds max
            if self.server.wait_until_ready(0.1):
                return
            if self.error is not None:
                raise self.error

        raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def server_factory(free_port: int):
    """Start servers for a folder with config overrides; stopped at teardown."""
    started = []

    def start(folder: str, **overrides) -> TestServer:
        settings = dict(
            folder=folder,
            host="127.0.0.1",
            port=str(free_port),
            min_workers=2,
            max_workers=4,
            timeout=5.0,
            keep_alive_timeout=1.0,
        )
        settings.update(overrides)
        config = ServerConfig(**settings)
        test_srv = TestServer(HTTPServer(config, build_handler(config)))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def test_server(server_factory, folder: str) -> Generator[TestServer, None, None]:
    """A plain HTTP server for the sample folder, listing enabled."""
    yield server_factory(folder)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """setup_logging() changes the package logger level; undo it per test."""
    yield
    logging.getLogger("staticserver").setLevel(logging.NOTSET)
