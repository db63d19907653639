"""
Unit tests for the request dispatcher (StaticFileHandler / build_handler).
"""

from unittest import mock

import pytest

from staticserver.config import ServerConfig
from staticserver.handlers import static as static_module
from staticserver.handlers.resolver import DirectResolver, PrefixResolver
from staticserver.handlers.static import StaticFileHandler, build_handler
from staticserver.http import HTTPStatus

from conftest import INDEX_HTML, MY_FILE, make_request


def read_body(response) -> bytes:
    """Whole body of a response, in memory or streamed from a file."""
    if response.file_body is None:
        return response.body
    body = response.file_body
    body.file.seek(body.offset)
    data = body.file.read(body.length)
    response.close()
    return data


class TestBuildHandler:
    """Strategy selection from configuration."""

    def test_direct(self, folder):
        handler = build_handler(ServerConfig(folder=folder))

        assert isinstance(handler.resolver, DirectResolver)
        assert handler.folder == folder
        assert handler.show_listing is True

    def test_prefix(self, folder):
        handler = build_handler(ServerConfig(folder=folder, url_prefix="/my/stuff"))

        assert isinstance(handler.resolver, PrefixResolver)

    def test_show_listing_passed_through(self, folder):
        handler = build_handler(ServerConfig(folder=folder, show_listing=False))

        assert handler.show_listing is False


class TestScenarios:
    """The documented usage scenarios, end to end through the handler."""

    def test_basic_file(self, folder):
        """FOLDER=<web>, GET /my.file → contents of my.file."""
        handler = build_handler(ServerConfig(folder=folder))

        response = handler(make_request("/my.file"))

        assert response.status == HTTPStatus.OK
        assert read_body(response) == MY_FILE

    def test_prefixed_file(self, folder):
        """URL_PREFIX=/my/stuff, GET /my/stuff/my.file → my.file."""
        handler = build_handler(ServerConfig(folder=folder, url_prefix="/my/stuff"))

        response = handler(make_request("/my/stuff/my.file"))

        assert response.status == HTTPStatus.OK
        assert read_body(response) == MY_FILE

    def test_prefix_mismatch(self, folder):
        """URL_PREFIX=/my/stuff, GET /other/my.file → 404."""
        handler = build_handler(ServerConfig(folder=folder, url_prefix="/my/stuff"))

        response = handler(make_request("/other/my.file"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"404 page not found\n"

    def test_file_served_with_listing_enabled(self, folder):
        """SHOW_LISTING=true does not block ordinary file requests."""
        handler = build_handler(ServerConfig(folder=folder, show_listing=True))

        response = handler(make_request("/my.file"))

        assert response.status == HTTPStatus.OK
        read_body(response)

    def test_file_served_with_listing_disabled(self, folder):
        handler = build_handler(ServerConfig(folder=folder, show_listing=False))

        response = handler(make_request("/my.file"))

        assert response.status == HTTPStatus.OK
        read_body(response)

    def test_root_serves_index_with_listing(self, folder):
        """SHOW_LISTING=true, GET / → index.html."""
        handler = build_handler(ServerConfig(folder=folder, show_listing=True))

        response = handler(make_request("/"))

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert read_body(response) == INDEX_HTML

    def test_root_not_found_without_listing(self, folder):
        """SHOW_LISTING=false, GET / → 404."""
        handler = build_handler(ServerConfig(folder=folder, show_listing=False))

        response = handler(make_request("/"))

        assert response.status == HTTPStatus.NOT_FOUND

    def test_prefixed_root_serves_index(self, folder):
        handler = build_handler(ServerConfig(folder=folder, url_prefix="/my/stuff"))

        response = handler(make_request("/my/stuff/"))

        assert response.status == HTTPStatus.OK
        assert read_body(response) == INDEX_HTML


class TestShortCircuits:
    """What is (not) called on rejection."""

    def test_listing_rejection_skips_resolver(self, folder):
        resolver = mock.Mock()
        handler = StaticFileHandler(folder, resolver, show_listing=False)

        response = handler(make_request("/docs/"))

        assert response.status == HTTPStatus.NOT_FOUND
        resolver.resolve.assert_not_called()

    def test_prefix_mismatch_skips_file_server(self, folder):
        handler = StaticFileHandler(folder, PrefixResolver(folder, "/my/stuff"))

        with mock.patch.object(static_module, "serve_file") as serve_file:
            response = handler(make_request("/elsewhere"))

        assert response.status == HTTPStatus.NOT_FOUND
        serve_file.assert_not_called()

    def test_resolved_target_reaches_file_server(self, folder):
        handler = StaticFileHandler(folder, DirectResolver(folder))
        request = make_request("/docs/readme.txt")

        with mock.patch.object(static_module, "serve_file") as serve_file:
            handler(request)

        serve_file.assert_called_once_with(request, folder + "/docs/readme.txt")

    @pytest.mark.parametrize("path", ["/my.file", "/docs/", "/nope"])
    def test_handler_is_reusable(self, folder, path):
        """The handler keeps no per-request state."""
        handler = build_handler(ServerConfig(folder=folder))

        first = handler(make_request(path))
        second = handler(make_request(path))

        assert first.status == second.status
        first.close()
        second.close()
