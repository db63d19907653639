"""
=============================================================================
LISTING POLICY
=============================================================================

Decides, before any path resolution, whether a request is answered with
404 straight away.

    SHOW_LISTING   REQUEST          RESULT
    ────────────   ──────────────   ─────────────────────────────────
    true           GET /            index.html served (by the file server)
    true           GET /my.file     my.file served
    false          GET /            404, resolver never called
    false          GET /docs/       404, resolver never called
    false          GET /my.file     my.file served

Only directory requests are gated, and a directory request is one whose
path ends with '/'. "/docs" (no slash) is not a directory request; the
file server redirects it to "/docs/", which is then gated.

=============================================================================
"""

from dataclasses import dataclass

from ..http.request import HTTPRequest


@dataclass(frozen=True)
class RequestContext:
    """The per-request facts the policy and resolvers look at."""

    url_path: str
    is_directory_request: bool

    @classmethod
    def from_request(cls, request: HTTPRequest) -> "RequestContext":
        return cls(
            url_path=request.path,
            is_directory_request=request.path.endswith("/"),
        )


def should_reject_as_not_found(show_listing: bool, is_directory_request: bool) -> bool:
    """
    True when the request must get a 404 without touching the filesystem.

    Args:
        show_listing: The SHOW_LISTING setting.
        is_directory_request: The request path ends with '/'.
    """
    return not show_listing and is_directory_request
