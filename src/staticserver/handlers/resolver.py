"""
=============================================================================
PATH RESOLUTION
=============================================================================

Maps a request path onto the served folder. Two strategies, chosen once
at startup from URL_PREFIX:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  DirectResolver("/var/www/sub/")                                     │
    │  ───────────────────────────────                                     │
    │  /my.file            → /var/www/sub//my.file                         │
    │                                                                      │
    │  PrefixResolver("/var/www/", "/my/stuff")                            │
    │  ───────────────────────────────────────                             │
    │  /my/stuff/my.file   → /var/www//my.file                             │
    │  /other/my.file      → None  (404)                                   │
    └─────────────────────────────────────────────────────────────────────┘

Resolution is plain string concatenation: no normalization and no
checks against the filesystem. The doubled separator is harmless to the
OS. Rejecting ".." segments is the file server's job (see files.py).

The prefix match is a string-prefix match, not a segment match:
"/my/stuffing" matches "/my/stuff" and resolves to folder + "ing".

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Optional


class PathResolver(ABC):
    """Strategy turning a request path into a filesystem path."""

    def __init__(self, folder: str):
        self.folder = folder

    @abstractmethod
    def resolve(self, path: str) -> Optional[str]:
        """
        Resolve a request path.

        Returns:
            The filesystem path to serve, or None when the request is
            outside this resolver's URL space.
        """


class DirectResolver(PathResolver):
    """Serves the whole URL space straight from the folder."""

    def resolve(self, path: str) -> Optional[str]:
        return self.folder + path

    def __repr__(self) -> str:
        return f"DirectResolver(folder={self.folder!r})"


class PrefixResolver(PathResolver):
    """Serves only paths under url_prefix, with the prefix removed."""

    def __init__(self, folder: str, url_prefix: str):
        super().__init__(folder)
        self.url_prefix = url_prefix

    def resolve(self, path: str) -> Optional[str]:
        if not path.startswith(self.url_prefix):
            return None
        return self.folder + path[len(self.url_prefix):]

    def __repr__(self) -> str:
        return f"PrefixResolver(folder={self.folder!r}, url_prefix={self.url_prefix!r})"


def make_resolver(folder: str, url_prefix: str = "") -> PathResolver:
    """Pick the resolver for a configuration."""
    if url_prefix:
        return PrefixResolver(folder, url_prefix)
    return DirectResolver(folder)
