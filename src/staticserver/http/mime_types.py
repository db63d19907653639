"""
=============================================================================
CONTENT-TYPE DETECTION
=============================================================================

Decides the Content-Type header for a served file in two steps:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. EXTENSION LOOKUP        style.css  → text/css; charset=utf-8   │
    │          │                                                           │
    │          │ unknown extension                                         │
    │          ▼                                                           │
    │   2. CONTENT SNIFFING        first 512 bytes of the file             │
    │                              b"\\x89PNG..." → image/png               │
    │                              b"<!DOCTYPE html>" → text/html          │
    │                              printable text → text/plain             │
    │                              anything else → octet-stream            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Sniffing only looks at well-known signatures. It never executes or
parses the file.

=============================================================================
"""

from pathlib import Path
from typing import Optional


# Number of leading bytes handed to sniff_content_type()
SNIFF_LENGTH = 512

MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".xml": "text/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # Documents / archives / other
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".wasm": "application/wasm",
    ".map": "application/json",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# Magic numbers checked by sniff_content_type(), first match wins.
_SIGNATURES = (
    (b"%PDF-", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"\x00asm", "application/wasm"),
    (b"OggS\x00", "application/ogg"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", "text/plain; charset=utf-8"),
)

# HTML is recognised case-insensitively after leading whitespace.
_HTML_MARKERS = (
    b"<!doctype html", b"<html", b"<head", b"<script", b"<iframe",
    b"<h1", b"<div", b"<font", b"<table", b"<a", b"<style", b"<title",
    b"<b", b"<body", b"<br", b"<p", b"<!--",
)

# Control bytes that never show up in text (tab, LF, FF, CR and ESC are fine).
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def get_mime_type(path: "str | Path", default: Optional[str] = None) -> Optional[str]:
    """
    Get the MIME type for a file from its extension.

    Args:
        path: File path or name.
        default: Returned when the extension is unknown.

    Examples:
        >>> get_mime_type("/var/www/style.CSS")
        'text/css'
        >>> get_mime_type("README") is None
        True
    """
    extension = Path(path).suffix.lower()
    return MIME_TYPES.get(extension, default)


def is_text_type(mime_type: str) -> bool:
    """Text types get a charset parameter."""
    if mime_type.startswith("text/"):
        return True
    return mime_type in {"application/json", "image/svg+xml"}


def get_content_type(path: "str | Path", charset: str = "utf-8") -> Optional[str]:
    """
    Get the Content-Type header value from the extension alone.

    Returns None when the extension is unknown, so the caller can sniff.

    Examples:
        >>> get_content_type("page.html")
        'text/html; charset=utf-8'
        >>> get_content_type("image.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if mime_type is None:
        return None
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type


def sniff_content_type(data: bytes) -> str:
    """
    Guess a Content-Type from the leading bytes of a file.

    Args:
        data: Up to SNIFF_LENGTH bytes from the start of the file.

    Returns:
        A Content-Type value. Never None.
    """
    data = data[:SNIFF_LENGTH]

    for signature, mime_type in _SIGNATURES:
        if data.startswith(signature):
            return mime_type

    if data[:4] == b"RIFF" and data[8:14] == b"WEBPVP":
        return "image/webp"

    stripped = data.lstrip(b" \t\n\x0c\r").lower()
    for marker in _HTML_MARKERS:
        # The marker must be followed by a tag terminator: "<p>" but not "<pre".
        if stripped.startswith(marker):
            following = stripped[len(marker):len(marker) + 1]
            if following in (b" ", b">") or marker == b"<!--":
                return "text/html; charset=utf-8"
    if stripped.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"

    if any(byte in _BINARY_BYTES for byte in data):
        return DEFAULT_MIME_TYPE
    return "text/plain; charset=utf-8"
