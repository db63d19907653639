"""
=============================================================================
BYTE RANGE REQUESTS (RFC 9110 §14)
=============================================================================

A client that already has part of a file (a paused download, a video
player seeking) asks for pieces of it:

    Range: bytes=0-499          first 500 bytes
    Range: bytes=500-           everything from byte 500
    Range: bytes=-500           last 500 bytes
    Range: bytes=0-0,-1         first and last byte (multipart answer)

    ┌─────────────────────────────────────────────────────────────────────┐
    │  parse_range("bytes=...", size)                                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   []                       no Range header → 200 full body           │
    │   [HTTPRange]              → 206 with Content-Range                  │
    │   [HTTPRange, ...]         → 206 multipart/byteranges                │
    │   InvalidRangeError        malformed header → 416                    │
    │   NoOverlapError           every range starts past EOF → 416 with    │
    │                            Content-Range: bytes */<size>             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Ranges ending past EOF are clamped to the file, not rejected.

=============================================================================
"""

import re
from dataclasses import dataclass


_DIGITS = re.compile(r"^[0-9]+$")


class InvalidRangeError(ValueError):
    """The Range header is syntactically invalid."""


class NoOverlapError(InvalidRangeError):
    """The Range header is valid but no range overlaps the file."""


@dataclass(frozen=True)
class HTTPRange:
    """A satisfiable byte range: `length` bytes starting at `start`."""

    start: int
    length: int

    @property
    def end(self) -> int:
        """Inclusive last byte."""
        return self.start + self.length - 1

    def content_range(self, size: int) -> str:
        """e.g. "bytes 0-499/1234"."""
        return f"bytes {self.start}-{self.end}/{size}"


def _parse_int(value: str) -> int:
    if not _DIGITS.match(value):
        raise InvalidRangeError("invalid range")
    return int(value)


def parse_range(header: str, size: int) -> list[HTTPRange]:
    """
    Parse a Range header value against a resource of `size` bytes.

    Args:
        header: The Range header value ("" when absent).
        size: Resource length in bytes.

    Returns:
        Satisfiable ranges in request order. Empty when `header` is empty.

    Raises:
        InvalidRangeError: Malformed header or unsupported unit.
        NoOverlapError: Every range starts at or past `size`.

    Examples:
        >>> parse_range("bytes=0-9", 100)
        [HTTPRange(start=0, length=10)]
        >>> parse_range("bytes=-10", 100)
        [HTTPRange(start=90, length=10)]
        >>> parse_range("bytes=95-200", 100)
        [HTTPRange(start=95, length=5)]
    """
    if not header:
        return []

    unit = "bytes="
    if not header.startswith(unit):
        raise InvalidRangeError("invalid range")

    ranges: list[HTTPRange] = []
    no_overlap = False

    for part in header[len(unit):].split(","):
        part = part.strip()
        if not part:
            continue

        start_text, sep, end_text = part.partition("-")
        if not sep:
            raise InvalidRangeError("invalid range")
        start_text, end_text = start_text.strip(), end_text.strip()

        if not start_text:
            # Suffix range: the last N bytes.
            suffix = _parse_int(end_text)
            if suffix == 0 or size == 0:
                no_overlap = True
                continue
            suffix = min(suffix, size)
            ranges.append(HTTPRange(start=size - suffix, length=suffix))
            continue

        start = _parse_int(start_text)
        if start >= size:
            no_overlap = True
            continue

        if not end_text:
            ranges.append(HTTPRange(start=start, length=size - start))
            continue

        end = _parse_int(end_text)
        if start > end:
            raise InvalidRangeError("invalid range")
        end = min(end, size - 1)
        ranges.append(HTTPRange(start=start, length=end - start + 1))

    if no_overlap and not ranges:
        raise NoOverlapError("invalid range: failed to overlap")

    return ranges


def sum_ranges_size(ranges: list[HTTPRange]) -> int:
    """Total number of bytes the ranges ask for."""
    return sum(r.length for r in ranges)
