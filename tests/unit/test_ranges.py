"""
Unit tests for Range header parsing.
"""

import pytest

from staticserver.http.ranges import (
    HTTPRange,
    InvalidRangeError,
    NoOverlapError,
    parse_range,
    sum_ranges_size,
)


class TestParseRange:
    """Tests for parse_range()."""

    def test_empty_header(self):
        assert parse_range("", 100) == []

    @pytest.mark.parametrize("header, expected", [
        ("bytes=0-9", [HTTPRange(0, 10)]),
        ("bytes=10-", [HTTPRange(10, 90)]),
        ("bytes=-10", [HTTPRange(90, 10)]),
        ("bytes=95-200", [HTTPRange(95, 5)]),
        ("bytes=-500", [HTTPRange(0, 100)]),
        ("bytes=0-0,-1", [HTTPRange(0, 1), HTTPRange(99, 1)]),
        ("bytes= 0-1 , 5-6", [HTTPRange(0, 2), HTTPRange(5, 2)]),
        ("bytes=0-1,,5-6", [HTTPRange(0, 2), HTTPRange(5, 2)]),
    ])
    def test_valid(self, header, expected):
        assert parse_range(header, 100) == expected

    @pytest.mark.parametrize("header", [
        "items=0-9",
        "bytes 0-9",
        "bytes=abc",
        "bytes=5",
        "bytes=9-1",
        "bytes=a-9",
        "bytes=0-x",
        "bytes=-",
        "bytes=+1-2",
    ])
    def test_invalid(self, header):
        with pytest.raises(InvalidRangeError) as exc_info:
            parse_range(header, 100)

        assert not isinstance(exc_info.value, NoOverlapError)

    @pytest.mark.parametrize("header", ["bytes=100-", "bytes=200-300", "bytes=-0"])
    def test_no_overlap(self, header):
        with pytest.raises(NoOverlapError):
            parse_range(header, 100)

    def test_partial_overlap_keeps_satisfiable_ranges(self):
        assert parse_range("bytes=500-600,0-4", 100) == [HTTPRange(0, 5)]

    def test_empty_resource(self):
        with pytest.raises(NoOverlapError):
            parse_range("bytes=-5", 0)

    def test_invalid_range_is_value_error(self):
        assert issubclass(InvalidRangeError, ValueError)


class TestHTTPRange:
    def test_end(self):
        assert HTTPRange(start=10, length=5).end == 14

    def test_content_range(self):
        assert HTTPRange(start=0, length=500).content_range(1234) == "bytes 0-499/1234"


def test_sum_ranges_size():
    assert sum_ranges_size([]) == 0
    assert sum_ranges_size([HTTPRange(0, 10), HTTPRange(50, 60)]) == 70
