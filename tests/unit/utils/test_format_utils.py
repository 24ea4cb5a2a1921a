#!/usr/bin/env python3
"""
Tests for atelier.utils.format_utils
"""

import pytest

from atelier.utils.format_utils import format_megabytes, format_percentage, truncate_string


class TestFormatMegabytes:

    @pytest.mark.parametrize("num_bytes,expected", [
        (2621440, "2.50MB"),
        (10 * 1024 * 1024, "10.00MB"),
        (1024, "0.00MB"),
        (12 * 1024 * 1024 + 1, "12.00MB"),
    ])
    def test_values(self, num_bytes, expected):
        assert format_megabytes(num_bytes) == expected

    @pytest.mark.parametrize("num_bytes", [None, 0])
    def test_missing_size_is_blank(self, num_bytes):
        assert format_megabytes(num_bytes) == ""


class TestFormatPercentage:

    def test_rounds_half_up(self):
        assert format_percentage(1, 8) == 13    # 12.5
        assert format_percentage(5, 200) == 3   # 2.5

    def test_complete(self):
        assert format_percentage(4096, 4096) == 100

    def test_unknown_total(self):
        assert format_percentage(100, 0) == 0
        assert format_percentage(100, -1) == 0

    def test_clamped(self):
        assert format_percentage(300, 100) == 100


class TestTruncateString:

    def test_short_text_unchanged(self):
        assert truncate_string("ring.png") == "ring.png"

    def test_long_text_gets_suffix(self):
        result = truncate_string("a" * 50, max_length=10)
        assert result == "aaaaaaa..."
        assert len(result) == 10

    def test_none(self):
        assert truncate_string(None) == ""
