"""
Tests for core.helpers.

Ids reach the services from URLs, JSON bodies and WebSocket frames, so
coerce_id must accept every well-formed spelling and nothing else.
"""

import pytest

from core.helpers import clamp, coerce_id, generate_token


class TestCoerceId:
    """Tests for coerce_id()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(7, 7), ("7", 7), (" 42 ", 42), ("0012", 12)],
    )
    def test_accepts_well_formed_ids(self, value, expected):
        assert coerce_id(value) == expected

    @pytest.mark.parametrize(
        "value",
        [None, "", "  ", "abc", "4.2", 4.0, 0, -1, "-1", True, False, "²", [], {}],
    )
    def test_rejects_everything_else(self, value):
        assert coerce_id(value) is None


class TestGenerateToken:
    """Tests for generate_token()."""

    def test_length_is_twice_byte_count(self):
        assert len(generate_token(8)) == 16

    def test_tokens_are_unique(self):
        assert len({generate_token() for _ in range(50)}) == 50


class TestClamp:
    def test_clamps_both_ends(self):
        assert clamp(0, 1, 10) == 1
        assert clamp(11, 1, 10) == 10
        assert clamp(5, 1, 10) == 5
