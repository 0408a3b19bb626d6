"""
Test Security Module
====================

Unit tests for token comparison and guest input cleaning.
"""

import pytest
from pathlib import Path

# Add parent directory to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.security import clean_field, mask_token, normalize_address, tokens_match
from services.models import DRINK_MAX_LENGTH, GUEST_MAX_LENGTH


class TestCleanField:
    """Tests for clean_field."""

    def test_trims(self):
        assert clean_field("  Ada  ", GUEST_MAX_LENGTH) == "Ada"

    def test_collapses_line_breaks_and_tabs(self):
        """Runs of CR, LF and tab become one space."""
        assert clean_field("Ada\r\n\tLovelace", GUEST_MAX_LENGTH) == "Ada Lovelace"

    def test_removes_other_control_characters(self):
        assert clean_field("Mar\x00ti\x07ni\x7f", DRINK_MAX_LENGTH) == "Martini"

    def test_removes_c1_control_characters(self):
        """NEL counts as a line break; other C1 controls are dropped."""
        assert clean_field("Ada\x85Lovelace x\x9b", GUEST_MAX_LENGTH) == "Ada Lovelace x"

    def test_cannot_fake_an_order_line(self):
        """No line break of any kind survives into the forwarded message."""
        for brk in ("\n", "\r\n", "\x85", "\u2028", "\u2029"):
            cleaned = clean_field(f"Ada{brk}- Drink: Water", GUEST_MAX_LENGTH)
            assert cleaned == "Ada - Drink: Water"
            assert len(cleaned.splitlines()) == 1

    def test_truncates_guest(self):
        cleaned = clean_field("x" * 100, GUEST_MAX_LENGTH)
        assert len(cleaned) == 40

    def test_truncates_drink(self):
        cleaned = clean_field("y" * 200, DRINK_MAX_LENGTH)
        assert len(cleaned) == 80

    def test_trims_after_truncation(self):
        value = "a" * 39 + " b"
        assert clean_field(value, 40) == "a" * 39

    @pytest.mark.parametrize("value", [None, "", 0, False, [], "   ", "\n\t"])
    def test_empty_values(self, value):
        assert clean_field(value, GUEST_MAX_LENGTH) == ""

    def test_non_string_is_stringified(self):
        assert clean_field(42, GUEST_MAX_LENGTH) == "42"

    def test_unicode_kept(self):
        assert clean_field("Zoë 🍸", GUEST_MAX_LENGTH) == "Zoë 🍸"


class TestTokensMatch:
    """Tests for tokens_match."""

    def test_equal(self):
        assert tokens_match("s3cret", "s3cret") is True

    def test_trimmed(self):
        assert tokens_match(" s3cret\n", "s3cret") is True

    def test_mismatch(self):
        assert tokens_match("s3cret2", "s3cret") is False

    def test_missing(self):
        assert tokens_match(None, "s3cret") is False
        assert tokens_match("", "s3cret") is False

    def test_empty_expected_never_matches(self):
        assert tokens_match("", "") is False


class TestNormalizeAddress:
    """Tests for normalize_address."""

    def test_ipv4_mapped(self):
        assert normalize_address("::ffff:203.0.113.9") == "203.0.113.9"

    def test_plain(self):
        assert normalize_address("2001:db8::1") == "2001:db8::1"

    def test_missing(self):
        assert normalize_address(None) == "unknown"


def test_mask_token():
    assert mask_token("abcdefgh") == "****efgh"
    assert mask_token("abc") == "****"
    assert mask_token("") == ""
