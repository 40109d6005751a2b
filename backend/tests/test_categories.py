"""Tests for the [#Category] description tag."""

import pytest

from cashbook.services.assistant.categories import (
    UNCATEGORIZED,
    category_bucket,
    decode_description,
    encode_description,
)


class TestDecode:
    def test_tagged(self):
        assert decode_description("[#Food] lunch with team") == ("Food", "lunch with team")

    def test_untagged(self):
        assert decode_description("lunch") == ("", "lunch")

    def test_empty(self):
        assert decode_description(None) == ("", "")
        assert decode_description("") == ("", "")

    def test_leading_whitespace_before_tag(self):
        assert decode_description("  [#Rent]   march") == ("Rent", "march")

    def test_tag_only(self):
        assert decode_description("[#Rent]") == ("Rent", "")


class TestEncode:
    def test_with_category(self):
        assert encode_description("lunch", "Food") == "[#Food] lunch"

    def test_without_category(self):
        assert encode_description("  lunch  ", "") == "lunch"
        assert encode_description("lunch", None) == "lunch"

    def test_brackets_removed_from_category(self):
        assert encode_description("x", "Fo]od") == "[#Food] x"


class TestRoundTrip:
    @pytest.mark.parametrize(
        "description,category",
        [
            ("lunch with team", "Food"),
            ("", "Rent"),
            ("cab to airport", "Travel & Transport"),
            ("line one\nline two", "Notes"),
            ("no tag here", ""),
            ("[brackets] in description", "Misc"),
        ],
    )
    def test_decode_encode(self, description, category):
        assert decode_description(encode_description(description, category)) == (category, description)


class TestBucket:
    def test_untagged_is_uncategorized(self):
        assert category_bucket("snacks") == UNCATEGORIZED
        assert category_bucket(None) == UNCATEGORIZED

    def test_tagged(self):
        assert category_bucket("[#Food] snacks") == "Food"
