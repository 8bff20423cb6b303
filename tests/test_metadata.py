"""
Tests for reading and writing cross-reference metadata in notes.
"""

import pytest

from tasklink.utils.metadata import (
    decode_metadata,
    encode_metadata,
    metadata_keys,
    strip_metadata,
)


KEYS = ["sync_id", "sync_url"]


class TestDecodeMetadata:
    """Test extracting metadata from notes."""

    def test_decode_single_key(self):
        """Test a trailing metadata line is extracted and removed."""
        values, remaining = decode_metadata("Buy milk\nsync_id: 42", KEYS)

        assert values == {"sync_id": "42", "sync_url": None}
        assert remaining == "Buy milk"

    def test_decode_empty_notes(self):
        """Test empty and missing notes decode to no values."""
        for text in ("", None):
            values, remaining = decode_metadata(text, KEYS)
            assert values == {"sync_id": None, "sync_url": None}
            assert remaining == ""

    def test_decode_key_anywhere_in_notes(self):
        """Test keys are found at the start, middle and end of the notes."""
        text = "sync_id: 1\nBuy milk\nsync_url: https://example.com/1\nfrom the corner shop"
        values, remaining = decode_metadata(text, KEYS)

        assert values == {"sync_id": "1", "sync_url": "https://example.com/1"}
        assert remaining == "Buy milk\nfrom the corner shop"

    def test_decode_duplicate_keys_first_wins(self):
        """Test every occurrence is removed and the first supplies the value."""
        values, remaining = decode_metadata("Buy milk\nsync_id: 1\nsync_id: 2", KEYS)

        assert values["sync_id"] == "1"
        assert remaining == "Buy milk"

    def test_decode_value_runs_to_end_of_line(self):
        """Test values containing spaces are read whole."""
        values, remaining = decode_metadata("Buy milk\nsync_id: abc def  \nfrom the shop", KEYS)

        assert values["sync_id"] == "abc def"
        assert remaining == "Buy milk\nfrom the shop"

    def test_decode_windows_line_endings(self):
        """Test metadata lines ending in CRLF are removed cleanly."""
        values, remaining = decode_metadata("Buy milk\r\nsync_id: 42\r\nsync_url: x://42", KEYS)

        assert values == {"sync_id": "42", "sync_url": "x://42"}
        assert remaining == "Buy milk"

    def test_decode_key_inside_sentence_ignored(self):
        """Test a key mentioned mid-line is part of the user's notes."""
        values, remaining = decode_metadata("Ask about sync_id: 42 later", KEYS)

        assert values["sync_id"] is None
        assert remaining == "Ask about sync_id: 42 later"

    def test_decode_ignores_embedded_key_names(self):
        """Test a key glued to another word is not treated as metadata."""
        values, remaining = decode_metadata("async_id: 7", KEYS)

        assert values["sync_id"] is None
        assert remaining == "async_id: 7"

    def test_decode_only_requested_keys(self):
        """Test keys that were not asked for are left in the notes."""
        values, remaining = decode_metadata("Buy milk\nother_id: 9", KEYS)

        assert values == {"sync_id": None, "sync_url": None}
        assert remaining == "Buy milk\nother_id: 9"

    def test_strip_metadata(self):
        """Test strip_metadata keeps only the user's notes."""
        assert strip_metadata("Call Bob\nsync_id: 5\nsync_url: x://5", KEYS) == "Call Bob"


class TestEncodeMetadata:
    """Test writing metadata into notes."""

    def test_encode_appends_lines(self):
        """Test values are appended after the notes, one per line."""
        assert encode_metadata("Buy milk", {"sync_id": "42"}) == "Buy milk\nsync_id: 42"

    def test_encode_empty_base(self):
        """Test encoding onto empty notes has no leading blank line."""
        assert encode_metadata("", {"sync_id": "42"}) == "sync_id: 42"
        assert encode_metadata(None, {"sync_id": "42"}) == "sync_id: 42"

    def test_encode_replaces_existing_value(self):
        """Test re-encoding never duplicates a key."""
        once = encode_metadata("Buy milk", {"sync_id": "1"})
        twice = encode_metadata(once, {"sync_id": "2"})

        assert twice == "Buy milk\nsync_id: 2"
        assert twice.count("sync_id:") == 1

    def test_encode_replaces_whole_line(self):
        """Test re-encoding drops the old value entirely, including words after a space."""
        assert encode_metadata("Buy milk\nsync_id: 42 stale", {"sync_id": "43"}) == "Buy milk\nsync_id: 43"

    def test_encode_value_with_spaces(self):
        """Test a value containing spaces decodes back unchanged."""
        notes = encode_metadata("Buy milk", {"reclaim_id": "abc def"})

        values, remaining = decode_metadata(notes, ["reclaim_id"])

        assert values == {"reclaim_id": "abc def"}
        assert remaining == "Buy milk"

    def test_encode_none_removes_key(self):
        """Test a None value clears a stale reference."""
        assert encode_metadata("Buy milk\nsync_id: 1", {"sync_id": None}) == "Buy milk"

    def test_encode_keeps_unrelated_metadata(self):
        """Test keys not being written stay untouched."""
        notes = encode_metadata("Buy milk\nother_id: 9", {"sync_id": "1"})

        assert "other_id: 9" in notes
        assert notes.endswith("sync_id: 1")

    @pytest.mark.parametrize("text", [
        "",
        "Buy milk",
        "Buy milk\nsync_id: old",
        "line one\n\nline two\nsync_url: http://stale",
        "sync_id: 3",
        "Buy milk\nsync_id: 42 stale",
    ])
    @pytest.mark.parametrize("sync_id", ["77", "abc def"])
    def test_encode_then_decode_restores_notes(self, text, sync_id):
        """Test decoding encoded notes gives back the values and the base notes."""
        _, base = decode_metadata(text, KEYS)
        values = {"sync_id": sync_id, "sync_url": "https://example.com/77"}

        decoded, remaining = decode_metadata(encode_metadata(base, values), KEYS)

        assert decoded == values
        assert remaining == base


class TestMetadataKeys:
    """Test building metadata keys for providers."""

    def test_keys_in_order(self):
        """Test each provider contributes an id and a url key."""
        assert metadata_keys(["github", "googletasks"]) == [
            "github_id", "github_url", "googletasks_id", "googletasks_url",
        ]

    def test_blank_provider_skipped(self):
        """Test empty provider keys produce no keys."""
        assert metadata_keys(["", "asana"]) == ["asana_id", "asana_url"]
