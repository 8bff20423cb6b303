"""
Tests for canonical items, match pairs and run records.
"""

from tests.conftest import make_item

from tasklink.core.models import MATCHED_BY_TITLE, CrossReference, MatchPair, RunRecord, RunStatus


class TestCanonicalItem:
    """Test cross-reference bookkeeping on items."""

    def test_set_cross_reference_any_spelling(self):
        """Test links are stored under the provider key."""
        item = make_item("Omnifocus", "o1", "Renew passport")
        item.set_cross_reference("Google Tasks", 123, "https://tasks.google.com/123")

        assert item.cross_ref("GoogleTasks") == CrossReference("google_tasks", "123", "https://tasks.google.com/123")
        assert item.linked_id("google tasks") == "123"

    def test_overwrite_reference(self):
        """Test a later link replaces the earlier one."""
        item = make_item("Omnifocus", "o1", "Renew passport", links={"Github": "g1"})
        item.set_cross_reference("Github", "g2")

        assert item.linked_id("Github") == "g2"

    def test_linked_elsewhere(self):
        """Test detecting a link to a different counterpart."""
        item = make_item("Omnifocus", "o1", "Buy milk", links={"Github": "g1"})

        assert not item.linked_elsewhere(make_item("Github", "g1", "Buy milk"))
        assert item.linked_elsewhere(make_item("Github", "g2", "Buy milk"))
        assert not item.linked_elsewhere(make_item("Asana", "a1", "Buy milk"))

    def test_sync_notes(self):
        """Test notes are written with every stored link."""
        item = make_item("Omnifocus", "o1", "Buy milk", notes="Semi-skimmed", links={"Github": "g1"})
        item.set_cross_reference("Asana", "a1", "https://app.asana.com/0/a1")

        assert item.sync_notes() == (
            "Semi-skimmed\ngithub_id: g1\nasana_id: a1\nasana_url: https://app.asana.com/0/a1"
        )

    def test_str(self):
        """Test the log representation."""
        assert str(make_item("Github", "g1", " Fix bug ")) == "Github: (g1) Fix bug"


class TestMatchPair:
    """Test pair ordering."""

    def test_ordered(self, at):
        """Test the older item comes first whatever the argument order."""
        early = make_item("Github", "g1", "x", modified=at())
        late = make_item("Omnifocus", "o1", "x", modified=at(minutes=1))

        pair = MatchPair.ordered(late, early, MATCHED_BY_TITLE)

        assert pair.older is early
        assert pair.newer is late
        assert not pair.linked_by_id
        assert not pair.in_sync


class TestRunRecord:
    """Test run record serialization and merging."""

    def test_to_dict_omits_empty_fields(self):
        """Test unset fields are not serialized."""
        record = RunRecord(provider="Asana", items_synced=0, status=RunStatus.SUCCESS)

        assert record.to_dict() == {"service": "Asana", "items_synced": 0, "status": "success"}

    def test_from_dict_tolerates_bad_values(self):
        """Test unknown statuses and non-numeric counts are tolerated."""
        record = RunRecord.from_dict({"service": "Asana", "status": "exploded", "items_synced": "many"})

        assert record.status is None
        assert record.items_synced == 0

    def test_merged_over(self):
        """Test a delta keeps stored values it does not set."""
        stored = RunRecord(provider="Asana", last_failed="yesterday", items_synced=4)
        delta = RunRecord(provider="Asana", last_successful="today", items_synced=0)

        merged = delta.merged_over(stored)

        assert merged.last_failed == "yesterday"
        assert merged.last_successful == "today"
        assert merged.items_synced == 0
        assert delta.merged_over(None) == delta
