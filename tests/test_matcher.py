"""
Tests for pairing primary items with secondary items.
"""

from tests.conftest import make_item

from tasklink.core.models import MATCHED_BY_ID, MATCHED_BY_TITLE
from tasklink.sync.matcher import ItemMatcher


def _pair_ids(result):
    return sorted(
        tuple(sorted((pair.older.external_id, pair.newer.external_id)))
        for pair in result.pairs
    )


class TestIdMatching:
    """Test matching through stored cross-references."""

    def test_primary_links_to_secondary(self, at):
        """Test a primary item pointing at a secondary id pairs whatever the titles."""
        primary = make_item("Omnifocus", "o1", "Write report", modified=at(hours=1), links={"Github": "g1"})
        secondary = make_item("Github", "g1", "Something else entirely", modified=at())

        result = ItemMatcher().match([primary], [secondary])

        assert len(result.pairs) == 1
        pair = result.pairs[0]
        assert pair.matched_by == MATCHED_BY_ID
        assert pair.older is secondary
        assert pair.newer is primary
        assert result.unmatched_primary == []
        assert result.unmatched_secondary == []

    def test_secondary_links_to_primary(self, at):
        """Test a link stored only on the secondary side also pairs."""
        primary = make_item("Omnifocus", "o1", "Write report", modified=at())
        secondary = make_item("Github", "g1", "Write the report", modified=at(hours=1), links={"Omnifocus": "o1"})

        result = ItemMatcher().match([primary], [secondary])

        assert _pair_ids(result) == [("g1", "o1")]
        assert result.pairs[0].newer is secondary

    def test_id_match_wins_over_title_match(self, at):
        """Test a linked item is not stolen by a same-titled stranger."""
        primary = make_item("Omnifocus", "o1", "Buy milk", links={"Github": "g2"})
        stranger = make_item("Github", "g1", "Buy milk")
        linked = make_item("Github", "g2", "Buy oat milk")

        result = ItemMatcher().match([primary], [stranger, linked])

        assert _pair_ids(result) == [("g2", "o1")]
        assert result.unmatched_secondary == [stranger]

    def test_earliest_secondary_wins(self):
        """Test two secondaries claiming one primary: the first in input order pairs."""
        primary = make_item("Omnifocus", "o1", "Plan trip")
        first = make_item("Github", "g1", "Plan trip", links={"Omnifocus": "o1"})
        second = make_item("Github", "g2", "Plan trip", links={"Omnifocus": "o1"})

        result = ItemMatcher().match([primary], [first, second])

        assert _pair_ids(result) == [("g1", "o1")]
        assert result.unmatched_secondary == [second]


class TestTitleMatching:
    """Test matching unlinked items by title."""

    def test_title_match_orders_by_modification(self, at):
        """Test a fresh title match orders the pair older first."""
        primary = make_item("Omnifocus", "o1", "Review PR", modified=at(hours=2))
        secondary = make_item("Github", "g7", "review pr ", modified=at())

        result = ItemMatcher().match([primary], [secondary])

        assert len(result.pairs) == 1
        pair = result.pairs[0]
        assert pair.matched_by == MATCHED_BY_TITLE
        assert pair.older is secondary
        assert pair.newer is primary

    def test_missing_timestamp_sorts_oldest(self, at):
        """Test an item without a modification time counts as older."""
        primary = make_item("Omnifocus", "o1", "Review PR", modified=None)
        secondary = make_item("Github", "g7", "Review PR", modified=at())

        pair = ItemMatcher().match([primary], [secondary]).pairs[0]

        assert pair.older is primary
        assert not pair.in_sync

    def test_equal_timestamps_primary_is_newer(self, at):
        """Test the primary item wins ties."""
        primary = make_item("Omnifocus", "o1", "Review PR", modified=at())
        secondary = make_item("Github", "g7", "Review PR", modified=at())

        pair = ItemMatcher().match([primary], [secondary]).pairs[0]

        assert pair.newer is primary
        assert pair.in_sync

    def test_linked_elsewhere_never_title_matched(self):
        """Test an item linked to a different counterpart is left alone."""
        primary = make_item("Omnifocus", "o1", "Buy milk")
        secondary = make_item("Github", "g1", "Buy milk", links={"Omnifocus": "o-old"})

        result = ItemMatcher().match([primary], [secondary])

        assert result.pairs == []
        assert result.unmatched_primary == [primary]
        assert result.unmatched_secondary == [secondary]

    def test_unlinked_candidate_preferred(self):
        """Test a linked primary whose counterpart is gone cannot take a new item."""
        linked = make_item("Omnifocus", "o1", "Buy milk", links={"Github": "g-gone"})
        unlinked = make_item("Omnifocus", "o2", "Buy milk")
        incoming = make_item("Github", "g3", "Buy milk")

        result = ItemMatcher().match([linked, unlinked], [incoming])

        assert _pair_ids(result) == [("g3", "o2")]
        assert result.unmatched_primary == [linked]

    def test_linked_pair_then_title_pair(self):
        """Test the ID phase consumes the linked item before titles are compared."""
        linked = make_item("Omnifocus", "o1", "Buy milk", links={"Github": "g1"})
        unlinked = make_item("Omnifocus", "o2", "Buy milk")
        counterpart = make_item("Github", "g1", "Buy milk")
        incoming = make_item("Github", "g3", "Buy milk")

        result = ItemMatcher().match([linked, unlinked], [counterpart, incoming])

        assert _pair_ids(result) == [("g1", "o1"), ("g3", "o2")]
        assert [pair.matched_by for pair in result.pairs] == [MATCHED_BY_ID, MATCHED_BY_TITLE]

    def test_same_side_items_never_paired(self):
        """Test two primary items with one title do not pair with each other."""
        first = make_item("Omnifocus", "o1", "Inbox zero")
        second = make_item("Omnifocus", "o2", "Inbox zero")

        result = ItemMatcher().match([first, second], [])

        assert result.pairs == []
        assert result.unmatched_primary == [first, second]

    def test_empty_titles_not_matched(self):
        """Test blank titles are never considered equal."""
        primary = make_item("Omnifocus", "o1", "  ")
        secondary = make_item("Github", "g1", "")

        result = ItemMatcher().match([primary], [secondary])

        assert result.pairs == []


class TestCrowdedTitleGroups:
    """Test titles shared by more than two items."""

    def test_notes_split_group(self):
        """Test notes decide which same-titled items belong together."""
        p_alpha = make_item("Omnifocus", "o1", "Standup", notes="Alpha team")
        p_beta = make_item("Omnifocus", "o2", "Standup", notes="Beta team")
        s_beta = make_item("Github", "g1", "Standup", notes="beta team")
        s_alpha = make_item("Github", "g2", "Standup", notes="Alpha team")

        result = ItemMatcher().match([p_alpha, p_beta], [s_beta, s_alpha])

        assert _pair_ids(result) == [("g1", "o2"), ("g2", "o1")]

    def test_assignment_by_modification_time(self, at):
        """Test identical items pair by closest modification time."""
        p_early = make_item("Omnifocus", "o1", "Water plants", modified=at(days=-3))
        p_late = make_item("Omnifocus", "o2", "Water plants", modified=at())
        s_late = make_item("Github", "g1", "Water plants", modified=at(minutes=5))
        s_early = make_item("Github", "g2", "Water plants", modified=at(days=-3, minutes=5))

        result = ItemMatcher().match([p_early, p_late], [s_late, s_early])

        assert _pair_ids(result) == [("g1", "o2"), ("g2", "o1")]
        assert result.unmatched_primary == []
        assert result.unmatched_secondary == []

    def test_assignment_respects_links(self, at):
        """Test the assignment never pairs an item linked elsewhere."""
        linked = make_item("Omnifocus", "o1", "Water plants", modified=at(), links={"Github": "g-gone"})
        unlinked = make_item("Omnifocus", "o2", "Water plants", modified=at(days=-30))
        incoming = make_item("Github", "g1", "Water plants", modified=at(minutes=1))

        result = ItemMatcher().match([linked, unlinked], [incoming])

        assert _pair_ids(result) == [("g1", "o2")]
        assert result.unmatched_primary == [linked]

    def test_total_counts_everything(self):
        """Test the result total covers pairs and leftovers."""
        result = ItemMatcher().match(
            [make_item("Omnifocus", "o1", "A"), make_item("Omnifocus", "o2", "B")],
            [make_item("Github", "g1", "A"), make_item("Github", "g2", "C")],
        )

        assert len(result.pairs) == 1
        assert result.total == 3
