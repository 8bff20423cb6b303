"""Item matching: stored cross-references first, then titles."""

from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from scipy.optimize import linear_sum_assignment

from ..core.models import (MATCHED_BY_ID, MATCHED_BY_TITLE, CanonicalItem,
                           MatchPair, MatchResult)

# Cost of a pairing that is not allowed; larger than any real timestamp gap
BLOCKED_COST = 1e15

PRIMARY = "primary"
SECONDARY = "secondary"


def _timestamp(item: CanonicalItem) -> float:
    return item.last_modified.timestamp() if item.last_modified else 0.0


class ItemMatcher:
    """Pairs items from the primary collection with items from a secondary one."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def match(self, primary_items: Sequence[CanonicalItem],
              secondary_items: Sequence[CanonicalItem]) -> MatchResult:
        """
        Match two collections.

        Items linked through a stored cross-reference pair first, whatever
        their titles. The rest are grouped by title; a title match is never
        made for an item that is already linked to a different counterpart.

        Returns:
            MatchResult with pairs and the unmatched items in input order
        """
        used: Dict[int, bool] = {}

        pairs = self._match_by_id(primary_items, secondary_items, used)
        id_pairs = len(pairs)

        leftovers = [(PRIMARY, item) for item in primary_items if id(item) not in used]
        leftovers += [(SECONDARY, item) for item in secondary_items if id(item) not in used]
        pairs.extend(self._match_by_title(leftovers, used))

        result = MatchResult(
            pairs=pairs,
            unmatched_primary=[item for item in primary_items if id(item) not in used],
            unmatched_secondary=[item for item in secondary_items if id(item) not in used],
        )
        self.logger.info(
            f"Matched {id_pairs} by id, {len(pairs) - id_pairs} by title; "
            f"{len(result.unmatched_primary)} primary and "
            f"{len(result.unmatched_secondary)} secondary unmatched"
        )
        return result

    # ------------------------------------------------------------------
    # ID phase
    # ------------------------------------------------------------------
    def _match_by_id(self, primary_items: Sequence[CanonicalItem],
                     secondary_items: Sequence[CanonicalItem],
                     used: Dict[int, bool]) -> List[MatchPair]:
        # Index secondary items by their own id and by every id they link to
        position: Dict[int, int] = {}
        by_own_id: Dict[Tuple[str, str], List[CanonicalItem]] = {}
        by_link: Dict[Tuple[str, str], List[CanonicalItem]] = {}
        secondary_keys: List[str] = []

        for index, item in enumerate(secondary_items):
            position[id(item)] = index
            by_own_id.setdefault(item.identity, []).append(item)
            for key, ref in item.cross_refs.items():
                if ref.id is not None:
                    by_link.setdefault((key, ref.id), []).append(item)
            if item.provider_key not in secondary_keys:
                secondary_keys.append(item.provider_key)

        pairs = []
        for primary in primary_items:
            candidates = list(by_link.get(primary.identity, []))
            for key in secondary_keys:
                linked = primary.linked_id(key)
                if linked is not None:
                    candidates.extend(by_own_id.get((key, linked), []))

            available = [item for item in candidates if id(item) not in used]
            if not available:
                continue

            secondary = min(available, key=lambda item: position[id(item)])
            used[id(primary)] = True
            used[id(secondary)] = True
            pairs.append(MatchPair.ordered(secondary, primary, MATCHED_BY_ID))
            self.logger.debug(f"ID match: {primary} <-> {secondary}")

        return pairs

    # ------------------------------------------------------------------
    # Title phase
    # ------------------------------------------------------------------
    @staticmethod
    def _can_pair(first: Tuple[str, CanonicalItem], second: Tuple[str, CanonicalItem]) -> bool:
        (first_side, a), (second_side, b) = first, second
        if first_side == second_side or a.provider_key == b.provider_key:
            return False
        return not a.linked_elsewhere(b) and not b.linked_elsewhere(a)

    @staticmethod
    def _make_pair(first: Tuple[str, CanonicalItem], second: Tuple[str, CanonicalItem]) -> MatchPair:
        secondary, primary = (first[1], second[1]) if first[0] == SECONDARY else (second[1], first[1])
        return MatchPair.ordered(secondary, primary, MATCHED_BY_TITLE)

    def _match_by_title(self, leftovers: List[Tuple[str, CanonicalItem]],
                        used: Dict[int, bool]) -> List[MatchPair]:
        groups: "OrderedDict[str, List[Tuple[str, CanonicalItem]]]" = OrderedDict()
        for entry in leftovers:
            title_key = entry[1].title_key
            if title_key:
                groups.setdefault(title_key, []).append(entry)

        pairs = []
        for title_key, group in groups.items():
            if len(group) < 2:
                continue

            if len(group) == 2:
                if self._can_pair(group[0], group[1]):
                    pairs.append(self._pair_entries(group[0], group[1], used))
                else:
                    self.logger.debug(f"Refusing title match for '{title_key}': already linked elsewhere")
                continue

            pairs.extend(self._match_crowded_group(title_key, group, used))

        return pairs

    def _pair_entries(self, first: Tuple[str, CanonicalItem], second: Tuple[str, CanonicalItem],
                      used: Dict[int, bool]) -> MatchPair:
        used[id(first[1])] = True
        used[id(second[1])] = True
        pair = self._make_pair(first, second)
        self.logger.debug(f"Title match: {pair.older} <-> {pair.newer}")
        return pair

    def _match_crowded_group(self, title_key: str, group: List[Tuple[str, CanonicalItem]],
                             used: Dict[int, bool]) -> List[MatchPair]:
        """More than two items share a title: try notes, then an assignment."""
        self.logger.info(f"{len(group)} items share the title '{title_key}'; resolving by notes")

        pairs = []
        by_notes: "OrderedDict[str, List[Tuple[str, CanonicalItem]]]" = OrderedDict()
        for entry in group:
            by_notes.setdefault(entry[1].notes_key, []).append(entry)

        for notes_group in by_notes.values():
            if len(notes_group) == 2 and self._can_pair(notes_group[0], notes_group[1]):
                pairs.append(self._pair_entries(notes_group[0], notes_group[1], used))

        remaining = [entry for entry in group if id(entry[1]) not in used]
        pairs.extend(self._assign(remaining, used))
        return pairs

    def _assign(self, entries: List[Tuple[str, CanonicalItem]],
                used: Dict[int, bool]) -> List[MatchPair]:
        """
        Pair what is left of an ambiguous title group.

        Only pairings allowed by ``_can_pair`` are made; among them the
        assignment minimizes the total gap between modification times, so
        items edited together end up together.
        """
        rows = [entry for entry in entries if entry[0] == PRIMARY]
        cols = [entry for entry in entries if entry[0] == SECONDARY]
        if not rows or not cols:
            return []

        cost_matrix = []
        for row in rows:
            cost_row = []
            for col in cols:
                if self._can_pair(row, col):
                    cost_row.append(abs(_timestamp(row[1]) - _timestamp(col[1])))
                else:
                    cost_row.append(BLOCKED_COST)
            cost_matrix.append(cost_row)

        row_ind, col_ind = linear_sum_assignment(cost_matrix)

        pairs = []
        for i, j in zip(row_ind, col_ind):
            if cost_matrix[i][j] >= BLOCKED_COST:
                continue
            pairs.append(self._pair_entries(rows[i], cols[j], used))
        return pairs
