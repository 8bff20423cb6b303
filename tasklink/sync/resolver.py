"""Field-level change detection for item updates."""

from typing import Any, Dict, Optional
import logging

from ..core.models import CanonicalItem
from ..utils.date import dates_equal


class ChangeDetector:
    """Works out which canonical fields an update would actually change."""

    PATCHABLE_FIELDS = ("title", "notes", "completed", "due_date", "start_date", "flagged")

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def changed_attributes(self, existing: CanonicalItem,
                           source: CanonicalItem) -> Dict[str, Any]:
        """
        Compare an item with the version it is about to be updated from.

        Args:
            existing: Item as currently stored by its provider
            source: Newer counterpart supplying the values

        Returns:
            Changed fields mapped to the source's values (empty if none)
        """
        changes: Dict[str, Any] = {}

        if self._text_differs(existing.title, source.title):
            changes["title"] = source.title
        if self._text_differs(existing.notes, source.notes):
            changes["notes"] = source.notes
        if bool(existing.completed) != bool(source.completed):
            changes["completed"] = bool(source.completed)
        if not dates_equal(existing.due_date, source.due_date):
            changes["due_date"] = source.due_date
        if not dates_equal(existing.start_date, source.start_date):
            changes["start_date"] = source.start_date
        if bool(existing.flagged) != bool(source.flagged):
            changes["flagged"] = bool(source.flagged)

        if changes:
            self.logger.debug(f"{existing} differs in: {', '.join(sorted(changes))}")
        return changes

    @staticmethod
    def _text_differs(current: Optional[str], incoming: Optional[str]) -> bool:
        return (current or "").strip() != (incoming or "").strip()
