"""Sync module: matching, change detection and reconciliation passes."""

from .engine import SyncEngine, SyncReport, skip_completed
from .matcher import ItemMatcher
from .resolver import ChangeDetector

__all__ = ['SyncEngine', 'SyncReport', 'skip_completed', 'ItemMatcher', 'ChangeDetector']
