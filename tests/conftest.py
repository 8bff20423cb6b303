#!/usr/bin/env python3
"""
Global pytest configuration and fixtures.

This module provides:
- An in-memory provider adapter that records every call made to it
- A factory for canonical items
- Temporary directory and TASKLINK_HOME isolation
"""

import os
import sys
import tempfile
import shutil
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Generator, Iterable, List, Optional

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tasklink.adapters.base import ProviderAdapter
from tasklink.core.exceptions import AdapterError
from tasklink.core.models import CanonicalItem, SyncStrategy
from tasklink.core.paths import reset_path_manager


BASE_TIME = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


class FakeAdapter(ProviderAdapter):
    """In-memory adapter that records calls instead of talking to a provider."""

    def __init__(self, name: str, items: Optional[Iterable[CanonicalItem]] = None,
                 strategies: Optional[Iterable[SyncStrategy]] = None,
                 is_authorized: bool = True, patchable: bool = False,
                 prunable: bool = False, fail_with: Optional[Exception] = None, **kwargs):
        super().__init__(name, **kwargs)
        self.items: List[CanonicalItem] = list(items or [])
        self._strategies = set(strategies) if strategies is not None else None
        self._authorized = is_authorized
        self.supports_patch = patchable
        self.supports_prune = prunable
        self.fail_with = fail_with

        self.requested_tags = []
        self.added: List[CanonicalItem] = []
        self.updated = []
        self.patched = []
        self.notes_written = []
        self.pruned = 0
        self._next_id = 1

    @property
    def sync_strategies(self):
        if self._strategies is None:
            return super().sync_strategies
        return set(self._strategies)

    def authorized(self) -> bool:
        return self._authorized

    def items_to_sync(self, tags=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.requested_tags.append(list(tags) if tags else None)
        return list(self.items)

    def add_item(self, item):
        new_id = f"{self.provider_key}-new-{self._next_id}"
        self._next_id += 1
        created = replace(item, external_id=new_id, url=f"fake://{self.provider_key}/{new_id}")
        self.added.append(created)
        self.items.append(created)
        return created

    def update_item(self, existing, item):
        self.updated.append((existing, item))
        return item

    def patch_item(self, existing, attributes):
        self.patched.append((existing, dict(attributes)))
        return attributes

    def write_notes(self, item, notes):
        self.notes_written.append((item.external_id, notes))

    def prune(self):
        if not self.supports_prune:
            raise AdapterError("prune not supported")
        before = len(self.items)
        self.items = [item for item in self.items if not item.completed]
        self.pruned = before - len(self.items)
        return self.pruned


def make_item(provider: str, external_id: str, title: str, notes: str = "",
              modified: Optional[datetime] = None, completed: bool = False,
              links: Optional[dict] = None, **fields) -> CanonicalItem:
    """Build a canonical item; ``links`` maps provider name to linked id."""
    item = CanonicalItem(
        provider=provider,
        external_id=external_id,
        title=title,
        notes=notes,
        completed=completed,
        last_modified=modified,
        **fields,
    )
    for linked_provider, linked_id in (links or {}).items():
        item.set_cross_reference(linked_provider, linked_id)
    return item


@pytest.fixture
def item_factory():
    """Factory for canonical items."""
    return make_item


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def at():
    """Offset helper: at(minutes=5) is five minutes after BASE_TIME."""
    def _at(**offset) -> datetime:
        return BASE_TIME + timedelta(**offset)
    return _at


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for test isolation."""
    temp_path = tempfile.mkdtemp(prefix="tasklink_test_")
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def tasklink_home(temp_dir, monkeypatch) -> Generator[str, None, None]:
    """Point TASKLINK_HOME at a temporary directory."""
    monkeypatch.setenv("TASKLINK_HOME", temp_dir)
    for name in ("TASKLINK_PRIMARY", "TASKLINK_SERVICES", "TASKLINK_TAGS"):
        monkeypatch.delenv(name, raising=False)
    reset_path_manager()
    try:
        yield temp_dir
    finally:
        reset_path_manager()
