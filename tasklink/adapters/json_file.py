"""
Adapter keeping a provider's items in a local JSON file.

The file holds ``{"items": [...]}`` where every item uses the standard raw
field names (``id``, ``title``, ``notes``, ``completed``, ``due_date``,
``updated_at``, ``tags``, ...). Useful as a primary store, for local
testing, and as a template for real provider adapters.

Options:
    path: JSON file location (required)
    strategies: sync directions to allow (default: all)
    filter_by_tags: only hand out items carrying a requested tag (default: true)
    url_template: format string for item urls, e.g. "tasks://item/{id}"
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set
import os
import uuid

from ..core.exceptions import AdapterError, AuthorizationError, ConfigurationError
from ..core.models import CanonicalItem, SyncStrategy
from ..items.builder import STANDARD_ATTRIBUTE_MAP, AttributeMap, ItemBuilder
from ..items.providers import tag_names
from ..utils.date import now
from ..utils.io import safe_read_json, safe_write_json
from .base import ProviderAdapter


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class JsonFileAdapter(ProviderAdapter):
    """File-backed provider implementing the full adapter contract."""

    supports_patch = True
    supports_prune = True

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        path = self.options.get("path")
        if not path:
            raise ConfigurationError(f"{self.name}: the json_file adapter needs a 'path' option")
        self.path = Path(os.path.expanduser(str(path)))

        self.attribute_map = AttributeMap(
            provider=self.name,
            fields=dict(STANDARD_ATTRIBUTE_MAP),
            tag_reader=tag_names,
        )
        self.builder = ItemBuilder(
            self.attribute_map,
            known_providers=self.known_providers,
            base_tags=self.base_tags,
            logger=self.logger,
        )

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------
    def _load(self) -> List[Dict[str, Any]]:
        data = safe_read_json(str(self.path), default={"items": []})
        records = data.get("items") if isinstance(data, Mapping) else None
        if not isinstance(records, list):
            raise AdapterError(f"{self.path} is not a tasklink item file")
        return [record for record in records if isinstance(record, dict)]

    def _save(self, records: List[Dict[str, Any]]) -> None:
        if not self.authorized():
            raise AuthorizationError(f"{self.path} is not writable")
        if not safe_write_json(str(self.path), {"items": records}):
            raise AdapterError(f"Could not write {self.path}")

    def _find(self, records: List[Dict[str, Any]], item_id: str) -> Dict[str, Any]:
        for record in records:
            if str(record.get("id")) == str(item_id):
                return record
        raise AdapterError(f"{self.name} has no item with id {item_id}")

    def _record_from(self, item: CanonicalItem, record_id: str) -> Dict[str, Any]:
        timestamp = now()
        url = item.url
        if self.options.get("url_template"):
            url = self.options["url_template"].format(id=record_id)

        record = {
            "id": record_id,
            "title": item.title,
            "notes": item.sync_notes(),
            "completed": bool(item.completed),
            "completed_at": _serialize(item.completed_at),
            "created_at": _serialize(item.created_at or timestamp),
            "due_date": _serialize(item.due_date),
            "start_date": _serialize(item.start_date),
            "updated_at": _serialize(timestamp),
            "status": item.status,
            "flagged": bool(item.flagged),
            "url": url,
            "type": item.item_type,
            "tags": sorted(item.tags),
        }
        return {key: value for key, value in record.items() if value is not None}

    # ------------------------------------------------------------------
    # Adapter contract
    # ------------------------------------------------------------------
    @property
    def sync_strategies(self) -> Set[SyncStrategy]:
        configured = self.options.get("strategies")
        if not configured:
            return super().sync_strategies
        try:
            return {SyncStrategy(value) for value in configured}
        except ValueError as exc:
            raise ConfigurationError(f"{self.name}: invalid strategy in {configured!r}") from exc

    def authorized(self) -> bool:
        if self.path.exists():
            return os.access(self.path, os.R_OK | os.W_OK)
        parent = self.path.parent
        while not parent.exists() and parent != parent.parent:
            parent = parent.parent
        return os.access(parent, os.W_OK)

    def items_to_sync(self, tags: Optional[Sequence[str]] = None) -> List[CanonicalItem]:
        items = self.builder.build_all(self._load())
        if tags and self.options.get("filter_by_tags", True):
            wanted = set(tags)
            items = [item for item in items if item.tags & wanted]
        self.logger.debug(f"{self.name}: {len(items)} item(s) to sync from {self.path}")
        return items

    def add_item(self, item: CanonicalItem) -> CanonicalItem:
        records = self._load()
        record = self._record_from(item, uuid.uuid4().hex)
        records.append(record)
        self._save(records)
        return self.builder.build(record)

    def update_item(self, existing: CanonicalItem, item: CanonicalItem) -> CanonicalItem:
        records = self._load()
        record = self._find(records, existing.external_id)
        replacement = self._record_from(item, record["id"])
        replacement["created_at"] = record.get("created_at", replacement["created_at"])
        if "url" in record and not self.options.get("url_template"):
            replacement["url"] = record["url"]
        record.clear()
        record.update(replacement)
        self._save(records)
        return self.builder.build(record)

    def patch_item(self, existing: CanonicalItem, attributes: Mapping[str, Any]) -> CanonicalItem:
        records = self._load()
        record = self._find(records, existing.external_id)
        raw_fields = self.attribute_map.resolved_fields
        for name, value in attributes.items():
            raw_name = raw_fields.get(name)
            if raw_name is None:
                raise AdapterError(f"{self.name} cannot patch field '{name}'")
            if value is None:
                record.pop(raw_name, None)
            else:
                record[raw_name] = _serialize(value)
        record["updated_at"] = _serialize(now())
        self._save(records)
        return self.builder.build(record)

    def write_notes(self, item: CanonicalItem, notes: str) -> None:
        records = self._load()
        record = self._find(records, item.external_id)
        record["notes"] = notes
        record["updated_at"] = _serialize(now())
        self._save(records)

    def prune(self) -> int:
        records = self._load()
        kept = [record for record in records if not record.get("completed")]
        removed = len(records) - len(kept)
        if removed:
            self._save(kept)
            self.logger.info(f"Pruned {removed} completed item(s) from {self.path}")
        return removed
