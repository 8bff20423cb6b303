"""
Domain models for tasklink.

This module contains the core data structures shared by the item builder,
the matcher, the sync engine and the run log.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple
import json
import os

from .exceptions import ConfigurationError
from ..utils.date import format_timestamp, now
from ..utils.metadata import ID_SUFFIX, URL_SUFFIX, encode_metadata
from ..utils.text import normalize_notes, normalize_title, provider_key


MATCHED_BY_ID = "id"
MATCHED_BY_TITLE = "title"

DEFAULT_TAGS = ["TaskLink"]
DEFAULT_ADAPTER = "tasklink.adapters.json_file:JsonFileAdapter"


def _normalize_path(path: str) -> str:
    """Expand user and convert to absolute path."""
    return os.path.abspath(os.path.expanduser(path))


class SyncStrategy(Enum):
    """Directions a provider can be synchronized in."""

    TWO_WAY = "two_way"
    FROM_PRIMARY = "from_primary"
    TO_PRIMARY = "to_primary"


class RunStatus(Enum):
    """Outcome of one provider's sync run."""

    IDLE = "idle"
    SKIPPED = "skipped"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class CrossReference:
    """A link from an item to its counterpart on another provider."""

    provider_key: str
    id: Optional[str] = None
    url: Optional[str] = None

    @property
    def id_key(self) -> str:
        return f"{self.provider_key}{ID_SUFFIX}"

    @property
    def url_key(self) -> str:
        return f"{self.provider_key}{URL_SUFFIX}"

    def to_metadata(self) -> Dict[str, Optional[str]]:
        return {self.id_key: self.id, self.url_key: self.url}


@dataclass
class CanonicalItem:
    """A task-like record from any provider, normalized to uniform fields."""

    provider: str
    external_id: str
    title: str = ""
    notes: str = ""
    cross_refs: Dict[str, CrossReference] = field(default_factory=dict)
    completed: bool = False
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    url: Optional[str] = None
    status: Optional[str] = None
    item_type: Optional[str] = None
    flagged: bool = False
    tags: Set[str] = field(default_factory=set)
    extra: Dict[str, Any] = field(default_factory=dict)
    raw: Any = field(default=None, repr=False, compare=False)

    @property
    def provider_key(self) -> str:
        return provider_key(self.provider)

    @property
    def identity(self) -> Tuple[str, str]:
        """Key that is unique across all collections in a sync pass."""
        return (self.provider_key, str(self.external_id))

    @property
    def friendly_title(self) -> str:
        return (self.title or "").strip()

    @property
    def title_key(self) -> str:
        return normalize_title(self.title)

    @property
    def notes_key(self) -> str:
        return normalize_notes(self.notes)

    def cross_ref(self, provider: str) -> Optional[CrossReference]:
        """Return the stored link to ``provider``, if any."""
        return self.cross_refs.get(provider_key(provider))

    def linked_id(self, provider: str) -> Optional[str]:
        """Return the counterpart id stored for ``provider``, if any."""
        ref = self.cross_ref(provider)
        return ref.id if ref else None

    def linked_elsewhere(self, other: CanonicalItem) -> bool:
        """True when this item is already linked to a different item on ``other``'s provider."""
        linked = self.linked_id(other.provider)
        return linked is not None and linked != str(other.external_id)

    def set_cross_reference(self, provider: str, item_id: Any,
                            url: Optional[str] = None) -> CrossReference:
        """Record (or overwrite) the link to a counterpart on ``provider``."""
        key = provider_key(provider)
        ref = CrossReference(
            provider_key=key,
            id=str(item_id) if item_id is not None else None,
            url=url,
        )
        self.cross_refs[key] = ref
        return ref

    def metadata_values(self) -> Dict[str, Optional[str]]:
        """Metadata lines (id and url per provider) for every stored cross-reference."""
        values: Dict[str, Optional[str]] = {}
        for ref in self.cross_refs.values():
            values.update(ref.to_metadata())
        return values

    def sync_notes(self) -> str:
        """User notes followed by all stored cross-references."""
        return encode_metadata(self.notes, self.metadata_values())

    def __str__(self) -> str:
        return f"{self.provider}: ({self.external_id}) {self.friendly_title}"


def _modified_sort_key(item: CanonicalItem) -> Tuple[bool, float]:
    # None sorts as the oldest possible modification
    if item.last_modified is None:
        return (False, 0.0)
    return (True, item.last_modified.timestamp())


@dataclass
class MatchPair:
    """Two counterpart items, ordered by last modification (older first)."""

    older: CanonicalItem
    newer: CanonicalItem
    matched_by: str = MATCHED_BY_ID

    @classmethod
    def ordered(cls, first: CanonicalItem, second: CanonicalItem,
                matched_by: str = MATCHED_BY_ID) -> MatchPair:
        """Build a pair from two items; on a tie ``second`` counts as newer."""
        older, newer = sorted((first, second), key=_modified_sort_key)
        return cls(older=older, newer=newer, matched_by=matched_by)

    @property
    def in_sync(self) -> bool:
        """Both sides report the same modification time."""
        return (
            self.older.last_modified is not None
            and self.newer.last_modified is not None
            and self.older.last_modified == self.newer.last_modified
        )

    @property
    def linked_by_id(self) -> bool:
        return self.matched_by == MATCHED_BY_ID


@dataclass
class MatchResult:
    """Outcome of matching two collections."""

    pairs: List[MatchPair] = field(default_factory=list)
    unmatched_primary: List[CanonicalItem] = field(default_factory=list)
    unmatched_secondary: List[CanonicalItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.pairs) + len(self.unmatched_primary) + len(self.unmatched_secondary)


@dataclass
class RunRecord:
    """Per-provider sync outcome as stored in the run log.

    Fields left as None are omitted when serialized so that saving a delta
    never erases values recorded by earlier runs.
    """

    provider: str
    last_attempted: Optional[str] = None
    last_successful: Optional[str] = None
    last_failed: Optional[str] = None
    items_synced: Optional[int] = None
    status: Optional[RunStatus] = None
    detail: Optional[str] = None
    error_class: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def items(self) -> int:
        return int(self.items_synced or 0)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"service": self.provider}
        optional = {
            "last_attempted": self.last_attempted,
            "last_successful": self.last_successful,
            "last_failed": self.last_failed,
            "items_synced": self.items_synced,
            "status": self.status.value if self.status else None,
            "detail": self.detail,
            "error_class": self.error_class,
            "error_message": self.error_message,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RunRecord:
        status = None
        if data.get("status"):
            try:
                status = RunStatus(str(data["status"]).lower())
            except ValueError:
                status = None

        items_synced = data.get("items_synced")
        if items_synced is not None:
            try:
                items_synced = int(items_synced)
            except (TypeError, ValueError):
                items_synced = 0

        return cls(
            provider=data.get("service", ""),
            last_attempted=data.get("last_attempted"),
            last_successful=data.get("last_successful"),
            last_failed=data.get("last_failed"),
            items_synced=items_synced,
            status=status,
            detail=data.get("detail"),
            error_class=data.get("error_class"),
            error_message=data.get("error_message"),
        )

    def merged_over(self, stored: Optional[RunRecord]) -> RunRecord:
        """Fields of this record win; fields it lacks keep the stored values."""
        if stored is None:
            return replace(self)
        merged = dict(stored.to_dict())
        merged.update(self.to_dict())
        return RunRecord.from_dict(merged)


@dataclass
class ProviderConfig:
    """Configuration for one provider (primary or secondary)."""

    name: str
    adapter: str = DEFAULT_ADAPTER
    min_sync_interval: Optional[int] = None  # seconds, None = adapter default
    options: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "adapter": self.adapter,
            "min_sync_interval": self.min_sync_interval,
            "options": self.options,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ProviderConfig:
        if isinstance(data, str):
            return cls(name=data)
        if not isinstance(data, Mapping) or not data.get("name"):
            raise ConfigurationError(f"Provider entry needs a name: {data!r}")
        return cls(
            name=data["name"],
            adapter=data.get("adapter", DEFAULT_ADAPTER),
            min_sync_interval=data.get("min_sync_interval"),
            options=dict(data.get("options", {})),
            enabled=data.get("enabled", True),
        )


@dataclass
class SyncConfig:
    """Persistent configuration for sync operations."""

    primary: Optional[ProviderConfig] = None
    providers: List[ProviderConfig] = field(default_factory=list)
    tags: List[str] = field(default_factory=lambda: list(DEFAULT_TAGS))
    update_ids_for_existing: bool = False
    delete_completed: bool = False
    max_age_days: int = 0
    log_file: Optional[str] = None

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------
    @property
    def provider_names(self) -> List[str]:
        """Every configured provider, primary first."""
        names = [self.primary.name] if self.primary else []
        names.extend(p.name for p in self.providers if p.name not in names)
        return names

    @property
    def has_providers(self) -> bool:
        return bool(self.primary and self.providers)

    def get_provider(self, name: str) -> Optional[ProviderConfig]:
        key = provider_key(name)
        for provider in ([self.primary] if self.primary else []) + self.providers:
            if provider_key(provider.name) == key:
                return provider
        return None

    def selected_providers(self, names: Optional[Iterable[str]] = None) -> List[ProviderConfig]:
        """
        Enabled secondary providers, optionally restricted to ``names``.

        Raises:
            ConfigurationError: if a requested provider is not configured
        """
        if names is None:
            return [p for p in self.providers if p.enabled]

        selected = []
        for name in names:
            provider = self.get_provider(name)
            if provider is None or provider is self.primary:
                raise ConfigurationError(
                    f"Unknown provider '{name}'. Configured: {', '.join(p.name for p in self.providers)}"
                )
            selected.append(provider)
        return selected

    def apply_env_overrides(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Apply TASKLINK_PRIMARY / TASKLINK_SERVICES / TASKLINK_TAGS overrides."""
        environ = os.environ if environ is None else environ

        primary = environ.get("TASKLINK_PRIMARY")
        if primary:
            self.primary = self.get_provider(primary) or ProviderConfig(name=primary)

        services = environ.get("TASKLINK_SERVICES")
        if services:
            self.providers = [
                self.get_provider(name) or ProviderConfig(name=name)
                for name in (s.strip() for s in services.split(","))
                if name
            ]

        tags = environ.get("TASKLINK_TAGS")
        if tags:
            self.tags = [tag.strip() for tag in tags.split(",") if tag.strip()]

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary": self.primary.to_dict() if self.primary else None,
            "providers": [p.to_dict() for p in self.providers],
            "sync": {
                "tags": self.tags,
                "update_ids_for_existing": self.update_ids_for_existing,
                "delete_completed": self.delete_completed,
                "max_age_days": self.max_age_days,
            },
            "paths": {
                "log_file": self.log_file,
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SyncConfig:
        primary_entry = data.get("primary")
        primary = ProviderConfig.from_dict(primary_entry) if primary_entry else None
        providers = [ProviderConfig.from_dict(entry) for entry in data.get("providers", [])]

        sync_settings = data.get("sync", {})
        paths = data.get("paths", {})
        log_file = paths.get("log_file", data.get("log_file"))

        return cls(
            primary=primary,
            providers=providers,
            tags=list(sync_settings.get("tags", DEFAULT_TAGS)),
            update_ids_for_existing=bool(sync_settings.get("update_ids_for_existing", False)),
            delete_completed=bool(sync_settings.get("delete_completed", False)),
            max_age_days=int(sync_settings.get("max_age_days", 0) or 0),
            log_file=log_file,
        )

    @classmethod
    def load_from_file(cls, config_path: str) -> SyncConfig:
        config_path = _normalize_path(config_path)
        if not os.path.exists(config_path):
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError:
            return cls()

        return cls.from_dict(data)

    def save_to_file(self, config_path: str) -> None:
        config_path = _normalize_path(config_path)
        os.makedirs(os.path.dirname(config_path), exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, indent=2, ensure_ascii=False)


@dataclass(frozen=True)
class RunOptions:
    """Flags for a single invocation; built once and never mutated."""

    pretend: bool = False
    force: bool = False
    only_from_primary: bool = False
    only_to_primary: bool = False
    delete: bool = False
    quiet: bool = False
    verbose: bool = False
    update_ids_for_existing: bool = False
    max_age_days: int = 0
    sync_started_at: str = field(default_factory=format_timestamp)

    def __post_init__(self) -> None:
        if self.only_from_primary and self.only_to_primary:
            raise ConfigurationError("only_from_primary and only_to_primary are mutually exclusive")
        if self.quiet and self.verbose:
            raise ConfigurationError("quiet and verbose are mutually exclusive")
        if self.max_age_days < 0:
            raise ConfigurationError("max_age_days cannot be negative")

    @property
    def max_age_timestamp(self) -> Optional[datetime]:
        """Items last modified before this are not pushed (None = no limit)."""
        if not self.max_age_days:
            return None
        return now() - timedelta(days=self.max_age_days)

    @classmethod
    def from_config(cls, config: SyncConfig, **overrides: Any) -> RunOptions:
        """Start from persisted settings and apply per-run overrides."""
        values: Dict[str, Any] = {
            "update_ids_for_existing": config.update_ids_for_existing,
            "delete": config.delete_completed,
            "max_age_days": config.max_age_days,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
