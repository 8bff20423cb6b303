"""
Attribute maps for the providers tasklink knows out of the box.

Custom providers can be added with ``register_attribute_map``.
"""

from typing import Any, Dict, Iterable, List, Optional

from ..core.exceptions import ConfigurationError
from ..utils.text import provider_key
from .builder import AttributeMap, read_attribute


def _label_names(record: Any) -> List[str]:
    """Tag names from a list of label objects or plain strings."""
    labels = read_attribute(record, "labels") or []
    names = []
    for label in labels:
        name = label if isinstance(label, str) else read_attribute(label, "name")
        if name:
            names.append(str(name))
    return names


def tag_names(record: Any) -> List[str]:
    """Tag names from a list of tag objects or plain strings."""
    tags = read_attribute(record, "tags") or []
    names = []
    for tag in tags:
        name = tag if isinstance(tag, str) else read_attribute(tag, "name")
        if name:
            names.append(str(name))
    return names


ASANA = AttributeMap(
    provider="Asana",
    fields={
        "external_id": "gid",
        "title": "name",
        "url": "permalink_url",
        "due_date": "due_on",
        "flagged": "hearted",
        "item_type": "resource_type",
        "start_date": "start_on",
        "last_modified": "modified_at",
    },
    chronological=frozenset(
        {"completed_at", "due_date", "due_at", "last_modified", "start_date", "start_at"}
    ),
    extra_fields={"due_at": "due_at", "start_at": "start_at"},
)

GITHUB = AttributeMap(
    provider="Github",
    fields={
        "status": "state",
        "completed": "state",
        "completed_at": "closed_at",
        "url": "html_url",
        "notes": "body",
        "due_date": None,
        "start_date": None,
        "flagged": None,
    },
    chronological=frozenset({"last_modified", "created_at", "completed_at"}),
    converters={"completed": lambda state: state == "closed"},
    extra_fields={"number": "number", "repository_url": "repository_url"},
    tag_reader=_label_names,
)

GOOGLE_TASKS = AttributeMap(
    provider="Google Tasks",
    fields={
        "url": "self_link",
        "due_date": "due",
        "item_type": "kind",
        "last_modified": "updated",
        "completed": "status",
        "completed_at": "completed",
        "start_date": None,
        "flagged": None,
    },
    chronological=frozenset({"due_date", "last_modified", "completed_at"}),
    converters={"completed": lambda status: status == "completed"},
)

INSTAPAPER = AttributeMap(
    provider="Instapaper",
    fields={
        "external_id": "bookmark_id",
        "notes": "description",
        "completed": "folder",
        "last_modified": "progress_timestamp",
        "due_date": None,
        "start_date": None,
    },
    converters={"completed": lambda folder: folder is not None and folder != "unread"},
    chronological=frozenset({"last_modified"}),
    extra_fields={"folder": "folder", "progress": "progress"},
)

OMNIFOCUS = AttributeMap(
    provider="Omnifocus",
    fields={
        "external_id": "id_",
        "title": "name",
        "notes": "note",
        "completed_at": "completion_date",
        "due_date": "due_date",
        "start_date": "defer_date",
        "last_modified": "modification_date",
        "url": None,
        "item_type": None,
    },
    extra_fields={"estimated_minutes": "estimated_minutes"},
    tag_reader=tag_names,
    infer_due_from_tags=True,
)

RECLAIM = AttributeMap(
    provider="Reclaim",
    fields={
        "due_date": "due",
        "start_date": "snoozeUntil",
        "last_modified": "updated",
        "item_type": "eventCategory",
        "completed": "timeChunksRemaining",
    },
    chronological=frozenset({"due_date", "start_date", "last_modified"}),
    converters={"completed": lambda remaining: remaining is not None and remaining <= 0},
    extra_fields={
        "time_required": "timeChunksRequired",
        "time_spent": "timeChunksSpent",
        "always_private": "alwaysPrivate",
    },
)

REMINDERS = AttributeMap(
    provider="Reminders",
    fields={
        "external_id": "id_",
        "title": "name",
        "notes": "body",
        "completed_at": "completion_date",
        "due_date": "allday_due_date",
        "start_date": "remind_me_date",
        "last_modified": "modification_date",
        "url": None,
    },
    extra_fields={"priority": "priority"},
)

TASK_BRIDGE_WEB = AttributeMap(
    provider="TaskBridgeWeb",
    fields={
        "notes": "description",
    },
    chronological=frozenset({"due_date", "created_at", "last_modified"}),
)

# Providers whose adapters poll remote APIs get a longer default interval
DEFAULT_MIN_SYNC_INTERVALS: Dict[str, int] = {
    "google_tasks": 30 * 60,
    "reminders": 5 * 60,
    "task_bridge_web": 30 * 60,
}
DEFAULT_MIN_SYNC_INTERVAL = 15 * 60

_REGISTRY: Dict[str, AttributeMap] = {}


def register_attribute_map(attribute_map: AttributeMap, aliases: Iterable[str] = ()) -> None:
    """Make an attribute map available by provider name (and any aliases)."""
    for name in [attribute_map.provider, *aliases]:
        _REGISTRY[provider_key(name)] = attribute_map


def attribute_map_for(name: str) -> AttributeMap:
    """
    Look up the attribute map for a provider.

    Raises:
        ConfigurationError: if no map is registered for the provider
    """
    attribute_map = _REGISTRY.get(provider_key(name))
    if attribute_map is None:
        raise ConfigurationError(
            f"No attribute map registered for provider '{name}'. "
            f"Known providers: {', '.join(known_providers())}"
        )
    return attribute_map


def known_providers() -> List[str]:
    """Names of every registered provider, sorted."""
    return sorted({amap.provider for amap in _REGISTRY.values()})


def default_min_sync_interval(name: Optional[str]) -> int:
    """Default seconds between syncs for a provider."""
    return DEFAULT_MIN_SYNC_INTERVALS.get(provider_key(name), DEFAULT_MIN_SYNC_INTERVAL)


for _builtin in (ASANA, GITHUB, GOOGLE_TASKS, INSTAPAPER, OMNIFOCUS, RECLAIM, REMINDERS, TASK_BRIDGE_WEB):
    register_attribute_map(_builtin)
