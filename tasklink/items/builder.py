"""
Build canonical items from raw provider records.

Each provider is described by an ``AttributeMap`` value: which raw field
feeds which canonical field, which fields need free-text date parsing, and
how provider-specific tags are derived. A single ``ItemBuilder`` turns any
provider's records into ``CanonicalItem`` objects using that description.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import (Any, Callable, Dict, FrozenSet, Iterable, List, Mapping,
                    Optional, Sequence)

from ..core.exceptions import ConfigurationError
from ..core.models import CanonicalItem, CrossReference
from ..utils.date import due_date_from_tags, ensure_aware, parse_datetime
from ..utils.metadata import ID_SUFFIX, URL_SUFFIX, decode_metadata, metadata_keys
from ..utils.text import provider_key


STANDARD_ATTRIBUTE_MAP: Dict[str, Optional[str]] = {
    "external_id": "id",
    "title": "title",
    "notes": "notes",
    "completed": "completed",
    "completed_at": "completed_at",
    "created_at": "created_at",
    "due_date": "due_date",
    "start_date": "start_date",
    "last_modified": "updated_at",
    "status": "status",
    "flagged": "flagged",
    "url": "url",
    "item_type": "type",
}

CANONICAL_FIELDS: FrozenSet[str] = frozenset(STANDARD_ATTRIBUTE_MAP)
DATETIME_FIELDS: FrozenSet[str] = frozenset(
    {"completed_at", "created_at", "due_date", "start_date", "last_modified"}
)
BOOLEAN_FIELDS: FrozenSet[str] = frozenset({"completed", "flagged"})

# Placeholder values some automation bridges return for unset properties
_MISSING_VALUES = ("missing value", ":missing_value")


@dataclass(frozen=True)
class AttributeMap:
    """Declarative description of how one provider's records map to canonical fields.

    ``fields`` is merged over ``STANDARD_ATTRIBUTE_MAP``; mapping a canonical
    field to None means the provider has no such concept and the field is
    skipped.
    """

    provider: str
    fields: Optional[Mapping[str, Optional[str]]] = None
    chronological: FrozenSet[str] = frozenset()
    converters: Mapping[str, Callable[[Any], Any]] = field(default_factory=dict)
    extra_fields: Mapping[str, str] = field(default_factory=dict)
    tag_reader: Optional[Callable[[Any], Iterable[str]]] = None
    infer_due_from_tags: bool = False

    def __post_init__(self):
        if not self.provider or not str(self.provider).strip():
            raise ConfigurationError("AttributeMap requires a provider name")
        if not self.fields:
            raise ConfigurationError(f"No attribute map defined for provider '{self.provider}'")

        unknown = set(self.fields) - CANONICAL_FIELDS
        if unknown:
            raise ConfigurationError(
                f"Unknown canonical field(s) for {self.provider}: {', '.join(sorted(unknown))}"
            )
        if "external_id" in self.fields and self.fields["external_id"] is None:
            raise ConfigurationError(f"{self.provider} must map external_id to a raw field")

        object.__setattr__(self, "chronological", frozenset(self.chronological))
        parseable = CANONICAL_FIELDS | set(self.extra_fields)
        stray = self.chronological - parseable
        if stray:
            raise ConfigurationError(
                f"Chronological field(s) not mapped for {self.provider}: {', '.join(sorted(stray))}"
            )

    @property
    def provider_key(self) -> str:
        return provider_key(self.provider)

    @property
    def resolved_fields(self) -> Dict[str, str]:
        """Standard map with provider overrides applied and skipped fields removed."""
        merged = dict(STANDARD_ATTRIBUTE_MAP)
        merged.update(self.fields or {})
        return {name: raw for name, raw in merged.items() if raw is not None}


def read_attribute(record: Any, attribute: Optional[str]) -> Any:
    """
    Read a raw attribute from a mapping (by key) or an object (by accessor).

    Anything the record cannot supply reads as None.
    """
    if attribute is None or record is None:
        return None

    if isinstance(record, Mapping):
        value = record.get(attribute)
    else:
        value = getattr(record, attribute, None)
        if callable(value):
            try:
                value = value()
            except TypeError:
                return None

    if isinstance(value, str) and value.strip().lower() in _MISSING_VALUES:
        return None
    return value


def _native_datetime(value: Any) -> Optional[datetime]:
    """Accept native date values and ISO strings only."""
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, (date, str)):
        if isinstance(value, str):
            try:
                datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
            except ValueError:
                return None
        return parse_datetime(value)
    return None


class ItemBuilder:
    """Turns raw provider records into canonical items."""

    def __init__(self, attribute_map: AttributeMap,
                 known_providers: Iterable[str] = (),
                 base_tags: Sequence[str] = (),
                 reference: Optional[datetime] = None,
                 logger: Optional[logging.Logger] = None):
        self.attribute_map = attribute_map
        self.base_tags = list(base_tags)
        self.reference = reference
        self.logger = logger or logging.getLogger(__name__)

        own_key = attribute_map.provider_key
        other_keys: List[str] = []
        for name in known_providers:
            key = provider_key(name)
            if key and key != own_key and key not in other_keys:
                other_keys.append(key)
        self.other_provider_keys = other_keys
        self.metadata_keys = metadata_keys(other_keys)
        self._fields = attribute_map.resolved_fields

    @property
    def provider(self) -> str:
        return self.attribute_map.provider

    def _convert(self, name: str, value: Any) -> Any:
        converter = self.attribute_map.converters.get(name)
        if converter is not None:
            value = converter(value)
        if name in self.attribute_map.chronological:
            return parse_datetime(value, reference=self.reference)
        return value

    def _read(self, record: Any, name: str) -> Any:
        return self._convert(name, read_attribute(record, self._fields.get(name)))

    def _cross_references(self, values: Mapping[str, Optional[str]]) -> Dict[str, CrossReference]:
        refs: Dict[str, CrossReference] = {}
        for key in self.other_provider_keys:
            ref_id = values.get(f"{key}{ID_SUFFIX}")
            ref_url = values.get(f"{key}{URL_SUFFIX}")
            if ref_id is None and ref_url is None:
                continue
            refs[key] = CrossReference(provider_key=key, id=ref_id, url=ref_url)
        return refs

    def build(self, record: Any) -> CanonicalItem:
        """Build one canonical item from a raw record."""
        amap = self.attribute_map

        values: Dict[str, Any] = {}
        for name in self._fields:
            if name == "notes":
                continue
            value = self._read(record, name)
            if name in DATETIME_FIELDS and not isinstance(value, datetime):
                value = _native_datetime(value)
            elif name in BOOLEAN_FIELDS:
                value = bool(value)
            values[name] = value

        raw_notes = read_attribute(record, self._fields.get("notes"))
        decoded, notes = decode_metadata(str(raw_notes) if raw_notes else "", self.metadata_keys)

        derived_tags = [str(tag) for tag in (amap.tag_reader(record) if amap.tag_reader else []) if tag]
        tags = set(self.base_tags)
        tags.add(amap.provider)
        tags.update(derived_tags)

        if amap.infer_due_from_tags and values.get("due_date") is None:
            values["due_date"] = due_date_from_tags(derived_tags, reference=self.reference)

        extra = {
            name: self._convert(name, read_attribute(record, raw_name))
            for name, raw_name in amap.extra_fields.items()
        }

        external_id = values.pop("external_id", None)
        title = values.pop("title", None)
        for name in ("url", "status", "item_type"):
            if values.get(name) is not None:
                values[name] = str(values[name])

        return CanonicalItem(
            provider=amap.provider,
            external_id="" if external_id is None else str(external_id),
            title="" if title is None else str(title),
            notes=notes,
            cross_refs=self._cross_references(decoded),
            tags=tags,
            extra=extra,
            raw=record,
            **values,
        )

    def build_all(self, records: Iterable[Any]) -> List[CanonicalItem]:
        """
        Build items for a whole collection.

        Records without an id, and later records reusing an id already seen,
        are dropped with a warning so ids stay unique within the collection.
        """
        items: List[CanonicalItem] = []
        seen = set()
        for record in records:
            item = self.build(record)
            if not item.external_id:
                self.logger.warning(f"Skipping {self.provider} record without an id: {item.friendly_title!r}")
                continue
            if item.external_id in seen:
                self.logger.warning(f"Skipping duplicate {self.provider} id {item.external_id}")
                continue
            seen.add(item.external_id)
            items.append(item)

        self.logger.debug(f"Built {len(items)} {self.provider} item(s)")
        return items
