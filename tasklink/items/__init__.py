"""Canonical item construction from raw provider records."""

from .builder import AttributeMap, ItemBuilder, STANDARD_ATTRIBUTE_MAP, read_attribute
from .providers import (
    attribute_map_for,
    register_attribute_map,
    known_providers,
    default_min_sync_interval,
)

__all__ = [
    'AttributeMap',
    'ItemBuilder',
    'STANDARD_ATTRIBUTE_MAP',
    'read_attribute',
    'attribute_map_for',
    'register_attribute_map',
    'known_providers',
    'default_min_sync_interval',
]
