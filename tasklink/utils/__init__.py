"""
Utility functions for tasklink.
"""

from .io import safe_read_json, safe_write_json
from .date import parse_datetime, format_timestamp, dates_equal, due_date_from_tags
from .text import provider_key, normalize_title, normalize_notes, truncate
from .metadata import decode_metadata, encode_metadata, strip_metadata, metadata_keys

__all__ = [
    # I/O utilities
    'safe_read_json',
    'safe_write_json',
    # Date utilities
    'parse_datetime',
    'format_timestamp',
    'dates_equal',
    'due_date_from_tags',
    # Text utilities
    'provider_key',
    'normalize_title',
    'normalize_notes',
    'truncate',
    # Notes metadata
    'decode_metadata',
    'encode_metadata',
    'strip_metadata',
    'metadata_keys',
]
