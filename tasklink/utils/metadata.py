"""
Utilities for storing cross-reference metadata in a provider's notes field.

Most providers only offer a single freeform text field, so links to the
counterpart items on other providers are kept there as ``key: value`` lines,
e.g.::

    Pick up the dry cleaning
    omnifocus_id: nXrXR3AGiV2
    omnifocus_url: omnifocus:///task/nXrXR3AGiV2
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Tuple


ID_SUFFIX = "_id"
URL_SUFFIX = "_url"


def _key_pattern(key: str) -> Pattern[str]:
    # One whole "key: value" line; the value runs to the end of the line and
    # the line break is removed with it so no blank line is left behind.
    return re.compile(
        r'^[ \t]*' + re.escape(key) + r':[ \t]+(?P<value>[^\r\n]*\S)[ \t]*(?:\r?\n|$)',
        re.MULTILINE,
    )


def metadata_keys(provider_keys: Iterable[str]) -> List[str]:
    """
    Build the id/url metadata keys for a set of providers.

    Args:
        provider_keys: Lowercase provider keys (see ``utils.text.provider_key``)

    Returns:
        ``["<provider>_id", "<provider>_url", ...]`` in input order
    """
    keys: List[str] = []
    for key in provider_keys:
        if not key:
            continue
        keys.append(f"{key}{ID_SUFFIX}")
        keys.append(f"{key}{URL_SUFFIX}")
    return keys


def decode_metadata(text: Optional[str],
                    keys: Iterable[str]) -> Tuple[Dict[str, Optional[str]], str]:
    """
    Extract metadata values from notes and return the notes without them.

    Every occurrence of each key is removed wherever it appears; the first
    occurrence supplies the value. Keys that are not present map to None.

    Args:
        text: Raw notes as stored by the provider (may be None)
        keys: Metadata keys to look for

    Returns:
        Tuple of (values by key, remaining notes trimmed of surrounding whitespace)
    """
    keys = list(keys)
    values: Dict[str, Optional[str]] = {key: None for key in keys}
    if not text:
        return values, ""

    remaining = text
    for key in keys:
        pattern = _key_pattern(key)
        match = pattern.search(remaining)
        if match is None:
            continue
        values[key] = match.group('value')
        remaining = pattern.sub('', remaining)

    return values, remaining.strip()


def strip_metadata(text: Optional[str], keys: Iterable[str]) -> str:
    """Remove the given metadata keys from notes, keeping everything else."""
    _, remaining = decode_metadata(text, keys)
    return remaining


def encode_metadata(base_notes: Optional[str], values: Mapping[str, Any]) -> str:
    """
    Write metadata values into notes.

    Existing lines for every key in ``values`` are removed first, so
    re-encoding never duplicates a key. A key mapped to None is only removed,
    which is how a stale reference is cleared.

    Args:
        base_notes: Notes to extend (may already contain metadata)
        values: Metadata values by key; None values are not written

    Returns:
        Notes followed by one ``key: value`` line per non-None value, trimmed
    """
    notes = base_notes or ""
    for key in values:
        notes = _key_pattern(key).sub('', notes)

    value_lines = "".join(
        f"\n{key}: {value}" for key, value in values.items() if value is not None
    )
    return f"{notes.rstrip()}{value_lines}".strip()
