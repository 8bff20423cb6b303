"""
Text normalization helpers shared by the item model and the matcher.
"""

import re
from typing import Optional


_CAMEL_BOUNDARY_RE = re.compile(r'(?<=[a-z0-9])(?=[A-Z])')
_SEPARATOR_RE = re.compile(r'[^a-z0-9]+')


def provider_key(name: Optional[str]) -> str:
    """
    Convert a provider name into the lowercase key used for metadata.

    "GoogleTasks" and "Google Tasks" both become "google_tasks", so the key
    stays stable however the provider is spelled in configuration.

    Args:
        name: Provider name as configured or reported by an adapter

    Returns:
        Snake-case provider key ("" for empty input)
    """
    if not name:
        return ""

    snake = _CAMEL_BOUNDARY_RE.sub('_', name.strip())
    snake = _SEPARATOR_RE.sub('_', snake.lower())
    return snake.strip('_')


def normalize_title(text: Optional[str]) -> str:
    """Title comparison key: trimmed and case-folded."""
    return (text or "").strip().lower()


def normalize_notes(text: Optional[str]) -> str:
    """Notes comparison key used to split ambiguous title groups."""
    return (text or "").strip().lower()


def truncate(text: Optional[str], width: int = 60) -> str:
    """Shorten text for single-line log output."""
    text = (text or "").replace("\n", " ").strip()
    if len(text) <= width:
        return text
    return text[: max(width - 3, 0)] + "..."
