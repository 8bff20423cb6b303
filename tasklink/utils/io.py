"""
JSON file helpers.

Reads fall back to a default when a file is missing or unreadable. Writes go
to a sibling temp file that is then moved over the target with
``os.replace``. Nothing is locked; one tasklink process runs at a time.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional


logger = logging.getLogger(__name__)


def _expand(file_path: Any) -> Path:
    return Path(os.path.expanduser(str(file_path)))


def safe_read_json(file_path: str, default: Optional[Any] = None) -> Any:
    """
    Load JSON from ``file_path``.

    Returns ``default`` (an empty dict unless given) when the file does not
    exist or cannot be parsed; the latter is logged as a warning.
    """
    fallback = {} if default is None else default
    path = _expand(file_path)
    if not path.exists():
        return fallback

    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning(f"Could not read {path}: {exc}")
        return fallback


def safe_write_json(file_path: str, data: Any, indent: int = 2) -> bool:
    """
    Replace ``file_path`` with ``data`` serialized as JSON.

    Returns:
        True when the file was replaced, False when writing failed
    """
    path = _expand(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    handle, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as tmp_file:
            json.dump(data, tmp_file, indent=indent, ensure_ascii=False)
        os.replace(tmp_name, str(path))
        return True
    except (OSError, TypeError, ValueError) as exc:
        logger.error(f"Could not write {path}: {exc}")
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        return False
