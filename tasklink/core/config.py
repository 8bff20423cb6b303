"""
Loading and saving the tasklink config file.
"""

from pathlib import Path
from typing import Mapping, Optional

from .models import SyncConfig
from .paths import get_path_manager


def get_default_config_path() -> Path:
    return get_path_manager().config_path


def load_config(config_path: Optional[str] = None,
                environ: Optional[Mapping[str, str]] = None) -> SyncConfig:
    """
    Read the config file (defaults when it is missing or unreadable).

    TASKLINK_PRIMARY, TASKLINK_SERVICES and TASKLINK_TAGS from ``environ``
    (``os.environ`` by default) take precedence over the file.
    """
    path = config_path or str(get_default_config_path())
    config = SyncConfig.load_from_file(path)
    config.apply_env_overrides(environ)
    return config


def save_config(config: SyncConfig, config_path: Optional[str] = None) -> None:
    """Write ``config`` to ``config_path`` or the default location."""
    if config_path is None:
        get_path_manager().ensure_directories()
        config_path = str(get_default_config_path())
    config.save_to_file(config_path)


def get_run_log_path(config: SyncConfig) -> Path:
    """The run log file: ``log_file`` from the config, else the default."""
    manager = get_path_manager()
    if config.log_file:
        return manager.resolve_user_path(config.log_file)
    return manager.run_log_path
