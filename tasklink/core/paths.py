"""
Where tasklink keeps its files.

Everything lives under one home directory: ``$TASKLINK_HOME`` when set,
otherwise ``~/.config/tasklink``. The config file sits at the top and run
logs go in ``logs/``.
"""

import os
from pathlib import Path
from typing import Optional
import logging


HOME_ENV_VAR = "TASKLINK_HOME"
DEFAULT_HOME = Path("~") / ".config" / "tasklink"

CONFIG_FILE_NAME = "config.json"
LOG_DIR_NAME = "logs"
RUN_LOG_FILE_NAME = "service_sync.json"


class PathManager:
    """Resolves tasklink's home directory and the files inside it."""

    def __init__(self, home: Optional[str] = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._home = Path(home).expanduser().resolve() if home else None

    @property
    def home(self) -> Path:
        if self._home is None:
            override = os.environ.get(HOME_ENV_VAR)
            if override:
                self._home = Path(override).expanduser().resolve()
                self.logger.debug(f"{HOME_ENV_VAR} set, using {self._home}")
            else:
                self._home = DEFAULT_HOME.expanduser()
        return self._home

    @property
    def config_path(self) -> Path:
        return self.home / CONFIG_FILE_NAME

    @property
    def log_dir(self) -> Path:
        return self.home / LOG_DIR_NAME

    @property
    def run_log_path(self) -> Path:
        return self.log_dir / RUN_LOG_FILE_NAME

    def ensure_directories(self) -> None:
        """Create the home and log directories if missing."""
        for directory in (self.home, self.log_dir):
            if not directory.exists():
                directory.mkdir(parents=True, exist_ok=True)
                self.logger.debug(f"Created {directory}")

    def resolve_user_path(self, path: str) -> Path:
        """
        Absolute path for a configured file name.

        Relative names are placed in the log directory, so ``runs.json``
        ends up next to the default run log.
        """
        resolved = Path(path).expanduser()
        if not resolved.is_absolute():
            resolved = self.log_dir / resolved
        return resolved.resolve()


_path_manager: Optional[PathManager] = None


def get_path_manager() -> PathManager:
    """Shared PathManager, created on first use."""
    global _path_manager
    if _path_manager is None:
        _path_manager = PathManager()
    return _path_manager


def reset_path_manager() -> None:
    """Drop the shared PathManager so the next call re-reads TASKLINK_HOME."""
    global _path_manager
    _path_manager = None
