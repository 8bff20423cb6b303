"""History command - show the stored run log."""

from typing import List, Optional
import logging

from ..core.config import get_run_log_path
from ..core.models import SyncConfig
from ..core.run_log import RunLog


class HistoryCommand:
    """Prints per-provider sync history."""

    def __init__(self, config: SyncConfig, verbose: bool = False,
                 run_log: Optional[RunLog] = None):
        self.config = config
        self.verbose = verbose
        self.run_log = run_log
        self.logger = logging.getLogger(__name__)

    def run(self, services: Optional[List[str]] = None) -> bool:
        run_log = self.run_log or RunLog(get_run_log_path(self.config), logger=self.logger)
        if not run_log.records:
            print("No sync history recorded yet.")
            return True

        if self.verbose:
            print(f"Run log: {run_log.log_path}")
        run_log.print_logs(services)
        return True
