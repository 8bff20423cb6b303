"""Sync command - reconcile every configured provider with the primary store."""

from typing import Callable, List, Optional
import logging

from ..adapters.base import ProviderAdapter, load_adapter
from ..core.config import get_run_log_path
from ..core.exceptions import AuthorizationError
from ..core.models import (ProviderConfig, RunOptions, RunRecord, RunStatus,
                           SyncConfig, SyncStrategy)
from ..core.run_log import DETAIL_SKIPPED, RunLog
from ..sync.engine import SyncEngine, SyncReport
from ..utils.date import format_timestamp


AdapterLoader = Callable[[ProviderConfig, SyncConfig, Optional[logging.Logger]], ProviderAdapter]


class SyncCommand:
    """Command for syncing all configured providers with the primary store."""

    def __init__(self, config: SyncConfig, options: Optional[RunOptions] = None,
                 verbose: bool = False, run_log: Optional[RunLog] = None,
                 adapter_loader: AdapterLoader = load_adapter):
        self.config = config
        self.options = options or RunOptions.from_config(config, verbose=verbose or None)
        self.verbose = verbose
        self.run_log = run_log
        self.adapter_loader = adapter_loader
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def _say(self, message: str) -> None:
        if not self.options.quiet:
            print(message)

    def run(self, services: Optional[List[str]] = None) -> bool:
        """
        Run one pass over every selected provider.

        A failing provider is recorded as failed and the loop moves on.

        Returns:
            True if no provider failed
        """
        if self.config.primary is None:
            print("No primary provider configured. Add a 'primary' entry to the config file.")
            return False

        providers = self.config.selected_providers(services)
        if not providers:
            print("No providers configured to sync with.")
            return False

        run_log = self.run_log or RunLog(get_run_log_path(self.config), logger=self.logger)
        started_at = self.options.sync_started_at
        self._say(f"Starting sync at {started_at}")
        if self.options.pretend:
            self._say("Pretend mode: no changes will be made")

        primary = self.adapter_loader(self.config.primary, self.config, self.logger)

        summaries: List[RunRecord] = []
        for provider in providers:
            summary = self._sync_provider(provider, primary, run_log)
            summaries.append(summary)
            if not self.options.pretend:
                run_log.save([summary])

        if not self.options.quiet:
            run_log.print_run_summary(summaries, started_at=started_at)
            print(f"Finished sync at {format_timestamp()}")

        return all(summary.status != RunStatus.FAILED for summary in summaries)

    def _sync_provider(self, provider: ProviderConfig, primary: ProviderAdapter,
                       run_log: RunLog) -> RunRecord:
        started_at = self.options.sync_started_at
        name = provider.name
        logs: List[RunRecord] = []
        default_detail = None
        error = None

        try:
            adapter = self.adapter_loader(provider, self.config, self.logger)
            name = adapter.friendly_name

            if not adapter.authorized():
                self.logger.warning(f"{name} is not authorized; skipping")
                logs.append(RunRecord(provider=name, last_attempted=started_at))
                default_detail = "Not authorized"

            elif self.options.delete:
                logs.append(self._prune(adapter))

            else:
                engine = SyncEngine(
                    adapter,
                    options=self.options,
                    run_log=run_log,
                    progress=self._progress,
                    logger=self.logger,
                )
                if not engine.should_sync():
                    self.logger.info(f"{name} synced recently; skipping")
                    logs.append(RunRecord(provider=name, last_attempted=started_at))
                    default_detail = DETAIL_SKIPPED
                else:
                    for report in self._run_strategies(engine, adapter, primary):
                        logs.append(report.record)
                        for action in report.actions:
                            self._say(f"  {action}")

        except AuthorizationError as exc:
            self.logger.warning(f"{name} rejected our credentials: {exc}")
            logs.append(RunRecord(provider=name, last_attempted=started_at))
            default_detail = f"Not authorized: {exc}"

        except Exception as exc:
            error = exc
            self.logger.error(f"Sync with {name} failed: {exc}", exc_info=self.verbose)
            logs.append(RunRecord(
                provider=name,
                last_attempted=started_at,
                last_failed=format_timestamp(),
                status=RunStatus.FAILED,
                error_class=type(exc).__name__,
                error_message=str(exc),
            ))

        return run_log.summarize_run(name, logs, default_detail=default_detail, error=error)

    def _run_strategies(self, engine: SyncEngine, adapter: ProviderAdapter,
                        primary: ProviderAdapter) -> List[SyncReport]:
        strategies = adapter.sync_strategies

        if self.options.only_to_primary and SyncStrategy.TO_PRIMARY in strategies:
            return [engine.sync_to_primary(primary)]
        if self.options.only_from_primary and SyncStrategy.FROM_PRIMARY in strategies:
            return [engine.sync_from_primary(primary)]
        if SyncStrategy.TWO_WAY in strategies:
            return [engine.sync_two_way(primary)]

        # push before pull
        reports = []
        if SyncStrategy.FROM_PRIMARY in strategies:
            reports.append(engine.sync_from_primary(primary))
        if SyncStrategy.TO_PRIMARY in strategies:
            reports.append(engine.sync_to_primary(primary))
        return reports

    def _prune(self, adapter: ProviderAdapter) -> RunRecord:
        started_at = self.options.sync_started_at
        name = adapter.friendly_name

        if not adapter.supports_prune:
            return RunRecord(provider=name, last_attempted=started_at,
                             detail="Deleting completed items is not supported")

        if self.options.pretend:
            self._say(f"  Would have deleted completed items from {name}")
            return RunRecord(provider=name, last_attempted=started_at,
                             detail="Pretend: completed items not deleted")

        removed = adapter.prune()
        return RunRecord(
            provider=name,
            last_attempted=started_at,
            last_successful=started_at,
            items_synced=removed,
            status=RunStatus.SUCCESS,
            detail=f"Deleted {removed} completed items",
        )

    def _progress(self, done: int, total: int, message: str) -> None:
        self.logger.debug(f"[{done}/{total}] {message}")
