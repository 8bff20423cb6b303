"""Sync engine reconciling one provider with the primary store."""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional
import logging

from ..adapters.base import ProviderAdapter
from ..core.exceptions import ConfigurationError
from ..core.models import (CanonicalItem, CrossReference,
                           MatchPair, RunOptions, RunRecord, RunStatus)
from ..core.run_log import RunLog
from ..utils.date import now, parse_datetime
from ..utils.text import provider_key, truncate
from .matcher import ItemMatcher
from .resolver import ChangeDetector


ProgressCallback = Callable[[int, int, str], None]


def skip_completed(item: CanonicalItem) -> bool:
    """Default create filter: completed items are never copied."""
    return bool(item.completed)


@dataclass
class SyncReport:
    """Outcome of one sync pass."""

    record: RunRecord
    actions: List[str] = field(default_factory=list)
    created: int = 0
    updated: int = 0
    linked: int = 0
    skipped: int = 0

    @property
    def items_synced(self) -> int:
        return self.created + self.updated


class SyncEngine:
    """Runs sync passes between a secondary provider and the primary store."""

    def __init__(self, adapter: ProviderAdapter, options: Optional[RunOptions] = None,
                 run_log: Optional[RunLog] = None,
                 matcher: Optional[ItemMatcher] = None,
                 detector: Optional[ChangeDetector] = None,
                 skip_create: Callable[[CanonicalItem], bool] = skip_completed,
                 progress: Optional[ProgressCallback] = None,
                 logger: Optional[logging.Logger] = None):
        self.adapter = adapter
        self.options = options or RunOptions()
        self.run_log = run_log
        self.logger = logger or logging.getLogger(__name__)
        self.matcher = matcher or ItemMatcher(logger=self.logger)
        self.detector = detector or ChangeDetector(logger=self.logger)
        self.skip_create = skip_create
        self.progress = progress

    # ------------------------------------------------------------------
    # Rate gate
    # ------------------------------------------------------------------
    def should_sync(self, item_updated_at: Any = None) -> bool:
        """
        Whether this provider is due for a sync.

        Without a previous successful sync the answer is always yes. Given an
        item's update time, a sync is due when that item changed after the
        last success; otherwise when the provider's minimum interval has
        elapsed. ``force`` skips the check.
        """
        if self.options.force:
            return True

        last_synced = self.run_log.last_synced(self.adapter.friendly_name) if self.run_log else None
        if last_synced is None:
            return True

        if item_updated_at is not None:
            updated_at = parse_datetime(item_updated_at)
            return updated_at is not None and updated_at > last_synced

        elapsed = (now() - last_synced).total_seconds()
        return elapsed > self.adapter.min_sync_interval

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------
    def sync_two_way(self, primary: ProviderAdapter) -> SyncReport:
        """Update older sides from newer ones and create what is missing on both sides."""
        return self._run(primary, to_secondary=True, to_primary=True)

    def sync_from_primary(self, primary: ProviderAdapter) -> SyncReport:
        """Only push primary items (and their changes) to this provider."""
        return self._run(primary, to_secondary=True, to_primary=False)

    def sync_to_primary(self, primary: ProviderAdapter) -> SyncReport:
        """Only pull this provider's items (and their changes) into the primary store."""
        return self._run(primary, to_secondary=False, to_primary=True)

    def _run(self, primary: ProviderAdapter, to_secondary: bool, to_primary: bool) -> SyncReport:
        secondary = self.adapter
        if primary.provider_key == secondary.provider_key:
            raise ConfigurationError(f"{secondary.friendly_name} cannot sync with itself")

        direction = "two-way" if to_secondary and to_primary else (
            "from primary" if to_secondary else "to primary"
        )
        self.logger.info(
            f"Syncing {secondary.friendly_name} with {primary.friendly_name} "
            f"({direction}, pretend={self.options.pretend})"
        )

        primary_items = primary.items_to_sync(tags=[secondary.friendly_name])
        secondary_items = secondary.items_to_sync()
        result = self.matcher.match(primary_items, secondary_items)

        report = SyncReport(record=RunRecord(
            provider=secondary.friendly_name,
            last_attempted=self.options.sync_started_at,
        ))
        adapters = {primary.provider_key: primary, secondary.provider_key: secondary}

        total = result.total
        done = 0
        for pair in result.pairs:
            older_is_primary = pair.older.provider_key == primary.provider_key
            allowed = to_primary if older_is_primary else to_secondary
            self._sync_pair(pair, adapters, allowed, report)
            done += 1
            self._report_progress(done, total, pair.newer.friendly_title)

        for item in result.unmatched_primary:
            if to_secondary:
                self._create(item, target=secondary, source_adapter=primary, report=report)
            done += 1
            self._report_progress(done, total, item.friendly_title)

        for item in result.unmatched_secondary:
            if to_primary:
                self._create(item, target=primary, source_adapter=secondary, report=report)
            done += 1
            self._report_progress(done, total, item.friendly_title)

        record = report.record
        record.last_successful = self.options.sync_started_at
        record.items_synced = report.items_synced
        record.status = RunStatus.SUCCESS

        self.logger.info(
            f"{secondary.friendly_name}: {report.created} created, {report.updated} updated, "
            f"{report.linked} linked, {report.skipped} skipped"
        )
        return report

    def _report_progress(self, done: int, total: int, message: str) -> None:
        if self.progress is not None:
            self.progress(done, total, truncate(message))

    # ------------------------------------------------------------------
    # Pairs
    # ------------------------------------------------------------------
    def _sync_pair(self, pair: MatchPair, adapters: Dict[str, ProviderAdapter],
                   allowed: bool, report: SyncReport) -> None:
        older, newer = pair.older, pair.newer
        link = not pair.linked_by_id or self.options.update_ids_for_existing

        updated = False
        if not allowed:
            self.logger.debug(f"Not updating {older}: direction excluded")
        elif pair.in_sync:
            self.logger.debug(f"{older} and {newer} are in sync")
        elif self._too_old(newer):
            self.logger.debug(f"Not updating from {newer}: older than {self.options.max_age_days} days")
        else:
            updated = self._update(older, newer, adapters[older.provider_key], link, report)

        if not link:
            return

        if not updated:
            self._write_link(older, newer, adapters[older.provider_key], report)
        self._write_link(newer, older, adapters[newer.provider_key], report)

    def _too_old(self, item: CanonicalItem) -> bool:
        cutoff = self.options.max_age_timestamp
        return bool(cutoff and item.last_modified and item.last_modified < cutoff)

    def _draft(self, source: CanonicalItem, target_provider: str,
               existing: Optional[CanonicalItem] = None, link: bool = True) -> CanonicalItem:
        """
        Copy of ``source`` addressed to ``target_provider``.

        An update keeps the existing item's id and cross-references; a create
        carries the source's references to other providers. With ``link`` the
        draft also references ``source`` itself.
        """
        target_key = provider_key(target_provider)
        if existing is not None:
            refs = dict(existing.cross_refs)
        else:
            refs = {key: ref for key, ref in source.cross_refs.items() if key != target_key}

        draft = replace(
            source,
            provider=target_provider,
            external_id=existing.external_id if existing else "",
            url=existing.url if existing else None,
            cross_refs=refs,
            tags=set(source.tags) | {source.provider},
            extra={},
            raw=existing.raw if existing else None,
        )
        if link:
            draft.set_cross_reference(source.provider, source.external_id, source.url)
        return draft

    def _update(self, existing: CanonicalItem, source: CanonicalItem,
                adapter: ProviderAdapter, link: bool, report: SyncReport) -> bool:
        changes = self.detector.changed_attributes(existing, source)
        if not changes:
            self.logger.debug(f"No changes to apply to {existing}")
            return False

        if self.options.pretend:
            report.updated += 1
            report.actions.append(
                f"Would have updated {existing} from {source.provider} ({', '.join(sorted(changes))})"
            )
            return False

        draft = self._draft(source, existing.provider, existing=existing, link=link)
        if adapter.supports_patch:
            attributes = dict(changes)
            if "notes" in attributes or link:
                attributes["notes"] = draft.sync_notes()
            adapter.patch_item(existing, attributes)
        else:
            adapter.update_item(existing, draft)

        if link:
            existing.set_cross_reference(source.provider, source.external_id, source.url)

        report.updated += 1
        report.actions.append(f"Updated {existing} from {source.provider}")
        self.logger.info(f"Updated {existing} from {source}")
        return True

    # ------------------------------------------------------------------
    # Creates and links
    # ------------------------------------------------------------------
    def _create(self, source: CanonicalItem, target: ProviderAdapter,
                source_adapter: ProviderAdapter, report: SyncReport) -> None:
        if self.skip_create(source):
            report.skipped += 1
            self.logger.debug(f"Not creating {source} on {target.friendly_name}")
            return

        if self.options.pretend:
            report.created += 1
            report.actions.append(f"Would have added {source.friendly_title} to {target.friendly_name}")
            return

        created = target.add_item(self._draft(source, target.name, link=True))
        report.created += 1
        report.actions.append(f"Added {source.friendly_title} to {target.friendly_name}")
        self.logger.info(f"Created {created} from {source}")

        if created is None or not created.external_id:
            self.logger.warning(f"{target.friendly_name} returned no id for {source.friendly_title}; link not stored")
            return
        self._write_link(source, created, source_adapter, report)

    def _write_link(self, item: CanonicalItem, counterpart: CanonicalItem,
                    adapter: ProviderAdapter, report: SyncReport) -> None:
        """Store a reference to ``counterpart`` in ``item``'s notes."""
        wanted = CrossReference(counterpart.provider_key, str(counterpart.external_id), counterpart.url)
        if item.cross_ref(counterpart.provider) == wanted:
            return

        if self.options.pretend:
            report.actions.append(
                f"Would have linked {item} to {counterpart.provider} item {counterpart.external_id}"
            )
            return

        item.set_cross_reference(counterpart.provider, counterpart.external_id, counterpart.url)
        adapter.write_notes(item, item.sync_notes())
        report.linked += 1
        self.logger.debug(f"Linked {item} -> {counterpart.provider}:{counterpart.external_id}")
