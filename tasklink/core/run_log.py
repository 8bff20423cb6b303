"""
Durable per-provider run history.

The log file is a JSON array with one object per provider, sorted by the
``service`` key. It is read once when the RunLog is created and rewritten
whole on every save.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .models import RunRecord, RunStatus
from ..utils.date import now, parse_datetime
from ..utils.io import safe_read_json, safe_write_json


RecordLike = Union[RunRecord, Mapping[str, Any]]

SUMMARY_HEADERS = ("Service", "Status", "Items", "Last Success", "Last Failure", "Details")
HISTORY_HEADERS = ("Service", "Last Attempted", "Last Successful", "Last Failed", "Items Synced", "Status")

DETAIL_SKIPPED = "Sync not required"
DETAIL_IDLE = "No work performed"
DETAIL_NO_CHANGES = "No changes detected"
DETAIL_FAILURE = "Failure recorded"


def _as_record(entry: RecordLike) -> RunRecord:
    if isinstance(entry, RunRecord):
        return entry
    return RunRecord.from_dict(entry)


def _last_value(records: Sequence[RunRecord], attribute: str) -> Optional[Any]:
    values = [getattr(record, attribute) for record in records if getattr(record, attribute)]
    return values[-1] if values else None


def _failure_detail(record: Optional[RunRecord]) -> Optional[str]:
    if record is None:
        return None
    parts = [part for part in (record.error_class, record.error_message) if part]
    return ": ".join(parts) if parts else None


def status_for_record(record: RunRecord) -> str:
    """Status to display for a stored record, inferred for older entries."""
    if record.status is not None:
        return record.status.value
    if record.error_message:
        return RunStatus.FAILED.value
    if record.last_successful:
        return RunStatus.SUCCESS.value
    if record.last_attempted:
        return RunStatus.SKIPPED.value
    return "unknown"


def format_table(headers: Sequence[str], rows: Sequence[Sequence[Any]],
                 right_aligned: Iterable[int] = ()) -> str:
    """
    Render a fixed-width text table.

    Each column is as wide as the longer of its header label and its longest
    value.
    """
    right_aligned = set(right_aligned)
    text_rows = [["" if value is None else str(value) for value in row] for row in rows]
    widths = [
        max([len(header)] + [len(row[index]) for row in text_rows])
        for index, header in enumerate(headers)
    ]

    def render(values: Sequence[str]) -> str:
        cells = [
            value.rjust(widths[index]) if index in right_aligned else value.ljust(widths[index])
            for index, value in enumerate(values)
        ]
        return " | ".join(cells).rstrip()

    lines = [render(list(headers)), "-+-".join("-" * width for width in widths)]
    lines.extend(render(row) for row in text_rows)
    return "\n".join(lines)


class RunLog:
    """Reads, merges and reports per-provider sync results."""

    def __init__(self, log_path: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.log_path = Path(log_path)
        self.logger = logger or logging.getLogger(__name__)
        self._records: List[RunRecord] = self._load()

    def _load(self) -> List[RunRecord]:
        data = safe_read_json(str(self.log_path), default=[])
        if not isinstance(data, list):
            self.logger.warning(f"Ignoring run log {self.log_path}: expected a JSON array")
            return []

        records = []
        for entry in data:
            if isinstance(entry, Mapping) and entry.get("service"):
                records.append(RunRecord.from_dict(entry))
            else:
                self.logger.debug(f"Skipping malformed run log entry: {entry!r}")
        return records

    @property
    def records(self) -> List[RunRecord]:
        return list(self._records)

    def sync_data_for(self, provider: str) -> Optional[RunRecord]:
        """Return the stored record for a provider, or None."""
        for record in self._records:
            if record.provider == provider:
                return record
        return None

    def last_synced(self, provider: str,
                    as_interval: bool = False) -> Optional[Union[datetime, timedelta]]:
        """
        When the provider last synced successfully.

        Args:
            provider: Provider name as stored in the log
            as_interval: Return the elapsed time instead of the timestamp

        Returns:
            Timestamp, elapsed timedelta, or None if it never synced
        """
        record = self.sync_data_for(provider)
        if record is None or not record.last_successful:
            return None

        last_sync = parse_datetime(record.last_successful)
        if last_sync is None:
            self.logger.warning(
                f"Unreadable last_successful value for {provider}: {record.last_successful!r}"
            )
            return None

        if as_interval:
            return now() - last_sync
        return last_sync

    def save(self, deltas: Iterable[RecordLike]) -> bool:
        """
        Merge deltas into the stored history and rewrite the log file.

        Fields present in a delta win; fields it omits keep their stored
        values. Records for providers without a delta are kept unchanged.

        Returns:
            True if the file was written
        """
        deltas = [_as_record(delta) for delta in deltas]
        if not deltas:
            return False

        existing = {record.provider: record for record in self._records}
        merged: Dict[str, RunRecord] = {}
        for delta in deltas:
            stored = merged.get(delta.provider) or existing.pop(delta.provider, None)
            merged[delta.provider] = delta.merged_over(stored)
        merged.update(existing)

        output = sorted(merged.values(), key=lambda record: record.provider)
        if not safe_write_json(str(self.log_path), [record.to_dict() for record in output]):
            self.logger.error(f"Run log not saved to {self.log_path}")
            return False

        self._records = output
        self.logger.debug(f"Saved {len(deltas)} run record(s) to {self.log_path}")
        return True

    def summarize_run(self, provider: str, logs: Optional[Iterable[Optional[RecordLike]]],
                      default_detail: Optional[str] = None,
                      error: Optional[BaseException] = None) -> RunRecord:
        """
        Collapse the log fragments of one provider's run into a single record.

        Status precedence is failed > success > skipped > idle.

        Args:
            provider: Provider name
            logs: Fragments produced during the run (None entries are ignored)
            default_detail: Detail to use instead of the last fragment's detail
            error: Exception that aborted the run, if any

        Returns:
            Summary RunRecord
        """
        fragments = [_as_record(entry) for entry in (logs or []) if entry is not None]

        items_synced = sum(fragment.items for fragment in fragments)
        last_attempted = _last_value(fragments, "last_attempted")
        last_successful = _last_value(fragments, "last_successful")
        last_failed = _last_value(fragments, "last_failed")
        detail = (default_detail or _last_value(fragments, "detail") or "").strip()

        failed_entry = next(
            (
                fragment for fragment in reversed(fragments)
                if fragment.status == RunStatus.FAILED or fragment.error_message
            ),
            None,
        )

        if failed_entry is not None or error is not None:
            status = RunStatus.FAILED
        elif any(f.status == RunStatus.SUCCESS or f.last_successful for f in fragments):
            status = RunStatus.SUCCESS
        elif fragments:
            status = RunStatus.SKIPPED
        else:
            status = RunStatus.IDLE

        if status == RunStatus.FAILED:
            failure = _failure_detail(failed_entry)
            if failure is None and error is not None:
                failure = f"{type(error).__name__}: {error}"
            if failure and last_failed:
                failure = f"{failure} ({last_failed})"
            detail = " - ".join(part for part in (detail, failure) if part)
            if not detail:
                detail = DETAIL_FAILURE + (f" ({last_failed})" if last_failed else "")
        elif status == RunStatus.SUCCESS:
            if not detail:
                detail = f"{items_synced} items processed" if items_synced > 0 else DETAIL_NO_CHANGES
        elif status == RunStatus.SKIPPED:
            detail = detail or DETAIL_SKIPPED
        else:
            detail = detail or DETAIL_IDLE

        error_class = failed_entry.error_class if failed_entry else None
        error_message = failed_entry.error_message if failed_entry else None
        if error is not None and error_class is None:
            error_class = type(error).__name__
            error_message = str(error)

        return RunRecord(
            provider=provider,
            last_attempted=last_attempted,
            last_successful=last_successful,
            last_failed=last_failed,
            items_synced=items_synced,
            status=status,
            detail=detail,
            error_class=error_class,
            error_message=error_message,
        )

    def format_run_summary(self, summaries: Iterable[Optional[RecordLike]],
                           started_at: Optional[str] = None) -> str:
        """Render this run's summaries as a table ("" when there are none)."""
        records = [_as_record(entry) for entry in summaries if entry is not None]
        if not records:
            return ""

        rows = [
            (
                record.provider,
                status_for_record(record),
                record.items,
                record.last_successful,
                record.last_failed,
                record.detail,
            )
            for record in records
        ]
        table = format_table(SUMMARY_HEADERS, rows, right_aligned=[2])
        if started_at:
            return f"Sync summary @ {started_at}\n{table}"
        return table

    def print_run_summary(self, summaries: Iterable[Optional[RecordLike]],
                          started_at: Optional[str] = None) -> None:
        output = self.format_run_summary(summaries, started_at=started_at)
        if output:
            print(output)

    def format_logs(self, providers: Optional[Iterable[str]] = None) -> str:
        """Render the stored history, optionally limited to some providers."""
        wanted = set(providers) if providers is not None else None
        rows = [
            (
                record.provider,
                record.last_attempted,
                record.last_successful,
                record.last_failed,
                record.items,
                status_for_record(record),
            )
            for record in self._records
            if wanted is None or record.provider in wanted
        ]
        return format_table(HISTORY_HEADERS, rows, right_aligned=[4])

    def print_logs(self, providers: Optional[Iterable[str]] = None) -> None:
        print(self.format_logs(providers))
