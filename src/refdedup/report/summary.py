import threading
from dataclasses import dataclass
from typing import Callable, Iterable

from ..commands.match import VerdictKind
from ..index.reference_index import FileFailure
from .action import Action, ActionReport


@dataclass
class DedupSummary:
    """Aggregate counts of a run.

    Attributes:
        unique: Target files with no counterpart in the reference tree
        duplicates: Target files whose content was found in the reference tree
        deleted: Duplicates removed from the target tree
        would_delete: Duplicates a dry run would have removed
        skipped: Duplicates deliberately kept (the reference itself, or a hard link to it)
        failed: Target files that could not be matched or deleted
        index_errors: Reference files or directories that could not be indexed
    """
    unique: int = 0
    duplicates: int = 0
    deleted: int = 0
    would_delete: int = 0
    skipped: int = 0
    failed: int = 0
    index_errors: int = 0

    @classmethod
    def from_reports(cls, reports: Iterable[ActionReport], index_errors: int = 0) -> "DedupSummary":
        summary = cls(index_errors=index_errors)
        for report in reports:
            summary.add(report)
        return summary

    def add(self, report: ActionReport):
        if report.verdict.kind is VerdictKind.UNIQUE:
            self.unique += 1
        elif report.verdict.kind is VerdictKind.DUPLICATE:
            self.duplicates += 1

        if report.action is Action.DELETED:
            self.deleted += 1
        elif report.action is Action.WOULD_DELETE:
            self.would_delete += 1
        elif report.action is Action.FAILED:
            self.failed += 1
        elif report.action is Action.SKIPPED and report.verdict.kind is VerdictKind.DUPLICATE:
            self.skipped += 1

    @property
    def succeeded(self) -> bool:
        """Whether every file was processed without an error."""
        return self.failed == 0 and self.index_errors == 0


class ReportCollector:
    """Accumulates ActionReports from concurrent workers.

    Appends are serialized with a lock. The optional listener is called for every report as it
    arrives, still under the lock, so output produced from it is never interleaved. Reference
    failures are recorded once the index is built, so they are known even if the run is
    interrupted while matching.
    """

    def __init__(self, listener: Callable[[ActionReport], None] | None = None):
        self._lock = threading.Lock()
        self._reports: list[ActionReport] = []
        self._index_failures: tuple[FileFailure, ...] = ()
        self._listener = listener

    def append(self, report: ActionReport):
        with self._lock:
            self._reports.append(report)
            if self._listener is not None:
                self._listener(report)

    def set_index_failures(self, failures: Iterable[FileFailure]):
        with self._lock:
            self._index_failures = tuple(failures)

    @property
    def index_failures(self) -> tuple[FileFailure, ...]:
        with self._lock:
            return self._index_failures

    @property
    def reports(self) -> list[ActionReport]:
        """Snapshot of the collected reports, sorted by target path."""
        with self._lock:
            return sorted(self._reports, key=lambda r: r.target)

    def summary(self, index_errors: int | None = None) -> DedupSummary:
        """Summary of the reports so far; index_errors defaults to the recorded index failures."""
        with self._lock:
            if index_errors is None:
                index_errors = len(self._index_failures)
            return DedupSummary.from_reports(self._reports, index_errors)

    def __len__(self):
        with self._lock:
            return len(self._reports)
