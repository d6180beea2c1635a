"""
Result aggregation for a search run.

The aggregator is the single consumer of the result channel and the only
place counters are mutated. Workers and the walker send typed events; no
shared counters are touched from worker threads.
"""

import os
import queue
import threading
from collections import defaultdict
from typing import Any
import structlog

from scanning.models import (
    DirectoryVisited,
    FileDiscovered,
    FileSkipped,
    MatchLocation,
    Report,
    ScanStats,
    SkipRecord,
    WalkFailure,
)

logger = structlog.get_logger()


class ResultAggregator:
    """
    Collects match records and scan events into a Report.

    Matches for one file keep the order they were received in, which is
    line-then-column order because each file is scanned by a single task.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._matches: dict[str, list[MatchLocation]] = defaultdict(list)
        self._skipped_by_dir: dict[str, int] = defaultdict(int)
        self._walk_failures: list[WalkFailure] = []
        self._files_scanned = 0
        self._directories_scanned = 0
        self._files_skipped = 0

    def handle(self, event: Any) -> None:
        """Apply one channel event."""
        with self._lock:
            if isinstance(event, MatchLocation):
                self._matches[event.file_path].append(event)
            elif isinstance(event, FileDiscovered):
                self._files_scanned += 1
            elif isinstance(event, DirectoryVisited):
                self._directories_scanned += 1
            elif isinstance(event, FileSkipped):
                self._files_skipped += 1
                self._skipped_by_dir[event.directory] += 1
            elif isinstance(event, WalkFailure):
                self._walk_failures.append(event)
            else:
                raise TypeError(f"unexpected event on result channel: {event!r}")

    def consume(self, channel: queue.Queue, sentinel: object) -> int:
        """
        Drain the channel until the sentinel arrives.

        Args:
            channel: Queue fed by the walker and the worker tasks
            sentinel: Object posted once all producers are done

        Returns:
            Number of events handled
        """
        handled = 0
        while True:
            event = channel.get()
            if event is sentinel:
                break
            self.handle(event)
            handled += 1
        return handled

    def snapshot(self) -> dict[str, int]:
        """In-progress counts. Safe to call from another thread."""
        with self._lock:
            return {
                "files_scanned": self._files_scanned,
                "directories_scanned": self._directories_scanned,
                "files_skipped": self._files_skipped,
                "walk_errors": len(self._walk_failures),
                "matches": sum(len(v) for v in self._matches.values()),
            }

    def build(self, elapsed_seconds: float, cancelled: bool = False) -> Report:
        """
        Build the final report.

        Files are ordered by path and skip records by directory so that
        repeated runs over the same tree produce the same report.
        """
        with self._lock:
            stats = ScanStats(
                files_scanned=self._files_scanned,
                directories_scanned=self._directories_scanned,
                files_skipped=self._files_skipped,
                walk_errors=len(self._walk_failures),
                elapsed_seconds=elapsed_seconds
            )
            report = Report(
                matches_by_file={
                    path: list(self._matches[path]) for path in sorted(self._matches)
                },
                stats=stats,
                skipped=[
                    SkipRecord(directory=d, count=c)
                    for d, c in sorted(self._skipped_by_dir.items())
                ],
                walk_failures=sorted(self._walk_failures, key=lambda f: f.path),
                cancelled=cancelled
            )

        logger.info(
            "Search report built",
            files_with_matches=len(report.matches_by_file),
            matches=report.total_matches,
            files_scanned=stats.files_scanned,
            directories_scanned=stats.directories_scanned,
            files_skipped=stats.files_skipped,
            walk_errors=stats.walk_errors,
            cancelled=cancelled
        )
        return report


def skip_event(path: str, reason: str) -> FileSkipped:
    """FileSkipped event attributed to the file's containing directory."""
    return FileSkipped(path=path, directory=os.path.dirname(path), reason=reason)
