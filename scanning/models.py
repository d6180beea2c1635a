"""
Data model for a search run.

Records are created during one search invocation and are never shared
across runs. The event types double as the messages carried on the result
channel between workers and the aggregator.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional

from config import settings


@dataclass(frozen=True)
class SearchRequest:
    """Parameters of one search run. Immutable for the duration of the run."""
    root_path: str
    pattern: str
    case_sensitive: bool = False
    include_hidden: bool = True
    include_subdirs: bool = True
    max_concurrency: int = settings.DEFAULT_MAX_CONCURRENCY
    follow_symlinks: bool = False
    timeout: Optional[float] = None  # seconds; None = no limit

    def __post_init__(self):
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")


@dataclass(frozen=True)
class MatchLocation:
    """One occurrence of the pattern. Line and column are 1-based."""
    file_path: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line}:{self.column}"


@dataclass(frozen=True)
class SkipRecord:
    """Number of files skipped because of I/O errors in one directory."""
    directory: str
    count: int


@dataclass(frozen=True)
class DirectoryVisited:
    """The walker descended into a directory."""
    path: str


@dataclass(frozen=True)
class FileDiscovered:
    """The walker found a regular file to search."""
    path: str


@dataclass(frozen=True)
class WalkFailure:
    """A directory entry could not be listed or stat'd."""
    path: str
    reason: str


@dataclass(frozen=True)
class FileSkipped:
    """A discovered file could not be opened or read."""
    path: str
    directory: str
    reason: str


@dataclass
class ScanStats:
    """Counters for one run. Read only after the run completes."""
    files_scanned: int = 0
    directories_scanned: int = 0
    files_skipped: int = 0
    walk_errors: int = 0
    elapsed_seconds: float = 0.0


@dataclass
class Report:
    """Final result of a search run, owned by the caller."""
    matches_by_file: dict[str, list[MatchLocation]] = field(default_factory=dict)
    stats: ScanStats = field(default_factory=ScanStats)
    skipped: list[SkipRecord] = field(default_factory=list)
    walk_failures: list[WalkFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def total_matches(self) -> int:
        return sum(len(locations) for locations in self.matches_by_file.values())

    def to_dict(self, include_skipped: bool = True) -> dict:
        """Plain-data form of the report (for JSON output)."""
        data = {
            "matches": {
                path: [{"line": loc.line, "column": loc.column} for loc in locations]
                for path, locations in self.matches_by_file.items()
            },
            "total_matches": self.total_matches,
            "stats": asdict(self.stats),
            "cancelled": self.cancelled,
            "walk_failures": [asdict(failure) for failure in self.walk_failures],
        }
        if include_skipped:
            data["skipped"] = [asdict(record) for record in self.skipped]
        return data
