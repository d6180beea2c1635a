"""Scanning module: tree walking, binary detection and per-file matching."""

from scanning.binary_detector import is_binary
from scanning.matcher import FileSearchResult, find_occurrences, iter_file_matches, search_file
from scanning.models import MatchLocation, Report, ScanStats, SearchRequest, SkipRecord
from scanning.walker import WalkPolicy, walk

__all__ = [
    "is_binary",
    "FileSearchResult",
    "find_occurrences",
    "iter_file_matches",
    "search_file",
    "MatchLocation",
    "Report",
    "ScanStats",
    "SearchRequest",
    "SkipRecord",
    "WalkPolicy",
    "walk",
]
