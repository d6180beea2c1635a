"""
Per-file literal substring matcher.

Streams a file line by line and reports every non-overlapping occurrence
of the search pattern as a MatchLocation.

Lines are split on '\\n' only. Bytes are decoded as UTF-8 with
surrogateescape so that undecodable bytes never stop a file from being
searched. Columns are 1-based character offsets within the line as it is
compared (lower-cased for case-insensitive searches).
"""

import threading
from dataclasses import dataclass, field
from typing import Iterator, Optional
import structlog

from scanning.binary_detector import is_binary
from scanning.errors import FileAccessError, FileOpenError, FileReadError
from scanning.models import MatchLocation

logger = structlog.get_logger()

ENCODING = "utf-8"
DECODE_ERRORS = "surrogateescape"


@dataclass
class FileSearchResult:
    """Result of searching one file."""
    path: str
    matches: list[MatchLocation] = field(default_factory=list)
    error: Optional[FileAccessError] = None

    @property
    def success(self) -> bool:
        return self.error is None


def find_occurrences(line: str, pattern: str) -> list[int]:
    """
    Find all non-overlapping occurrences of pattern in line.

    Scanning resumes after the end of each match, so "aaaa" / "aa"
    gives [0, 2].

    Args:
        line: Text to scan
        pattern: Literal substring

    Returns:
        0-based start offsets, ascending. Empty for an empty pattern.
    """
    if not pattern:
        return []

    offsets = []
    start = line.find(pattern)
    while start != -1:
        offsets.append(start)
        start = line.find(pattern, start + len(pattern))
    return offsets


def iter_file_matches(
    path: str,
    pattern: str,
    case_sensitive: bool = False,
    cancel_event: Optional[threading.Event] = None
) -> Iterator[MatchLocation]:
    """
    Yield the matches in one file as they are found.

    Binary files yield nothing and are not an error.

    Args:
        path: File to search
        pattern: Literal substring to look for
        case_sensitive: Compare without case folding when True
        cancel_event: Checked between lines; stops the scan once set

    Raises:
        FileOpenError: The file could not be opened
        FileReadError: Reading failed part way through the file
    """
    if not pattern:
        return

    if is_binary(path):
        logger.debug("Skipping binary file", path=path)
        return

    needle = pattern if case_sensitive else pattern.lower()

    try:
        f = open(path, 'rb')
    except OSError as e:
        raise FileOpenError(path, e.strerror or str(e)) from e

    with f:
        line_number = 0
        try:
            for raw in f:
                line_number += 1
                if cancel_event is not None and cancel_event.is_set():
                    logger.debug("File scan cancelled", path=path, line=line_number)
                    return

                line = raw.rstrip(b'\n').decode(ENCODING, DECODE_ERRORS)
                if not case_sensitive:
                    line = line.lower()

                for offset in find_occurrences(line, needle):
                    yield MatchLocation(file_path=path, line=line_number, column=offset + 1)
        except OSError as e:
            raise FileReadError(path, e.strerror or str(e)) from e


def search_file(
    path: str,
    pattern: str,
    case_sensitive: bool = False,
    cancel_event: Optional[threading.Event] = None
) -> FileSearchResult:
    """
    Search one file and collect its matches.

    Matches found before a read error are kept in the result.
    """
    result = FileSearchResult(path=path)
    try:
        for match in iter_file_matches(path, pattern, case_sensitive, cancel_event):
            result.matches.append(match)
    except FileAccessError as e:
        result.error = e
    return result
