"""
Error taxonomy for the search engine.

Per-file and per-entry errors are recovered where they happen and turned
into statistics. Only FatalError aborts a run.
"""


class GrabError(Exception):
    """Base class for all grab errors."""


class FileAccessError(GrabError):
    """A discovered file could not be searched."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class FileOpenError(FileAccessError):
    """The file could not be opened for reading."""


class FileReadError(FileAccessError):
    """Reading failed after the file was opened."""


class WalkError(GrabError):
    """A directory entry could not be listed or stat'd."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class FatalError(GrabError):
    """The search cannot start (no usable starting directory)."""
