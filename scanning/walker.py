"""
Directory tree walker.

Traverses a tree in pre-order and yields typed events:
- DirectoryVisited for every directory descended into (the root included)
- FileDiscovered for every regular file that passes the policy filters
- WalkFailure for entries that cannot be listed or stat'd

Errors on one entry never stop the walk; siblings are still visited.
"""

import os
import threading
from dataclasses import dataclass
from typing import Iterator, Optional, Union
import structlog

from scanning.errors import WalkError
from scanning.models import DirectoryVisited, FileDiscovered, SearchRequest, WalkFailure

logger = structlog.get_logger()

WalkEvent = Union[DirectoryVisited, FileDiscovered, WalkFailure]


@dataclass(frozen=True)
class WalkPolicy:
    """Inclusion rules for the walker."""
    include_hidden: bool = True
    include_subdirs: bool = True
    follow_symlinks: bool = False

    @classmethod
    def from_request(cls, request: SearchRequest) -> "WalkPolicy":
        return cls(
            include_hidden=request.include_hidden,
            include_subdirs=request.include_subdirs,
            follow_symlinks=request.follow_symlinks
        )


def is_hidden(name: str) -> bool:
    """Dotfiles and dot-directories are hidden."""
    return name.startswith(".")


def _list_directory(path: str) -> list[os.DirEntry]:
    try:
        with os.scandir(path) as it:
            return sorted(it, key=lambda entry: entry.name)
    except OSError as e:
        raise WalkError(path, e.strerror or str(e)) from e


def _classify(entry: os.DirEntry, follow_symlinks: bool) -> str:
    """Return 'dir', 'file', 'link' (unfollowed dir link) or 'other'."""
    try:
        if entry.is_dir(follow_symlinks=follow_symlinks):
            return "dir"
        if entry.is_file():
            return "file"
        if entry.is_symlink():
            if not os.path.exists(entry.path):
                raise WalkError(entry.path, "broken symbolic link")
            return "link"
    except OSError as e:
        raise WalkError(entry.path, e.strerror or str(e)) from e
    return "other"


def _directory_key(path: str) -> Optional[tuple[int, int]]:
    try:
        st = os.stat(path)
    except OSError:
        return None
    return (st.st_dev, st.st_ino)


def walk(
    root: Union[str, os.PathLike],
    policy: Optional[WalkPolicy] = None,
    cancel_event: Optional[threading.Event] = None
) -> Iterator[WalkEvent]:
    """
    Walk a directory tree lazily.

    The root is never subject to the hidden filter. With include_subdirs
    disabled only the root's own files are discovered. Symlinked
    directories are descended into only when follow_symlinks is set, and
    each real directory is entered at most once.

    Args:
        root: Directory to start from
        policy: Inclusion rules (defaults: everything, no symlinked dirs)
        cancel_event: Checked before every discovery; the walk stops once set

    Yields:
        DirectoryVisited, FileDiscovered and WalkFailure events
    """
    policy = policy or WalkPolicy()
    root = os.fspath(root)

    def cancelled() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    seen: set[tuple[int, int]] = set()
    stack = [root]

    while stack:
        if cancelled():
            logger.debug("Walk cancelled", pending_directories=len(stack))
            return

        directory = stack.pop()

        if policy.follow_symlinks:
            key = _directory_key(directory)
            if key is not None:
                if key in seen:
                    logger.debug("Directory already visited, skipping cycle", path=directory)
                    continue
                seen.add(key)

        try:
            entries = _list_directory(directory)
        except WalkError as e:
            logger.warning("Cannot list directory", path=e.path, error=e.reason)
            yield WalkFailure(path=e.path, reason=e.reason)
            continue

        yield DirectoryVisited(path=directory)

        subdirs = []
        for entry in entries:
            if cancelled():
                return

            if not policy.include_hidden and is_hidden(entry.name):
                continue

            try:
                kind = _classify(entry, policy.follow_symlinks)
            except WalkError as e:
                logger.warning("Cannot stat entry", path=e.path, error=e.reason)
                yield WalkFailure(path=e.path, reason=e.reason)
                continue

            if kind == "dir":
                if policy.include_subdirs:
                    subdirs.append(entry.path)
            elif kind == "file":
                yield FileDiscovered(path=entry.path)
            elif kind == "link":
                logger.debug("Not following symlinked directory", path=entry.path)

        # Reversed so the first subdirectory by name is visited next
        stack.extend(reversed(subdirs))
