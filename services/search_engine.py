"""
Search orchestration: walk the tree, search files concurrently, aggregate.

Pipeline for one run:
1. Walker thread traverses the tree and posts scan events to the channel
2. Each discovered file is admitted to the TaskScheduler (blocking when full)
3. Worker tasks stream MatchLocations (or a FileSkipped) into the channel
4. A closer thread waits for the walker and the scheduler's two-phase join,
   then posts the end-of-run sentinel
5. The calling thread drains the channel through the ResultAggregator
"""

import os
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional
import structlog

from config import settings
from scanning.errors import FatalError, FileAccessError
from scanning.matcher import iter_file_matches
from scanning.models import FileDiscovered, Report, SearchRequest, WalkFailure
from scanning.walker import WalkPolicy, walk
from services.aggregator import ResultAggregator, skip_event
from services.scheduler import TaskScheduler

logger = structlog.get_logger()

# How long a producer waits on a full channel before re-checking
# whether the consumer has gone away
PUT_POLL_SECONDS = 0.1


class RunCancellation(threading.Event):
    """
    Cancel flag for a single run.

    set() only affects this run (timeouts, an abandoned consumer), while
    is_set() and wait() also report the caller's event, so a caller can
    still stop the run without a timeout leaking into later runs.
    """

    def __init__(self, parent: Optional[threading.Event] = None):
        super().__init__()
        self._parent = parent

    def is_set(self) -> bool:
        if super().is_set():
            return True
        return self._parent is not None and self._parent.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        if self._parent is None:
            return super().wait(timeout)

        deadline = None if timeout is None else time.monotonic() + timeout
        while not self.is_set():
            if deadline is None:
                step = PUT_POLL_SECONDS
            else:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                step = min(PUT_POLL_SECONDS, remaining)
            super().wait(step)
        return True


@dataclass
class SearchContext:
    """Per-run state shared by the walker, the workers and the closer."""
    request: SearchRequest
    channel: queue.Queue
    cancel_event: RunCancellation
    abandoned: threading.Event = field(default_factory=threading.Event)
    done: object = field(default_factory=object)


class SearchEngine:
    """
    Runs one search request.

    Each call to run() builds a fresh SearchContext, so an engine can be
    run repeatedly and several engines can run in one process.
    """

    def __init__(
        self,
        request: SearchRequest,
        cancel_event: Optional[threading.Event] = None,
        result_buffer: int = settings.RESULT_BUFFER_SIZE
    ):
        """
        Initialize search engine.

        Args:
            request: What to search for and where
            cancel_event: Set by the caller to stop the run early. The engine
                never sets it; timeouts only cancel the current run
            result_buffer: Capacity of the result channel
        """
        self.request = request
        self.cancel_event = cancel_event or threading.Event()
        self.result_buffer = result_buffer

    def run(self) -> Report:
        """
        Execute the search and return its report.

        Raises:
            FatalError: If the root is not an existing directory
        """
        request = self.request
        if not os.path.isdir(request.root_path):
            raise FatalError(f"search root is not a directory: {request.root_path}")

        ctx = SearchContext(
            request=request,
            channel=queue.Queue(maxsize=self.result_buffer),
            cancel_event=RunCancellation(parent=self.cancel_event)
        )
        aggregator = ResultAggregator()
        scheduler = TaskScheduler(request.max_concurrency)

        timer = None
        if request.timeout is not None:
            timer = threading.Timer(request.timeout, self._on_timeout, args=(ctx,))
            timer.daemon = True
            timer.start()

        logger.info(
            "Search started",
            root=request.root_path,
            case_sensitive=request.case_sensitive,
            include_hidden=request.include_hidden,
            include_subdirs=request.include_subdirs,
            max_concurrency=request.max_concurrency
        )
        start_time = time.monotonic()

        walker = threading.Thread(
            target=self._walk_and_dispatch,
            args=(ctx, scheduler),
            name="grab-walker",
            daemon=True
        )
        closer = threading.Thread(
            target=self._close_when_done,
            args=(ctx, scheduler, walker),
            name="grab-closer",
            daemon=True
        )
        walker.start()
        closer.start()

        try:
            aggregator.consume(ctx.channel, ctx.done)
        except BaseException:
            # Consumer is gone: stop producers from blocking on the channel
            ctx.cancel_event.set()
            ctx.abandoned.set()
            scheduler.shutdown(wait=False)
            raise
        finally:
            if timer is not None:
                timer.cancel()

        scheduler.shutdown()
        elapsed = time.monotonic() - start_time

        if scheduler.failed:
            logger.warning("Some search tasks failed unexpectedly", failed=scheduler.failed)

        return aggregator.build(elapsed, cancelled=ctx.cancel_event.is_set())

    def _emit(self, ctx: SearchContext, event: Any) -> bool:
        """Put an event on the channel. Returns False if the consumer is gone."""
        while True:
            try:
                ctx.channel.put(event, timeout=PUT_POLL_SECONDS)
                return True
            except queue.Full:
                if ctx.abandoned.is_set():
                    return False

    def _walk_and_dispatch(self, ctx: SearchContext, scheduler: TaskScheduler) -> None:
        root = ctx.request.root_path
        policy = WalkPolicy.from_request(ctx.request)
        try:
            for event in walk(root, policy, ctx.cancel_event):
                if not self._emit(ctx, event):
                    break
                if isinstance(event, FileDiscovered):
                    scheduler.submit(self._search_one, ctx, event.path)
        except Exception as e:
            logger.exception("Walk aborted", root=root, error=str(e))
            self._emit(ctx, WalkFailure(path=root, reason=str(e)))
        finally:
            scheduler.close()

    def _search_one(self, ctx: SearchContext, path: str) -> None:
        if ctx.cancel_event.is_set():
            return

        request = ctx.request
        try:
            for match in iter_file_matches(
                path, request.pattern, request.case_sensitive, ctx.cancel_event
            ):
                if not self._emit(ctx, match):
                    return
        except FileAccessError as e:
            logger.warning("Skipping file", path=path, error=e.reason)
            self._emit(ctx, skip_event(path, e.reason))

    def _close_when_done(
        self,
        ctx: SearchContext,
        scheduler: TaskScheduler,
        walker: threading.Thread
    ) -> None:
        walker.join()
        scheduler.join()
        self._emit(ctx, ctx.done)

    def _on_timeout(self, ctx: SearchContext) -> None:
        logger.warning("Search timed out, cancelling", timeout=ctx.request.timeout)
        ctx.cancel_event.set()


def run_search(request: SearchRequest, cancel_event: Optional[threading.Event] = None) -> Report:
    """Run one search and return its report."""
    return SearchEngine(request, cancel_event=cancel_event).run()
