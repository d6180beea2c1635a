"""
Bounded task scheduler for per-file search work.

Admits a task only while fewer than max_concurrency tasks are outstanding.
The producer blocks in submit() until a slot frees, which keeps the number
of open files and buffered lines bounded on large trees.

Completion is a two-phase join: join() returns once the producer has
called close() and every admitted task has finished.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional
import structlog

logger = structlog.get_logger()


class TaskScheduler:
    """
    Admission-controlled wrapper around a thread pool.

    Every admitted task releases its slot exactly once, whether it returns
    normally or raises. Task exceptions are logged and counted.
    """

    def __init__(self, max_concurrency: int, thread_name_prefix: str = "grab-worker"):
        """
        Initialize scheduler.

        Args:
            max_concurrency: Maximum number of tasks running at once
            thread_name_prefix: Prefix for worker thread names
        """
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

        self.max_concurrency = max_concurrency
        self._slots = threading.BoundedSemaphore(max_concurrency)
        self._executor = ThreadPoolExecutor(
            max_workers=max_concurrency,
            thread_name_prefix=thread_name_prefix
        )

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._closed = False
        self._outstanding = 0
        self._active = 0
        self._peak_active = 0
        self._submitted = 0
        self._completed = 0
        self._failed = 0

        logger.debug("TaskScheduler initialized", max_concurrency=max_concurrency)

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """
        Admit one task, blocking until a slot is free.

        Raises:
            RuntimeError: If called after close()
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("cannot submit to a closed scheduler")

        self._slots.acquire()

        with self._lock:
            self._outstanding += 1
            self._submitted += 1

        try:
            self._executor.submit(self._run, fn, args, kwargs)
        except BaseException:
            self._release(failed=True)
            raise

    def _run(self, fn: Callable[..., Any], args: tuple, kwargs: dict) -> None:
        with self._lock:
            self._active += 1
            self._peak_active = max(self._peak_active, self._active)

        failed = False
        try:
            fn(*args, **kwargs)
        except Exception as e:
            failed = True
            logger.exception("Task failed", task=getattr(fn, "__name__", repr(fn)), error=str(e))
        finally:
            with self._lock:
                self._active -= 1
            self._release(failed=failed)

    def _release(self, failed: bool = False) -> None:
        self._slots.release()
        with self._idle:
            self._outstanding -= 1
            if failed:
                self._failed += 1
            else:
                self._completed += 1
            if self._closed and self._outstanding == 0:
                self._idle.notify_all()

    def close(self) -> None:
        """Mark the producer finished. No further submissions are accepted."""
        with self._idle:
            self._closed = True
            if self._outstanding == 0:
                self._idle.notify_all()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until close() has been called and all admitted tasks are done.

        Args:
            timeout: Maximum seconds to wait (None = wait forever)

        Returns:
            True if the scheduler drained, False on timeout
        """
        with self._idle:
            return self._idle.wait_for(
                lambda: self._closed and self._outstanding == 0,
                timeout=timeout
            )

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pool. Admitted tasks still run to completion."""
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "TaskScheduler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
        if exc_type is None:
            self.join()
        self.shutdown(wait=exc_type is None)

    @property
    def outstanding(self) -> int:
        with self._lock:
            return self._outstanding

    @property
    def submitted(self) -> int:
        with self._lock:
            return self._submitted

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed

    @property
    def peak_active(self) -> int:
        with self._lock:
            return self._peak_active
