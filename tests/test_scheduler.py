"""
Tests for the bounded task scheduler.
"""

import threading
import time
import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class TestAdmissionControl:
    """Tests for the concurrency bound."""

    def test_never_exceeds_max_concurrency(self):
        """Test that no more than max_concurrency tasks run at once."""
        from services.scheduler import TaskScheduler

        lock = threading.Lock()
        running = 0
        peak = 0

        def task():
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            time.sleep(0.01)
            with lock:
                running -= 1

        scheduler = TaskScheduler(max_concurrency=3)
        for _ in range(20):
            scheduler.submit(task)
        scheduler.close()

        assert scheduler.join(timeout=10)
        scheduler.shutdown()

        assert peak <= 3
        assert scheduler.peak_active <= 3
        assert scheduler.completed == 20
        assert scheduler.outstanding == 0

    def test_submit_blocks_when_saturated(self):
        """Test that the producer waits for a free slot."""
        from services.scheduler import TaskScheduler

        release = threading.Event()
        scheduler = TaskScheduler(max_concurrency=1)
        scheduler.submit(release.wait, 10)

        second_admitted = threading.Event()

        def produce():
            scheduler.submit(lambda: None)
            second_admitted.set()

        producer = threading.Thread(target=produce)
        producer.start()

        assert not second_admitted.wait(timeout=0.2)
        assert scheduler.submitted == 1

        release.set()
        assert second_admitted.wait(timeout=10)
        producer.join(timeout=10)

        scheduler.close()
        assert scheduler.join(timeout=10)
        scheduler.shutdown()
        assert scheduler.completed == 2

    def test_invalid_max_concurrency(self):
        """Test that a non-positive bound is rejected."""
        from services.scheduler import TaskScheduler

        with pytest.raises(ValueError):
            TaskScheduler(max_concurrency=0)


class TestTaskFailures:
    """Tests for slot release on errors."""

    def test_failing_task_releases_slot(self):
        """Test that an exception in a task frees its slot exactly once."""
        from services.scheduler import TaskScheduler

        def boom():
            raise RuntimeError("task exploded")

        results = []
        scheduler = TaskScheduler(max_concurrency=1)
        scheduler.submit(boom)
        scheduler.submit(results.append, "ran")
        scheduler.close()

        assert scheduler.join(timeout=10)
        scheduler.shutdown()

        assert results == ["ran"]
        assert scheduler.failed == 1
        assert scheduler.completed == 1
        assert scheduler.outstanding == 0


class TestTwoPhaseJoin:
    """Tests for completion signalling."""

    def test_join_waits_for_close(self):
        """Test that an idle scheduler is not done until closed."""
        from services.scheduler import TaskScheduler

        scheduler = TaskScheduler(max_concurrency=2)

        assert scheduler.join(timeout=0.05) is False

        scheduler.close()
        assert scheduler.join(timeout=1) is True
        scheduler.shutdown()

    def test_join_waits_for_outstanding_tasks(self):
        """Test that closing alone does not finish the run."""
        from services.scheduler import TaskScheduler

        release = threading.Event()
        scheduler = TaskScheduler(max_concurrency=2)
        scheduler.submit(release.wait, 10)
        scheduler.close()

        assert scheduler.join(timeout=0.1) is False

        release.set()
        assert scheduler.join(timeout=10) is True
        scheduler.shutdown()

    def test_submit_after_close_raises(self):
        """Test that a closed scheduler rejects new work."""
        from services.scheduler import TaskScheduler

        scheduler = TaskScheduler(max_concurrency=1)
        scheduler.close()

        with pytest.raises(RuntimeError):
            scheduler.submit(lambda: None)
        scheduler.shutdown()

    def test_context_manager_joins(self):
        """Test that leaving the context waits for all tasks."""
        from services.scheduler import TaskScheduler

        results = []
        with TaskScheduler(max_concurrency=4) as scheduler:
            for i in range(10):
                scheduler.submit(results.append, i)

        assert sorted(results) == list(range(10))
        assert scheduler.outstanding == 0


class TestShutdown:
    """Tests for stopping the worker pool."""

    def test_shutdown_without_wait_lets_admitted_tasks_finish(self):
        """Test that shutdown(wait=False) still releases every slot."""
        from services.scheduler import TaskScheduler

        release = threading.Event()
        results = []

        def task(i):
            release.wait(10)
            results.append(i)

        scheduler = TaskScheduler(max_concurrency=3)
        for i in range(3):
            scheduler.submit(task, i)
        scheduler.close()

        scheduler.shutdown(wait=False)
        assert scheduler.outstanding == 3

        release.set()
        assert scheduler.join(timeout=10) is True
        assert sorted(results) == [0, 1, 2]
        assert scheduler.completed == 3
