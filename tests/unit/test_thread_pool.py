"""
Unit tests for the bounded worker pool.
"""

import threading
import time

import pytest

from simpleweb.core.thread_pool import ThreadPool


@pytest.fixture
def pool():
    pools = []

    def make(**kwargs):
        p = ThreadPool(idle_timeout=0.1, **kwargs)
        p.start()
        pools.append(p)
        return p

    yield make

    for p in pools:
        p.shutdown(wait=False)


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_tasks(self, pool):
        p = pool(workers=3, queue_size=10, overflow="block", queue_timeout=5.0)
        done = []
        lock = threading.Lock()

        def task(i):
            with lock:
                done.append(i)

        for i in range(20):
            assert p.submit(task, args=(i,))

        p.shutdown(wait=True, timeout=5.0)
        assert sorted(done) == list(range(20))

    def test_fixed_worker_count(self, pool):
        p = pool(workers=4, queue_size=5)
        assert p.stats["workers"]["total"] == 4

    def test_reject_when_full(self, pool):
        p = pool(workers=1, queue_size=1, overflow="reject")
        release = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            release.wait(5.0)

        assert p.submit(blocker)
        assert started.wait(2.0)      # Worker is now busy
        assert p.submit(blocker)      # Fills the one queue slot
        assert p.submit(blocker) is False

        assert p.stats["tasks"]["rejected"] == 1
        release.set()

    def test_block_waits_then_gives_up(self, pool):
        p = pool(workers=1, queue_size=1, overflow="block", queue_timeout=0.2)
        release = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            release.wait(5.0)

        p.submit(blocker)
        started.wait(2.0)
        p.submit(blocker)

        start = time.time()
        assert p.submit(blocker) is False
        assert time.time() - start >= 0.15
        release.set()

    def test_block_succeeds_when_slot_frees(self, pool):
        p = pool(workers=1, queue_size=1, overflow="block", queue_timeout=2.0)
        started = threading.Event()

        def short():
            started.set()
            time.sleep(0.1)

        p.submit(short)
        started.wait(2.0)
        p.submit(short)
        assert p.submit(short) is True

    def test_failing_task_does_not_kill_worker(self, pool):
        p = pool(workers=1, queue_size=10)
        ran = threading.Event()

        def boom():
            raise RuntimeError("boom")

        p.submit(boom)
        p.submit(ran.set)

        assert ran.wait(2.0)
        assert p.stats["tasks"]["failed"] == 1

    def test_shutdown_waits_for_queued_work(self, pool):
        p = pool(workers=2, queue_size=10)
        done = []

        for i in range(6):
            p.submit(lambda i=i: (time.sleep(0.02), done.append(i)))

        p.shutdown(wait=True, timeout=5.0)

        assert sorted(done) == list(range(6))
        assert not p.running

    def test_submit_after_shutdown_raises(self, pool):
        p = pool(workers=1, queue_size=1)
        p.shutdown()

        with pytest.raises(RuntimeError):
            p.submit(lambda: None)

    def test_submit_before_start_raises(self):
        with pytest.raises(RuntimeError):
            ThreadPool(workers=1).submit(lambda: None)

    @pytest.mark.parametrize("kwargs", [
        {"workers": 0},
        {"queue_size": 0},
        {"overflow": "drop"},
    ])
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            ThreadPool(**kwargs)
