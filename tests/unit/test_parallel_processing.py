"""
Unit tests for bounded parallel execution helpers.
"""

import asyncio
import threading

import pytest

from mgnify_pathways.core.parallel_processing import ParallelConfig, gather_bounded, thread_map


@pytest.mark.unit
class TestParallelConfig:

    def test_defaults(self):
        config = ParallelConfig()
        assert config.max_concurrent_tasks == 8
        assert config.max_workers == 4

    @pytest.mark.parametrize("kwargs", [{"max_concurrent_tasks": 0}, {"max_workers": 0}, {"task_timeout": 0}])
    def test_rejects_non_positive_limits(self, kwargs):
        with pytest.raises(ValueError):
            ParallelConfig(**kwargs)


@pytest.mark.unit
@pytest.mark.asyncio
class TestGatherBounded:

    async def test_results_keep_input_order(self):
        async def delayed(n):
            await asyncio.sleep(0.001 * (5 - n))
            return n * 10

        assert await gather_bounded(delayed, range(5), max_concurrency=5) == [0, 10, 20, 30, 40]

    async def test_exceptions_are_returned_in_place(self):
        async def maybe_fail(n):
            if n == 1:
                raise KeyError(n)
            return n

        results = await gather_bounded(maybe_fail, [0, 1, 2])
        assert results[0] == 0
        assert isinstance(results[1], KeyError)
        assert results[2] == 2

    async def test_timeout_becomes_timeout_error(self):
        async def slow(n):
            await asyncio.sleep(1)

        results = await gather_bounded(slow, [1], timeout=0.01)
        assert isinstance(results[0], TimeoutError)

    async def test_invalid_concurrency(self):
        async def identity(n):
            return n

        with pytest.raises(ValueError):
            await gather_bounded(identity, [1], max_concurrency=0)


@pytest.mark.unit
class TestThreadMap:

    def test_results_and_failures_keyed_by_item(self):
        def work(item):
            if item == "bad":
                raise RuntimeError("download failed")
            return item.upper()

        results = thread_map(work, ["a", "bad", "b", "a"], max_workers=3)

        assert list(results) == ["a", "bad", "b"]
        assert results["a"] == "A"
        assert isinstance(results["bad"], RuntimeError)

    def test_worker_limit(self):
        lock = threading.Lock()
        running = 0
        peak = 0
        release = threading.Event()

        def work(item):
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            release.wait(0.05)
            with lock:
                running -= 1
            return item

        thread_map(work, range(6), max_workers=2)
        assert peak <= 2

    def test_empty_input(self):
        assert thread_map(str, []) == {}
