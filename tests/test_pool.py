"""Tests for the analysis thread pool."""

from __future__ import annotations

import asyncio
import threading

import pytest

from hydrocolor.analysis.classifier import classify
from hydrocolor.analysis.pool import AnalysisPool
from hydrocolor.analysis.rasterizer import PixelBuffer
from hydrocolor.config import Settings


def _make_settings(**overrides: object) -> Settings:
    defaults: dict[str, object] = {"max_concurrent": 2}
    defaults.update(overrides)
    return Settings(**defaults)  # type: ignore[arg-type]


class TestAnalysisPool:
    async def test_run_returns_function_result(self) -> None:
        pool = AnalysisPool(_make_settings())
        buffer = PixelBuffer.filled(520, 360, (255, 185, 58))
        try:
            result = await pool.run(classify, buffer, 140)
        finally:
            pool.shutdown()
        assert result.level == 5

    async def test_counters_track_running_work(self) -> None:
        pool = AnalysisPool(_make_settings(max_concurrent=1))
        release = threading.Event()
        task = asyncio.create_task(pool.run(release.wait, 5))
        await asyncio.sleep(0.05)

        assert pool.active_count == 1
        assert pool.queue_depth == 0

        release.set()
        assert await task is True
        assert pool.active_count == 0
        pool.shutdown()

    async def test_run_times_out_when_saturated(self) -> None:
        pool = AnalysisPool(_make_settings(max_concurrent=1), timeout=0.05)
        release = threading.Event()
        task = asyncio.create_task(pool.run(release.wait, 5))
        await asyncio.sleep(0.05)

        with pytest.raises(TimeoutError):
            await pool.run(lambda: None)
        assert pool.queue_depth == 0

        release.set()
        await task
        pool.shutdown()

    async def test_slot_is_released_after_failure(self) -> None:
        pool = AnalysisPool(_make_settings(max_concurrent=1), timeout=0.5)

        def explode() -> None:
            raise RuntimeError("worker failed")

        with pytest.raises(RuntimeError, match="worker failed"):
            await pool.run(explode)

        assert await pool.run(lambda: 42) == 42
        assert pool.active_count == 0
        pool.shutdown()

    async def test_cancelled_caller_keeps_slot_until_worker_finishes(self) -> None:
        pool = AnalysisPool(_make_settings(max_concurrent=1), timeout=0.05)
        release = threading.Event()
        task = asyncio.create_task(pool.run(release.wait, 5))
        await asyncio.sleep(0.05)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # The worker thread is still blocked, so no second slot may open.
        assert pool.active_count == 1
        with pytest.raises(TimeoutError):
            await pool.run(lambda: None)

        release.set()
        for _ in range(50):
            if pool.active_count == 0:
                break
            await asyncio.sleep(0.01)
        assert pool.active_count == 0
        assert await pool.run(lambda: 42) == 42
        pool.shutdown()
