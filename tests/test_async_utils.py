"""
Tests for async_utils module.

Covers run_sync, run_sync_limited and gather_limited.
"""

import asyncio
import threading
import time

from pin_mirror.core.async_utils import (
    gather_limited,
    run_sync,
    run_sync_limited,
)


def _sync_add(a: int, b: int) -> int:
    """Simple sync function for testing."""
    return a + b


async def test_run_sync_calls_function():
    """run_sync delegates to asyncio.to_thread with correct args."""
    result = await run_sync(_sync_add, 3, 4)
    assert result == 7


async def test_run_sync_passes_kwargs():
    """run_sync forwards keyword arguments."""

    def _kw_func(*, name: str) -> str:
        return f"hello {name}"

    result = await run_sync(_kw_func, name="world")
    assert result == "hello world"


async def test_run_sync_uses_worker_thread():
    main = threading.get_ident()
    worker = await run_sync(threading.get_ident)
    assert worker != main


async def test_run_sync_limited_without_semaphore():
    assert await run_sync_limited(None, _sync_add, 1, 2) == 3


async def test_run_sync_limited_bounds_concurrency():
    """At most N calls run at once."""
    semaphore = asyncio.Semaphore(2)
    lock = threading.Lock()
    active = 0
    peak = 0

    def _work():
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.05)
        with lock:
            active -= 1

    await gather_limited([run_sync_limited(semaphore, _work) for _ in range(6)])

    assert peak <= 2


async def test_gather_limited_preserves_order():
    results = await gather_limited(
        [run_sync(_sync_add, i, 0) for i in range(5)]
    )
    assert results == [0, 1, 2, 3, 4]
