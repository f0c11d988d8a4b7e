"""Tests for the single-flight fetch cache."""

from __future__ import annotations

import asyncio

import pytest

from crash_lens.enrich.single_flight import SingleFlightCache


class TestSingleFlightCache:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_load(self) -> None:
        calls: list[str] = []
        release = asyncio.Event()

        async def loader(key: str) -> str:
            calls.append(key)
            await release.wait()
            return key.upper()

        cache: SingleFlightCache[str] = SingleFlightCache(loader)
        waiters = [asyncio.ensure_future(cache.get("a")) for _ in range(5)]
        await asyncio.sleep(0)
        assert cache.in_flight_count == 1
        release.set()

        assert await asyncio.gather(*waiters) == ["A"] * 5
        assert calls == ["a"]
        assert cache.in_flight_count == 0
        assert cache.cached("a") == "A"

    @pytest.mark.asyncio
    async def test_cached_value_is_reused(self) -> None:
        calls = 0

        async def loader(key: str) -> int:
            nonlocal calls
            calls += 1
            return len(key)

        cache: SingleFlightCache[int] = SingleFlightCache(loader)
        assert await cache.get("abc") == 3
        assert await cache.get("abc") == 3
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self) -> None:
        attempts = 0

        async def loader(key: str) -> str:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise RuntimeError("boom")
            return "ok"

        cache: SingleFlightCache[str] = SingleFlightCache(loader)
        with pytest.raises(RuntimeError, match="boom"):
            await cache.get("k")
        assert cache.in_flight_count == 0
        assert await cache.get("k") == "ok"
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self) -> None:
        active = 0
        peak = 0

        async def loader(key: str) -> str:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return key

        cache: SingleFlightCache[str] = SingleFlightCache(loader, max_concurrency=2)
        results = await asyncio.gather(*(cache.get(f"k{i}") for i in range(6)))
        assert results == [f"k{i}" for i in range(6)]
        assert peak == 2

    @pytest.mark.asyncio
    async def test_cancel_pending(self) -> None:
        async def loader(key: str) -> str:
            await asyncio.sleep(10)
            return key

        cache: SingleFlightCache[str] = SingleFlightCache(loader)
        waiter = asyncio.ensure_future(cache.get("slow"))
        await asyncio.sleep(0)
        await cache.cancel_pending()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert cache.in_flight_count == 0
