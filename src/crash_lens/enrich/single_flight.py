import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class SingleFlightCache(Generic[T]):
    """Read-through cache that runs at most one load per key at a time.

    Concurrent callers for the same key share a single future. Successful results are
    cached; failures are not, and the in-flight slot is cleared either way. A semaphore
    bounds how many loads run simultaneously.
    """

    def __init__(self, loader: Callable[[str], Awaitable[T]], max_concurrency: int = 6) -> None:
        self._loader = loader
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._lock = asyncio.Lock()
        self._cache: dict[str, T] = {}
        self._in_flight: dict[str, asyncio.Future[T]] = {}

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def cached(self, key: str) -> T | None:
        return self._cache.get(key)

    async def get(self, key: str) -> T:
        async with self._lock:
            if key in self._cache:
                return self._cache[key]
            future = self._in_flight.get(key)
            if future is None:
                future = asyncio.ensure_future(self._load(key))
                self._in_flight[key] = future
        return await asyncio.shield(future)

    async def _load(self, key: str) -> T:
        try:
            async with self._semaphore:
                value = await self._loader(key)
            async with self._lock:
                self._cache[key] = value
            return value
        finally:
            self._in_flight.pop(key, None)

    async def cancel_pending(self) -> None:
        async with self._lock:
            pending = list(self._in_flight.values())
            self._in_flight.clear()
        for future in pending:
            future.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
