"""In-process TTL cache for upstream responses."""
from __future__ import annotations

import asyncio
import logging
import time
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from bellhopping.tasks.search_payloads import SearchQuery

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheTTL:
    """Lifetimes in milliseconds, one per resource class."""

    SEARCH_RESULTS = 10 * 60 * 1000
    HOTEL_DETAILS = 60 * 60 * 1000
    # Provider tokens live 55 minutes.
    AUTH_TOKEN = 50 * 60 * 1000


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    expires_at: float


class ResponseCache:
    """Key/value store whose reads never return expired entries.

    ``get`` evicts lazily; :meth:`start` runs a background sweep so keys that are
    never read again still get released.
    """

    def __init__(
        self,
        *,
        sweep_interval_s: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: Dict[str, CacheEntry[Any]] = {}
        self._sweep_interval_s = sweep_interval_s
        self._clock = clock
        self._sweeper: Optional[asyncio.Task[None]] = None

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._now_ms() > entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry.data

    def set(self, key: str, value: Any, ttl_ms: float) -> None:
        self._entries[key] = CacheEntry(data=value, expires_at=self._now_ms() + ttl_ms)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def sweep(self) -> int:
        now = self._now_ms()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Evicted %s expired cache entries", len(expired))
        return len(expired)

    def stats(self) -> dict[str, int]:
        now = self._now_ms()
        total = len(self._entries)
        expired = sum(1 for entry in self._entries.values() if now > entry.expires_at)
        return {"total": total, "active": total - expired, "expired": expired}

    # ------------------------------------------------------------------
    # background sweep

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        sweeper = self._sweeper
        self._sweeper = None
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval_s)
            self.sweep()


def _location_key(query: SearchQuery) -> str:
    location = query.location
    if location.code:
        return location.code
    if location.name:
        return location.name
    if location.coordinates is not None:
        return f"{location.coordinates.latitude:.4f},{location.coordinates.longitude:.4f}"
    return "unknown"


def search_cache_key(query: SearchQuery) -> str:
    return (
        f"search:{_location_key(query)}:{query.check_in.isoformat()}:"
        f"{query.check_out.isoformat()}:{query.rooms}:{query.adults}"
    )


def hotel_details_cache_key(hotel_code: str) -> str:
    return f"hotel:{hotel_code}"
