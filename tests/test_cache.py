from __future__ import annotations

import asyncio
from datetime import date

import pytest

from bellhopping.core.cache import CacheTTL, ResponseCache, hotel_details_cache_key, search_cache_key
from bellhopping.tasks.search_payloads import Coordinates, SearchLocation, SearchQuery

from sabre_fixtures import FakeClock


def test_get_returns_value_until_ttl_elapses():
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("search:MIA", ["hotel"], ttl_ms=1_000)

    assert cache.get("search:MIA") == ["hotel"]
    clock.advance(1.0)
    assert cache.get("search:MIA") == ["hotel"]
    clock.advance(0.5)
    assert cache.get("search:MIA") is None
    assert len(cache) == 0


def test_delete_invalidates_immediately():
    cache = ResponseCache(clock=FakeClock())
    cache.set("key", "value", ttl_ms=CacheTTL.HOTEL_DETAILS)

    cache.delete("key")

    assert cache.get("key") is None


def test_sweep_evicts_only_expired_entries():
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("short", 1, ttl_ms=1_000)
    cache.set("long", 2, ttl_ms=CacheTTL.SEARCH_RESULTS)
    clock.advance(5)

    assert cache.stats() == {"total": 2, "active": 1, "expired": 1}
    assert cache.sweep() == 1
    assert cache.get("long") == 2
    assert cache.stats() == {"total": 1, "active": 1, "expired": 0}


def test_clear_drops_everything():
    cache = ResponseCache(clock=FakeClock())
    cache.set("a", 1, ttl_ms=1_000)
    cache.set("b", 2, ttl_ms=1_000)

    cache.clear()

    assert len(cache) == 0


@pytest.mark.asyncio
async def test_background_sweep_starts_and_stops():
    cache = ResponseCache(sweep_interval_s=0.01, clock=FakeClock())
    cache.start()
    cache.start()
    await cache.stop()
    await cache.stop()


@pytest.mark.asyncio
async def test_background_sweep_evicts_keys_that_are_never_read():
    clock = FakeClock()
    cache = ResponseCache(sweep_interval_s=0.01, clock=clock)
    cache.set("stale", 1, ttl_ms=1_000)
    cache.set("fresh", 2, ttl_ms=CacheTTL.SEARCH_RESULTS)
    clock.advance(5)

    cache.start()
    try:
        for _ in range(100):
            if len(cache) == 1:
                break
            await asyncio.sleep(0.01)
    finally:
        await cache.stop()

    assert cache.stats() == {"total": 1, "active": 1, "expired": 0}
    assert cache.get("fresh") == 2


def test_search_cache_key_ignores_construction_order():
    first = SearchQuery(
        location=SearchLocation.from_mapping({"code": "MIA", "type": "airport", "name": "Miami"}),
        check_in=date(2026, 3, 15),
        check_out=date(2026, 3, 18),
    )
    second = SearchQuery(
        adults=2,
        rooms=1,
        check_out=date(2026, 3, 18),
        check_in=date(2026, 3, 15),
        location=SearchLocation.from_mapping({"name": "Miami", "type": "AIRPORT", "code": "MIA"}),
    )

    assert search_cache_key(first) == search_cache_key(second) == "search:MIA:2026-03-15:2026-03-18:1:2"


def test_search_cache_key_uses_rounded_coordinates_without_code_or_name():
    query = SearchQuery(
        location=SearchLocation(coordinates=Coordinates(25.795912, -80.287104)),
        check_in=date(2026, 3, 15),
        check_out=date(2026, 3, 18),
        adults=3,
    )

    assert search_cache_key(query) == "search:25.7959,-80.2871:2026-03-15:2026-03-18:1:3"


def test_hotel_details_cache_key():
    assert hotel_details_cache_key("02179") == "hotel:02179"
