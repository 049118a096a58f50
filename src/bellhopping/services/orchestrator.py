"""Composition root for hotel searches.

cache check -> auth -> build -> upstream -> parse -> enrich -> cache write.
Concurrent identical queries share one upstream call.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from bellhopping.auth.manager import AuthManager
from bellhopping.config.settings import Settings
from bellhopping.core.cache import ResponseCache, hotel_details_cache_key, search_cache_key
from bellhopping.hotels.models import EnrichedHotelResult
from bellhopping.hotels.normalizer import parse_hotel_results
from bellhopping.luxury.enricher import HotelEnricher
from bellhopping.luxury.registry import LuxuryRegistry
from bellhopping.storage.search_log import SearchLogSink
from bellhopping.tasks.search_payloads import SearchQuery, SearchRequestBuilder

from .sabre_client import SabreClient, UpstreamRequestError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchOutcome:
    results: List[EnrichedHotelResult]
    cached: bool
    cache_key: str
    response_time_ms: float

    def to_dict(self) -> dict[str, object]:
        return {
            "results": [hotel.to_dict() for hotel in self.results],
            "cached": self.cached,
            "cache_key": self.cache_key,
            "response_time_ms": round(self.response_time_ms, 1),
            "count": len(self.results),
        }


class SearchOrchestrator:
    def __init__(
        self,
        settings: Settings,
        *,
        auth: AuthManager,
        client: SabreClient,
        cache: Optional[ResponseCache] = None,
        builder: Optional[SearchRequestBuilder] = None,
        enricher: Optional[HotelEnricher] = None,
        search_log: Optional[SearchLogSink] = None,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.settings = settings
        self.auth = auth
        self.client = client
        self.cache = cache or ResponseCache(sweep_interval_s=settings.cache_sweep_interval_s)
        self.builder = builder or SearchRequestBuilder(
            currency=settings.search_currency,
            api_version=settings.search_api_version,
            fallback_ref_point=settings.fallback_ref_point,
        )
        self.enricher = enricher or HotelEnricher(LuxuryRegistry.from_settings(settings.luxury_registry_path))
        self.search_log = search_log
        self._timer = timer
        self._inflight: Dict[str, asyncio.Future[Tuple[EnrichedHotelResult, ...]]] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        search_log: Optional[SearchLogSink] = None,
    ) -> "SearchOrchestrator":
        return cls(
            settings,
            auth=AuthManager(settings),
            client=SabreClient(settings),
            search_log=search_log,
        )

    async def __aenter__(self) -> "SearchOrchestrator":
        self.cache.start()
        return self

    async def __aexit__(self, exc_type, exc, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.cache.stop()
        await self.client.aclose()
        await self.auth.aclose()

    def get_cached_hotel(self, hotel_code: str) -> Optional[EnrichedHotelResult]:
        return self.cache.get(hotel_details_cache_key(hotel_code))

    async def search(self, query: SearchQuery, *, session_id: Optional[str] = None) -> SearchOutcome:
        key = search_cache_key(query)
        started = self._timer()
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Cache hit for %s (%s hotels)", key, len(cached))
            outcome = SearchOutcome(list(cached), True, key, self._elapsed_ms(started))
            await self._record_success(query, outcome, session_id)
            return outcome

        logger.info("Cache miss for %s", key)
        try:
            results = await self._single_flight(key, query)
        except Exception as exc:
            await self._record_failure(query, exc, self._elapsed_ms(started), session_id)
            raise
        outcome = SearchOutcome(list(results), False, key, self._elapsed_ms(started))
        await self._record_success(query, outcome, session_id)
        return outcome

    async def _single_flight(self, key: str, query: SearchQuery) -> Tuple[EnrichedHotelResult, ...]:
        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug("Joining in-flight search %s", key)
            return await asyncio.shield(pending)
        task = asyncio.ensure_future(self._fetch_once(key, query))
        self._inflight[key] = task
        return await asyncio.shield(task)

    async def _fetch_once(self, key: str, query: SearchQuery) -> Tuple[EnrichedHotelResult, ...]:
        try:
            return await self._fetch(key, query)
        finally:
            self._inflight.pop(key, None)

    async def _fetch(self, key: str, query: SearchQuery) -> Tuple[EnrichedHotelResult, ...]:
        token = await self.auth.get_token()
        payload = self.builder.build(query)
        logger.info(
            "Searching %s (%s, %s -> %s, %s adults)",
            key,
            self.builder.geo_strategy(query),
            query.check_in,
            query.check_out,
            query.adults,
        )
        try:
            data = await self.client.search_hotels(payload, token)
        except UpstreamRequestError as exc:
            if exc.status == 401:
                self.auth.invalidate()
            raise
        results = tuple(self.enricher.enrich_all(parse_hotel_results(data)))
        logger.info("Search %s returned %s hotels", key, len(results))

        self.cache.set(key, results, self.settings.search_cache_ttl_s * 1000)
        hotel_ttl_ms = self.settings.hotel_cache_ttl_s * 1000
        for hotel in results:
            if hotel.hotel_code:
                self.cache.set(hotel_details_cache_key(hotel.hotel_code), hotel, hotel_ttl_ms)
        return results

    def _elapsed_ms(self, started: float) -> float:
        return (self._timer() - started) * 1000

    async def _record_success(
        self,
        query: SearchQuery,
        outcome: SearchOutcome,
        session_id: Optional[str],
    ) -> None:
        if self.search_log is None:
            return
        try:
            await self.search_log.log_search(
                query,
                outcome.results,
                response_time_ms=outcome.response_time_ms,
                cached=outcome.cached,
                session_id=session_id,
            )
        except Exception:
            logger.exception("Search log write failed")

    async def _record_failure(
        self,
        query: SearchQuery,
        error: BaseException,
        response_time_ms: float,
        session_id: Optional[str],
    ) -> None:
        if self.search_log is None:
            return
        try:
            await self.search_log.log_failed_search(
                query,
                error,
                response_time_ms=response_time_ms,
                session_id=session_id,
            )
        except Exception:
            logger.exception("Search log write failed")
