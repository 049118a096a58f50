"""Offline discovery of luxury hotels for the registry.

Discovery runs in two phases: brand-name matching over city searches produces
candidates, then :class:`~bellhopping.luxury.probe.LuxuryProbe` keeps only the
candidates that actually return a program rate.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from bellhopping.auth.manager import AuthenticationError
from bellhopping.hotels.models import HotelResult, ProbeResult
from bellhopping.services.sabre_client import UpstreamRequestError
from bellhopping.tasks.search_payloads import LocationType, SearchLocation, SearchQuery

from .probe import LuxuryProbe, ProbeConfig
from .programs import LuxuryProgram
from .registry import LuxuryRegistry
from .reverify import INDEPENDENT_CHAIN_CODE

if TYPE_CHECKING:
    from bellhopping.services.orchestrator import SearchOrchestrator

logger = logging.getLogger(__name__)

MAX_SAMPLE_HOTELS = 3


@dataclass(frozen=True)
class BrandPattern:
    pattern: re.Pattern[str]
    program: LuxuryProgram
    brand: str


def _brand(regex: str, program: LuxuryProgram, brand: str) -> BrandPattern:
    return BrandPattern(re.compile(regex, re.IGNORECASE), program, brand)


LUXURY_BRAND_PATTERNS: tuple[BrandPattern, ...] = (
    _brand(r"four seasons", LuxuryProgram.FOUR_SEASONS_PREFERRED, "Four Seasons"),
    _brand(r"ritz-?carlton", LuxuryProgram.RITZ_CARLTON_STARS, "Ritz-Carlton"),
    _brand(r"\baman\b", LuxuryProgram.AMAN_PREFERRED, "Aman"),
    _brand(r"rosewood", LuxuryProgram.ROSEWOOD_ELITE, "Rosewood"),
    _brand(r"peninsula", LuxuryProgram.PENINSULA_PRIVILEGE, "Peninsula"),
    _brand(r"belmond", LuxuryProgram.BELMOND_BELLINI, "Belmond"),
    _brand(r"mandarin oriental", LuxuryProgram.VIRTUOSO, "Mandarin Oriental"),
    _brand(r"park hyatt", LuxuryProgram.VIRTUOSO, "Park Hyatt"),
    _brand(r"andaz", LuxuryProgram.VIRTUOSO, "Andaz"),
    _brand(r"st\.? regis|saint regis", LuxuryProgram.VIRTUOSO, "St. Regis"),
    _brand(r"\bw hotel\b|^w\s", LuxuryProgram.VIRTUOSO, "W Hotels"),
    _brand(r"conrad", LuxuryProgram.VIRTUOSO, "Conrad"),
    _brand(r"waldorf astoria", LuxuryProgram.VIRTUOSO, "Waldorf Astoria"),
    _brand(r"raffles", LuxuryProgram.VIRTUOSO, "Raffles"),
    _brand(r"banyan tree", LuxuryProgram.VIRTUOSO, "Banyan Tree"),
    _brand(r"six senses", LuxuryProgram.VIRTUOSO, "Six Senses"),
    _brand(r"capella", LuxuryProgram.VIRTUOSO, "Capella"),
    _brand(r"bulgari", LuxuryProgram.VIRTUOSO, "Bulgari"),
    _brand(r"oberoi", LuxuryProgram.VIRTUOSO, "Oberoi"),
    _brand(r"one\s*&\s*only", LuxuryProgram.VIRTUOSO, "One&Only"),
)


@dataclass(slots=True)
class LuxuryCandidate:
    hotel_id: str
    hotel_name: str
    program: LuxuryProgram
    brand: str
    city: str
    chain_code: Optional[str] = None
    chain_name: Optional[str] = None
    validated: bool = False
    rate_code_found: Optional[str] = None
    benefits_detected: List[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hotel_id": self.hotel_id,
            "hotel_name": self.hotel_name,
            "program": self.program.value,
            "brand": self.brand,
            "city": self.city,
            "chain_code": self.chain_code,
            "chain_name": self.chain_name,
            "validated": self.validated,
            "rate_code_found": self.rate_code_found,
            "benefits_detected": list(self.benefits_detected),
        }


@dataclass(slots=True)
class ChainCodeInfo:
    code: str
    name: str
    count: int = 0
    sample_hotels: List[tuple[str, str]] = field(default_factory=list)


@dataclass(slots=True)
class DiscoveryReport:
    total_hotels: int = 0
    chain_codes: List[ChainCodeInfo] = field(default_factory=list)
    candidates: List[LuxuryCandidate] = field(default_factory=list)
    confirmed: List[LuxuryCandidate] = field(default_factory=list)
    validation_results: Dict[str, ProbeResult] = field(default_factory=dict)
    validated: bool = False


def match_brands(hotel_name: str) -> List[BrandPattern]:
    return [brand for brand in LUXURY_BRAND_PATTERNS if brand.pattern.search(hotel_name or "")]


def find_luxury_candidates(hotels: Iterable[HotelResult], city: str) -> List[LuxuryCandidate]:
    """One candidate per ``(hotel, program)`` whose name matches a luxury brand."""
    seen: set[tuple[str, LuxuryProgram]] = set()
    candidates: List[LuxuryCandidate] = []
    for hotel in hotels:
        for brand in match_brands(hotel.hotel_name):
            key = (hotel.hotel_code, brand.program)
            if key in seen:
                continue
            seen.add(key)
            candidates.append(
                LuxuryCandidate(
                    hotel_id=hotel.hotel_code,
                    hotel_name=hotel.hotel_name,
                    program=brand.program,
                    brand=brand.brand,
                    city=city,
                    chain_code=hotel.chain_code,
                    chain_name=hotel.chain_name,
                )
            )
    return candidates


def _city_query(city: str, today: date, days_ahead: int, nights: int) -> SearchQuery:
    check_in = today + timedelta(days=days_ahead)
    location = SearchLocation(code=city[:3].upper(), type=LocationType.CITY, name=city)
    return SearchQuery(location=location, check_in=check_in, check_out=check_in + timedelta(days=nights))


def _tally_chains(chains: Dict[str, ChainCodeInfo], hotels: Iterable[HotelResult]) -> None:
    for hotel in hotels:
        code = hotel.chain_code or INDEPENDENT_CHAIN_CODE
        info = chains.get(code)
        if info is None:
            info = chains[code] = ChainCodeInfo(code=code, name=hotel.chain_name or "Independent")
        info.count += 1
        if len(info.sample_hotels) < MAX_SAMPLE_HOTELS:
            info.sample_hotels.append((hotel.hotel_code, hotel.hotel_name))


async def discover_luxury_hotels(
    orchestrator: "SearchOrchestrator",
    cities: Sequence[str],
    probe: Optional[LuxuryProbe] = None,
    *,
    today: Callable[[], date] = date.today,
    days_ahead: int = 30,
    nights: int = 4,
    search_delay_ms: int = 1000,
    probe_delay_ms: int = 1500,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> DiscoveryReport:
    """Search ``cities`` for brand matches; prove them when ``probe`` is given."""
    report = DiscoveryReport()
    chains: Dict[str, ChainCodeInfo] = {}
    seen: set[tuple[str, LuxuryProgram]] = set()

    for index, city in enumerate(cities):
        if index and search_delay_ms > 0:
            await sleep(search_delay_ms / 1000)
        logger.info("Searching %s", city)
        try:
            outcome = await orchestrator.search(_city_query(city, today(), days_ahead, nights))
        except (AuthenticationError, UpstreamRequestError) as exc:
            logger.error("Error searching %s: %s", city, exc)
            continue
        hotels = outcome.results
        logger.info("Found %s hotels in %s", len(hotels), city)
        report.total_hotels += len(hotels)
        _tally_chains(chains, hotels)
        for candidate in find_luxury_candidates(hotels, city):
            key = (candidate.hotel_id, candidate.program)
            if key not in seen:
                seen.add(key)
                report.candidates.append(candidate)

    report.chain_codes = sorted(chains.values(), key=lambda info: info.count, reverse=True)
    logger.info("Hypothesis phase found %s candidate luxury hotels", len(report.candidates))

    if probe is None or not report.candidates:
        report.confirmed = list(report.candidates)
        return report

    hotel_chains = {c.hotel_id: c.chain_code or INDEPENDENT_CHAIN_CODE for c in report.candidates}
    configs = [ProbeConfig(hotel_id=hotel_id, chain_code=chain) for hotel_id, chain in hotel_chains.items()]
    report.validation_results = await probe.probe_batch(configs, delay_ms=probe_delay_ms)
    report.validated = True
    for candidate in report.candidates:
        result = report.validation_results.get(candidate.hotel_id)
        if result is not None and result.is_confirmed:
            candidate.validated = True
            candidate.rate_code_found = result.rate_code_found
            candidate.benefits_detected = list(result.benefits_detected)
            report.confirmed.append(candidate)
    logger.info(
        "Proof phase confirmed %s of %s candidates",
        len(report.confirmed),
        len(report.candidates),
    )
    return report


def merge_discoveries(registry: LuxuryRegistry, candidates: Iterable[LuxuryCandidate]) -> dict[str, int]:
    """Fold candidates into ``registry``.

    VIRTUOSO is tracked per hotel id; every other program is tracked per chain
    code, so independents without a chain code only contribute Virtuoso ids.
    """
    chains_added = 0
    hotels_added = 0
    for candidate in candidates:
        if candidate.program is LuxuryProgram.VIRTUOSO:
            hotels_added += registry.add_virtuoso_hotel(candidate.hotel_id)
            continue
        chain_code = candidate.chain_code
        if chain_code and chain_code != INDEPENDENT_CHAIN_CODE:
            chains_added += registry.add_chain(chain_code, candidate.program)
    logger.info("Merged discoveries: %s chain codes, %s Virtuoso hotels added", chains_added, hotels_added)
    return {"chains_added": chains_added, "hotels_added": hotels_added}
