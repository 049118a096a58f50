"""Tag normalised hotels with luxury program membership."""
from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Iterable, List, Optional, Sequence

from bellhopping.hotels.models import EnrichedHotelResult, HotelResult

from .programs import LuxuryProgram
from .registry import LuxuryRegistry

logger = logging.getLogger(__name__)


class HotelEnricher:
    """Single-pass join of search results against a :class:`LuxuryRegistry`."""

    def __init__(self, registry: Optional[LuxuryRegistry] = None) -> None:
        self.registry = registry or LuxuryRegistry.default()

    def enrich(self, hotel: HotelResult) -> EnrichedHotelResult:
        programs = self.registry.get_luxury_programs(hotel.chain_code, hotel.hotel_code)
        return EnrichedHotelResult.from_hotel(hotel, programs)

    def enrich_all(self, hotels: Iterable[HotelResult]) -> List[EnrichedHotelResult]:
        enriched = [self.enrich(hotel) for hotel in hotels]
        logger.debug(
            "Enriched %s hotels (%s luxury)",
            len(enriched),
            sum(1 for hotel in enriched if hotel.is_luxury),
        )
        return enriched


def enrich_hotel_results(
    hotels: Iterable[HotelResult],
    registry: Optional[LuxuryRegistry] = None,
) -> List[EnrichedHotelResult]:
    return HotelEnricher(registry).enrich_all(hotels)


def filter_luxury_hotels(
    hotels: Iterable[EnrichedHotelResult],
    programs: Optional[Sequence[LuxuryProgram]] = None,
) -> List[EnrichedHotelResult]:
    """Keep luxury hotels; with ``programs``, keep hotels in any of them."""
    if not programs:
        return [hotel for hotel in hotels if hotel.is_luxury]
    wanted = set(programs)
    return [hotel for hotel in hotels if wanted.intersection(hotel.luxury_programs)]


def _luxury_sort_key(hotel: EnrichedHotelResult) -> tuple[int, int, float]:
    price = hotel.lowest_rate
    return (
        0 if hotel.is_luxury else 1,
        -len(hotel.luxury_programs),
        price if price is not None else math.inf,
    )


def sort_by_luxury_status(hotels: Iterable[EnrichedHotelResult]) -> List[EnrichedHotelResult]:
    return sorted(hotels, key=_luxury_sort_key)


def get_luxury_stats(hotels: Sequence[EnrichedHotelResult]) -> dict[str, object]:
    total = len(hotels)
    luxury = [hotel for hotel in hotels if hotel.is_luxury]
    program_counts = Counter(program for hotel in luxury for program in hotel.luxury_programs)
    return {
        "total": total,
        "luxury_count": len(luxury),
        "luxury_percentage": len(luxury) / total * 100 if total else 0.0,
        "program_counts": {program.value: count for program, count in program_counts.items()},
    }
