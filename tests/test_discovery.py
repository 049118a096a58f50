from __future__ import annotations

from datetime import date

import pytest

from bellhopping.hotels.models import HotelResult, ProbeResult
from bellhopping.luxury import LuxuryProgram, LuxuryRegistry
from bellhopping.luxury.discovery import (
    LuxuryCandidate,
    discover_luxury_hotels,
    find_luxury_candidates,
    match_brands,
    merge_discoveries,
)
from bellhopping.luxury.enricher import enrich_hotel_results
from bellhopping.services.orchestrator import SearchOutcome
from bellhopping.services.sabre_client import UpstreamRequestError


def _hotel(code: str, name: str, chain: str | None = None) -> HotelResult:
    return HotelResult(hotel_code=code, hotel_name=name, chain_code=chain, chain_name=chain)


class CityOrchestrator:
    def __init__(self, by_city: dict[str, list[HotelResult]]) -> None:
        self.by_city = by_city
        self.queries = []

    async def search(self, query):
        self.queries.append(query)
        hotels = self.by_city.get(query.location.name)
        if hotels is None:
            raise UpstreamRequestError(500, "boom")
        return SearchOutcome(enrich_hotel_results(hotels), False, "key", 1.0)


class ConfirmingProbe:
    def __init__(self, confirmed: set[str]) -> None:
        self.confirmed = confirmed
        self.batches = []

    async def probe_batch(self, configs, *, delay_ms=1000, skip_validated=False):
        self.batches.append(list(configs))
        return {
            config.hotel_id: ProbeResult(
                is_confirmed=config.hotel_id in self.confirmed,
                rate_code_found="VIR" if config.hotel_id in self.confirmed else None,
                benefits_detected=["BREAKFAST"] if config.hotel_id in self.confirmed else [],
            )
            for config in configs
        }


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.mark.parametrize(
    "name, program",
    [
        ("Four Seasons Hotel George V", LuxuryProgram.FOUR_SEASONS_PREFERRED),
        ("The Ritz Carlton, Tokyo", None),
        ("The RitzCarlton Tokyo", LuxuryProgram.RITZ_CARLTON_STARS),
        ("Aman New York", LuxuryProgram.AMAN_PREFERRED),
        ("Amanpuri", None),
        ("W Barcelona", LuxuryProgram.VIRTUOSO),
        ("One & Only Reethi Rah", LuxuryProgram.VIRTUOSO),
        ("Holiday Inn Express", None),
    ],
)
def test_brand_patterns(name, program):
    matches = match_brands(name)
    assert (matches[0].program if matches else None) == program


def test_find_candidates_deduplicates_per_hotel_and_program():
    hotels = [
        _hotel("1", "Four Seasons Resort", "FS"),
        _hotel("1", "Four Seasons Resort", "FS"),
        _hotel("2", "Park Hyatt Tokyo", "PH"),
        _hotel("3", "Comfort Inn"),
    ]

    candidates = find_luxury_candidates(hotels, "Tokyo")

    assert [(c.hotel_id, c.program, c.brand) for c in candidates] == [
        ("1", LuxuryProgram.FOUR_SEASONS_PREFERRED, "Four Seasons"),
        ("2", LuxuryProgram.VIRTUOSO, "Park Hyatt"),
    ]
    assert all(c.city == "Tokyo" for c in candidates)


@pytest.mark.asyncio
async def test_discovery_collects_candidates_and_proves_them():
    orchestrator = CityOrchestrator(
        {
            "Paris": [
                _hotel("10", "Four Seasons George V", "FS"),
                _hotel("11", "Le Meurice"),
                _hotel("12", "Mandarin Oriental Paris", "MO"),
            ],
            "Tokyo": [_hotel("20", "Aman Tokyo", "AM"), _hotel("12", "Mandarin Oriental Paris", "MO")],
        }
    )
    probe = ConfirmingProbe({"10", "12"})

    report = await discover_luxury_hotels(
        orchestrator,
        ["Paris", "Dubai", "Tokyo"],
        probe,
        today=lambda: date(2026, 10, 18),
        sleep=_no_sleep,
    )

    assert report.total_hotels == 5
    assert [c.hotel_id for c in report.candidates] == ["10", "12", "20"]
    assert [c.hotel_id for c in report.confirmed] == ["10", "12"]
    assert report.confirmed[0].rate_code_found == "VIR"
    assert report.validated is True
    assert [(config.hotel_id, config.chain_code) for config in probe.batches[0]] == [
        ("10", "FS"),
        ("12", "MO"),
        ("20", "AM"),
    ]
    assert report.chain_codes[0].code == "MO"
    assert report.chain_codes[0].count == 2
    first_query = orchestrator.queries[0]
    assert first_query.location.code == "PAR"
    assert first_query.check_in == date(2026, 11, 17)
    assert first_query.nights == 4


@pytest.mark.asyncio
async def test_discovery_without_probe_keeps_unvalidated_candidates():
    orchestrator = CityOrchestrator({"Paris": [_hotel("10", "Four Seasons George V", "FS")]})

    report = await discover_luxury_hotels(orchestrator, ["Paris"], sleep=_no_sleep)

    assert report.validated is False
    assert [c.validated for c in report.confirmed] == [False]


def test_merge_discoveries_adds_chains_and_virtuoso_ids():
    registry = LuxuryRegistry()
    candidates = [
        LuxuryCandidate("10", "Four Seasons", LuxuryProgram.FOUR_SEASONS_PREFERRED, "Four Seasons", "Paris", "FS"),
        LuxuryCandidate("12", "Mandarin Oriental", LuxuryProgram.VIRTUOSO, "Mandarin Oriental", "Paris", "MO"),
        LuxuryCandidate("30", "Rosewood", LuxuryProgram.ROSEWOOD_ELITE, "Rosewood", "London", "INDEPENDENT"),
        LuxuryCandidate("12", "Mandarin Oriental", LuxuryProgram.VIRTUOSO, "Mandarin Oriental", "Tokyo", "MO"),
    ]

    counts = merge_discoveries(registry, candidates)

    assert counts == {"chains_added": 1, "hotels_added": 1}
    assert registry.chain_programs == {"FS": LuxuryProgram.FOUR_SEASONS_PREFERRED}
    assert registry.virtuoso_hotel_ids == frozenset({"12"})
