"""Run one hotel search and print the enriched results."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import date, timedelta
from typing import Optional

from bellhopping.config.settings import Settings
from bellhopping.core.logging import configure_logging
from bellhopping.luxury import LuxuryProgram
from bellhopping.luxury.enricher import filter_luxury_hotels, get_luxury_stats, sort_by_luxury_status
from bellhopping.services import SearchOrchestrator
from bellhopping.storage import SqliteSearchLog
from bellhopping.tasks.search_payloads import Coordinates, LocationType, SearchLocation, SearchQuery

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search Sabre hotel availability")
    location = parser.add_argument_group("location")
    location.add_argument("--lat", type=float, help="Latitude of the search centre")
    location.add_argument("--lng", type=float, help="Longitude of the search centre")
    location.add_argument("--code", help="Provider location code (city or airport)")
    location.add_argument(
        "--type",
        choices=[item.value for item in LocationType],
        help="Kind of provider code supplied via --code",
    )
    location.add_argument("--name", help="Display name recorded in the search log")
    parser.add_argument(
        "--check-in",
        type=date.fromisoformat,
        help="Check-in date (YYYY-MM-DD). Defaults to 14 days from today",
    )
    parser.add_argument("--nights", type=int, default=3, help="Length of stay")
    parser.add_argument("--rooms", type=int, help="Room count (default from settings)")
    parser.add_argument("--adults", type=int, help="Adults per search (default from settings)")
    parser.add_argument("--radius", type=float, help="Search radius in miles")
    parser.add_argument(
        "--program",
        action="append",
        choices=[program.value for program in LuxuryProgram],
        help="Only show hotels in this program (repeatable)",
    )
    parser.add_argument("--luxury-only", action="store_true", help="Only show luxury hotels")
    parser.add_argument("--json", action="store_true", help="Print the raw outcome as JSON")
    return parser


def _build_query(args: argparse.Namespace, settings: Settings) -> SearchQuery:
    coordinates: Optional[Coordinates] = None
    if args.lat is not None and args.lng is not None:
        coordinates = Coordinates(latitude=args.lat, longitude=args.lng)
    location = SearchLocation(
        coordinates=coordinates,
        code=args.code,
        type=LocationType(args.type) if args.type else None,
        name=args.name,
    )
    check_in = args.check_in or (date.today() + timedelta(days=14))
    return SearchQuery(
        location=location,
        check_in=check_in,
        check_out=check_in + timedelta(days=args.nights),
        rooms=args.rooms or settings.default_rooms,
        adults=args.adults or settings.default_adults,
        radius_miles=args.radius or settings.default_radius_miles,
    )


async def run(settings: Settings, args: argparse.Namespace) -> None:
    query = _build_query(args, settings)
    query.ensure_bookable()

    search_log: Optional[SqliteSearchLog] = None
    if settings.search_log_enabled:
        search_log = SqliteSearchLog(settings.search_log_path)
        await search_log.initialize()
    try:
        async with SearchOrchestrator.from_settings(settings, search_log=search_log) as orchestrator:
            outcome = await orchestrator.search(query)
    finally:
        if search_log:
            await search_log.close()

    results = outcome.results
    if args.program:
        results = filter_luxury_hotels(results, [LuxuryProgram(value) for value in args.program])
    elif args.luxury_only:
        results = filter_luxury_hotels(results)
    results = sort_by_luxury_status(results)

    if args.json:
        payload = outcome.to_dict()
        payload["results"] = [hotel.to_dict() for hotel in results]
        payload["luxury"] = get_luxury_stats(outcome.results)
        print(json.dumps(payload, indent=2))
        return

    stats = get_luxury_stats(outcome.results)
    logger.info(
        "%s hotels (%s luxury, %.1f%%) in %.0f ms%s",
        stats["total"],
        stats["luxury_count"],
        stats["luxury_percentage"],
        outcome.response_time_ms,
        " from cache" if outcome.cached else "",
    )
    for hotel in results:
        rate = f"{hotel.lowest_rate:.2f} {hotel.currency_code}" if hotel.lowest_rate is not None else "no rate"
        programs = ", ".join(program.value for program in hotel.luxury_programs)
        print(f"{hotel.hotel_code:10} | {hotel.hotel_name[:45]:45} | {rate:16} | {programs}")


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    if (args.lat is None) != (args.lng is None):
        parser.error("--lat and --lng must be given together")
    if args.nights <= 0:
        parser.error("--nights must be positive")

    settings = Settings()
    configure_logging(settings.log_level, settings.log_dir)
    settings.ensure_directories()
    asyncio.run(run(settings, args))


if __name__ == "__main__":
    main()
