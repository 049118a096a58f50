"""Discover luxury hotels by brand name and prove them with rate probes."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from bellhopping.config.settings import Settings
from bellhopping.core.logging import configure_logging
from bellhopping.luxury import LuxuryRegistry
from bellhopping.luxury.discovery import DiscoveryReport, discover_luxury_hotels, merge_discoveries
from bellhopping.luxury.probe import LuxuryProbe
from bellhopping.services import SearchOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_CITIES = ("New York", "Paris", "London", "Tokyo", "Dubai", "Singapore", "Hong Kong", "Los Angeles")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Discover luxury hotels across cities")
    parser.add_argument(
        "--cities",
        default=",".join(DEFAULT_CITIES),
        help="Comma separated city names (default: %(default)s)",
    )
    parser.add_argument("--days-ahead", type=int, default=30, help="Check-in offset from today")
    parser.add_argument("--nights", type=int, default=4, help="Stay length for discovery searches")
    parser.add_argument("--skip-validation", action="store_true", help="Skip the rate probe phase")
    parser.add_argument("--merge", action="store_true", help="Merge confirmed hotels into the registry")
    parser.add_argument("--registry", type=Path, help="Registry JSON to update (default from settings)")
    parser.add_argument("--output", type=Path, help="Write the discovery report as JSON")
    return parser


def _report_payload(report: DiscoveryReport, cities: list[str]) -> dict[str, object]:
    return {
        "discovered_at": datetime.now(timezone.utc).isoformat(),
        "cities": cities,
        "validated": report.validated,
        "total_hotels": report.total_hotels,
        "chain_codes": [
            {"code": info.code, "name": info.name, "count": info.count, "sample_hotels": info.sample_hotels}
            for info in report.chain_codes
        ],
        "candidates": [candidate.to_dict() for candidate in report.candidates],
        "confirmed": [candidate.to_dict() for candidate in report.confirmed],
    }


async def run(settings: Settings, args: argparse.Namespace) -> None:
    cities = [city.strip() for city in args.cities.split(",") if city.strip()]
    async with SearchOrchestrator.from_settings(settings) as orchestrator:
        probe: Optional[LuxuryProbe] = None
        if not args.skip_validation:
            probe = LuxuryProbe(orchestrator.auth, orchestrator.client)
        report = await discover_luxury_hotels(
            orchestrator,
            cities,
            probe,
            days_ahead=args.days_ahead,
            nights=args.nights,
            probe_delay_ms=settings.reverify_delay_ms,
        )

    print(f"Hotels scanned:  {report.total_hotels}")
    print(f"Chain codes:     {len(report.chain_codes)}")
    for info in report.chain_codes[:10]:
        print(f"  {info.code:12} {info.name[:30]:30} {info.count}")
    print(f"Candidates:      {len(report.candidates)}")
    print(f"Confirmed:       {len(report.confirmed)}{'' if report.validated else ' (unvalidated)'}")
    for candidate in report.confirmed:
        code = f" [{candidate.rate_code_found}]" if candidate.rate_code_found else ""
        print(f"  {candidate.hotel_id:10} {candidate.hotel_name[:40]:40} {candidate.program.value}{code}")

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(json.dumps(_report_payload(report, cities), indent=2))
        logger.info("Wrote discovery report to %s", args.output)

    if args.merge:
        registry_path: Optional[Path] = args.registry or settings.luxury_registry_path
        if registry_path is None:
            logger.error("--merge needs --registry or SABRE_LUXURY_REGISTRY_PATH")
            return
        registry = LuxuryRegistry.from_settings(registry_path)
        counts = merge_discoveries(registry, report.confirmed)
        registry.save(registry_path)
        print(f"Merged into {registry_path}: {counts['chains_added']} chains, {counts['hotels_added']} hotels")


def main() -> None:
    args = build_parser().parse_args()
    settings = Settings()
    configure_logging(settings.log_level, settings.log_dir)
    settings.ensure_directories()
    asyncio.run(run(settings, args))


if __name__ == "__main__":
    main()
