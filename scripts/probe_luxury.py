"""Probe hotels for luxury program rate plans."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging

from bellhopping.auth import AuthManager
from bellhopping.config.settings import Settings
from bellhopping.core.logging import configure_logging
from bellhopping.luxury.probe import LuxuryProbe, ProbeConfig
from bellhopping.services import SabreClient

logger = logging.getLogger(__name__)


def _parse_target(value: str) -> ProbeConfig:
    hotel_id, _, chain_code = value.partition(":")
    if not hotel_id.strip():
        raise argparse.ArgumentTypeError(f"Hotel id missing in '{value}'")
    return ProbeConfig(hotel_id=hotel_id.strip(), chain_code=chain_code.strip() or None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Prove luxury program membership via rate plan probes")
    parser.add_argument(
        "targets",
        nargs="+",
        type=_parse_target,
        help="Hotel ids, optionally suffixed with ':CHAIN' (e.g. 02179 or 55555:FS)",
    )
    parser.add_argument("--days-ahead", type=int, help="Check-in offset from today")
    parser.add_argument("--nights", type=int, help="Probe stay length")
    parser.add_argument("--delay-ms", type=int, help="Pause between probes")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    return parser


async def run(settings: Settings, args: argparse.Namespace) -> int:
    days_ahead = args.days_ahead or settings.probe_days_in_future
    nights = args.nights or settings.probe_night_count
    configs = [
        ProbeConfig(target.hotel_id, target.chain_code, days_in_future=days_ahead, night_count=nights)
        for target in args.targets
    ]
    delay_ms = settings.probe_delay_ms if args.delay_ms is None else args.delay_ms

    async with AuthManager(settings) as auth, SabreClient(settings) as client:
        probe = LuxuryProbe(auth, client)
        results = await probe.probe_batch(configs, delay_ms=delay_ms)

    if args.json:
        print(json.dumps({hotel_id: result.to_dict() for hotel_id, result in results.items()}, indent=2))
    else:
        for hotel_id, result in results.items():
            if result.error:
                status = f"error: {result.error}"
            elif result.is_confirmed:
                benefits = ", ".join(result.benefits_detected) or "no benefits parsed"
                status = f"confirmed {result.rate_code_found} ({benefits})"
            else:
                status = "rejected"
            print(f"{hotel_id:10} | {status}")
    return 0 if any(result.is_confirmed for result in results.values()) else 1


def main() -> None:
    args = build_parser().parse_args()
    settings = Settings()
    configure_logging(settings.log_level, settings.log_dir)
    settings.ensure_directories()
    raise SystemExit(asyncio.run(run(settings, args)))


if __name__ == "__main__":
    main()
