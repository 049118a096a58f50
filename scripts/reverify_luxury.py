"""Re-verify Virtuoso hotel ids and drop ones that keep failing."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from bellhopping.auth import AuthManager
from bellhopping.config.settings import Settings
from bellhopping.core.logging import configure_logging
from bellhopping.luxury import LuxuryProgram, LuxuryRegistry
from bellhopping.luxury.probe import LuxuryProbe
from bellhopping.luxury.reverify import FailureLedger, reverify_registry
from bellhopping.services import SabreClient

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Re-verify luxury hotels against live rate plans")
    parser.add_argument(
        "--program",
        choices=[program.value for program in LuxuryProgram],
        help="Only re-verify this program",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report without saving any changes")
    parser.add_argument("--max-failures", type=int, help="Consecutive failures before removal")
    parser.add_argument("--delay-ms", type=int, help="Pause between hotels")
    parser.add_argument("--registry", type=Path, help="Registry JSON to update (default from settings)")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    return parser


async def run(settings: Settings, args: argparse.Namespace) -> None:
    registry_path: Optional[Path] = args.registry or settings.luxury_registry_path
    registry = LuxuryRegistry.from_settings(registry_path)
    max_failures = args.max_failures or settings.reverify_max_failures
    ledger = FailureLedger(settings.failure_history_path, max_failures=max_failures).load()
    program = LuxuryProgram(args.program) if args.program else None
    delay_ms = settings.reverify_delay_ms if args.delay_ms is None else args.delay_ms

    async with AuthManager(settings) as auth, SabreClient(settings) as client:
        probe = LuxuryProbe(auth, client)
        report = await reverify_registry(
            registry,
            probe,
            ledger,
            program=program,
            dry_run=args.dry_run,
            delay_ms=delay_ms,
        )

    if report.to_remove and not args.dry_run:
        if registry_path is None:
            logger.warning(
                "No registry path configured; set SABRE_LUXURY_REGISTRY_PATH to persist removal of %s",
                ", ".join(report.to_remove),
            )
        else:
            registry.save(registry_path)
            logger.info("Removed %s hotels from %s", len(report.to_remove), registry_path)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
        return
    print(f"Tested:      {report.tested}")
    print(f"Still valid: {len(report.still_valid)}")
    print(f"Recovered:   {', '.join(report.recovered) or '-'}")
    for hotel_id, count in sorted(report.pending.items()):
        print(f"Pending:     {hotel_id} ({count}/{max_failures} failures)")
    print(f"To remove:   {', '.join(report.to_remove) or '-'}")


def main() -> None:
    args = build_parser().parse_args()
    settings = Settings()
    configure_logging(settings.log_level, settings.log_dir)
    settings.ensure_directories()
    asyncio.run(run(settings, args))


if __name__ == "__main__":
    main()
