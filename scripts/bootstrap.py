"""Development bootstrap helpers.

- Installs Python dependencies (pip install -e .[dev] - optional).
- Creates the data directories the settings point at.
- Optionally checks that Sabre credentials authenticate.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def run(cmd: list[str]) -> None:
    """Run a command and stream output."""
    print(f"$ {' '.join(cmd)}")
    subprocess.run(cmd, check=True)


async def check_authentication() -> dict[str, object]:
    from bellhopping.auth import AuthManager
    from bellhopping.config.settings import Settings

    async with AuthManager(Settings()) as auth:
        return await auth.test_authentication()


def main() -> None:
    parser = argparse.ArgumentParser(description="Bootstrap local development")
    parser.add_argument(
        "--skip-deps",
        action="store_true",
        help="Skip pip install -e . if dependencies already installed",
    )
    parser.add_argument(
        "--check-auth",
        action="store_true",
        help="Authenticate against Sabre with the configured credentials",
    )
    args = parser.parse_args()

    if not args.skip_deps:
        run([sys.executable, "-m", "pip", "install", "-e", f"{ROOT}[dev]"])

    from bellhopping.config.settings import Settings

    Settings().ensure_directories()

    if args.check_auth:
        result = asyncio.run(check_authentication())
        print(json.dumps(result, indent=2))
        if not result.get("success"):
            raise SystemExit(1)
    print("Bootstrap complete")


if __name__ == "__main__":
    main()
