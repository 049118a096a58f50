"""Active validation of luxury program participation.

A chain or name match is only a hypothesis: contracts lapse and franchised
properties opt out. :class:`LuxuryProbe` asks Sabre for the program's rate plan
codes directly and treats a returned plan as proof.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from bellhopping.auth.manager import AuthManager
from bellhopping.hotels.models import ProbeResult
from bellhopping.services.sabre_client import SabreClient, UpstreamRequestError
from bellhopping.tasks.search_payloads import build_probe_payload

logger = logging.getLogger(__name__)

DEFAULT_RATE_CODES_KEY = "DEFAULT"

LUXURY_RATE_CODES: Dict[str, tuple[str, ...]] = {
    "FS": ("FSP", "FPP"),
    # Marriott STARS: Ritz-Carlton, St. Regis, Bulgari, Edition
    "RZ": ("S72", "STR", "MBS"),
    "XR": ("S72", "STR", "MBS"),
    "BG": ("S72", "STR", "MBS"),
    "ED": ("S72", "STR", "MBS"),
    "MO": ("MOF", "FAN"),
    "RW": ("RWE", "RWP"),
    "AM": ("AMA", "AMP"),
    "PE": ("PEN", "PPP"),
    # Hyatt Prive: Park Hyatt, Andaz
    "HY": ("P12", "PRI"),
    "PH": ("P12", "PRI"),
    "AZ": ("P12", "PRI"),
    # Virtuoso catch-all, probed for every hotel
    DEFAULT_RATE_CODES_KEY: ("VIR", "VRT", "VTU"),
}

BENEFIT_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("BREAKFAST", re.compile(r"breakfast|bkfst|morning meal", re.IGNORECASE)),
    ("CREDIT", re.compile(r"credit|\$\d+|usd\s*\d+", re.IGNORECASE)),
    ("UPGRADE", re.compile(r"upgrade|room category", re.IGNORECASE)),
    ("LATE_CHECKOUT", re.compile(r"late check-?out", re.IGNORECASE)),
    ("EARLY_CHECKIN", re.compile(r"early check-?in", re.IGNORECASE)),
    ("SPA_CREDIT", re.compile(r"spa|wellness", re.IGNORECASE)),
    ("VIP_AMENITY", re.compile(r"vip|welcome|amenity", re.IGNORECASE)),
)


@dataclass(frozen=True)
class ProbeConfig:
    hotel_id: str
    chain_code: Optional[str] = None
    days_in_future: int = 45
    night_count: int = 2


def candidate_rate_codes(chain_code: Optional[str]) -> List[str]:
    """Chain-specific codes followed by the default set, de-duplicated."""
    codes = list(LUXURY_RATE_CODES.get(chain_code or "", ()))
    codes.extend(LUXURY_RATE_CODES[DEFAULT_RATE_CODES_KEY])
    return list(dict.fromkeys(codes))


def extract_benefits(description: Optional[str]) -> List[str]:
    if not description:
        return []
    return [tag for tag, pattern in BENEFIT_PATTERNS if pattern.search(description)]


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return [value]
    return []


def _rate_plans(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    infos = _as_list(((data.get("GetHotelAvailRS") or {}).get("HotelAvailInfos") or {}).get("HotelAvailInfo"))
    if not infos or not isinstance(infos[0], dict):
        return []
    plans = _as_list((infos[0].get("RatePlans") or {}).get("RatePlan"))
    return [plan for plan in plans if isinstance(plan, dict)]


def _amount(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def evaluate_rate_plans(plans: Iterable[Dict[str, Any]], candidates: Sequence[str]) -> ProbeResult:
    """First returned plan whose code is a candidate confirms membership."""
    wanted = set(candidates)
    for plan in plans:
        code = plan.get("RatePlanCode")
        if code not in wanted:
            continue
        rate = plan.get("RatePlanRate") or {}
        description = (plan.get("RatePlanDescription") or {}).get("Text") or ""
        return ProbeResult(
            is_confirmed=True,
            rate_code_found=code,
            rate_amount=_amount(rate.get("AmountBeforeTax")),
            currency=rate.get("CurrencyCode"),
            benefits_detected=extract_benefits(description),
        )
    return ProbeResult(is_confirmed=False)


class LuxuryProbe:
    def __init__(
        self,
        auth: AuthManager,
        client: SabreClient,
        *,
        today: Callable[[], date] = date.today,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.auth = auth
        self.client = client
        self._today = today
        self._sleep = sleep
        self._validated: Dict[str, ProbeResult] = {}

    def is_validated(self, hotel_id: str) -> bool:
        return hotel_id in self._validated

    def validation_result(self, hotel_id: str) -> Optional[ProbeResult]:
        return self._validated.get(hotel_id)

    async def probe(
        self,
        hotel_id: str,
        chain_code: Optional[str] = None,
        *,
        days_in_future: int = 45,
        night_count: int = 2,
    ) -> ProbeResult:
        """Never raises; failures come back as ``ProbeResult(error=...)``."""
        codes = candidate_rate_codes(chain_code)
        check_in = self._today() + timedelta(days=days_in_future)
        check_out = check_in + timedelta(days=night_count)
        logger.info("Probing hotel %s (%s) for codes: %s", hotel_id, chain_code or "-", ", ".join(codes))
        try:
            token = await self.auth.get_token()
            payload = build_probe_payload(hotel_id, codes, check_in, check_out)
            data = await self.client.check_availability(payload, token)
            plans = _rate_plans(data)
            result = evaluate_rate_plans(plans, codes)
        except UpstreamRequestError as exc:
            if exc.timeout:
                error = "Probe timed out"
            elif exc.status is None:
                error = str(exc)
            else:
                error = f"API Error: {exc.status}"
            logger.error("Probe failed for hotel %s: %s %s", hotel_id, error, exc.body)
            result = ProbeResult(is_confirmed=False, error=error)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Probe error for hotel %s", hotel_id)
            result = ProbeResult(is_confirmed=False, error=str(exc) or exc.__class__.__name__)
        else:
            if result.is_confirmed:
                logger.info("Confirmed: hotel %s returned rate code %s", hotel_id, result.rate_code_found)
            else:
                returned = ", ".join(str(plan.get("RatePlanCode")) for plan in plans) or "none"
                logger.info("Rejected: hotel %s only returned standard rates: %s", hotel_id, returned)
        if result.error is None:
            self._validated[hotel_id] = result
        return result

    async def probe_batch(
        self,
        configs: Sequence[ProbeConfig],
        *,
        delay_ms: int = 1000,
        skip_validated: bool = False,
    ) -> Dict[str, ProbeResult]:
        """Probe sequentially with ``delay_ms`` between upstream calls."""
        results: Dict[str, ProbeResult] = {}
        logger.info("Batch probing %s hotels (%sms between requests)", len(configs), delay_ms)
        probed_any = False
        for index, config in enumerate(configs, start=1):
            cached = self._validated.get(config.hotel_id) if skip_validated else None
            if cached is not None:
                logger.debug("[%s/%s] %s already validated", index, len(configs), config.hotel_id)
                results[config.hotel_id] = cached
                continue
            if probed_any and delay_ms > 0:
                await self._sleep(delay_ms / 1000)
            logger.info("[%s/%s] Testing %s", index, len(configs), config.hotel_id)
            results[config.hotel_id] = await self.probe(
                config.hotel_id,
                config.chain_code,
                days_in_future=config.days_in_future,
                night_count=config.night_count,
            )
            probed_any = True
        confirmed = sum(1 for result in results.values() if result.is_confirmed)
        logger.info(
            "Batch results: %s confirmed, %s rejected, %s total",
            confirmed,
            len(results) - confirmed,
            len(results),
        )
        return results
