"""Re-verification of registry members with failure hysteresis.

A hotel leaves the registry only after ``max_failures`` consecutive probe
failures. Any success resets its counter.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .probe import LuxuryProbe
from .programs import LuxuryProgram
from .registry import LuxuryRegistry

logger = logging.getLogger(__name__)

INDEPENDENT_CHAIN_CODE = "INDEPENDENT"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class FailureRecord:
    hotel_id: str
    failure_count: int = 0
    last_failure: Optional[str] = None
    chain_code: Optional[str] = None
    program: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "hotelId": self.hotel_id,
            "failureCount": self.failure_count,
            "lastFailure": self.last_failure,
            "chainCode": self.chain_code,
            "program": self.program,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FailureRecord":
        return cls(
            hotel_id=str(data["hotelId"]),
            failure_count=int(data.get("failureCount") or 0),
            last_failure=data.get("lastFailure"),
            chain_code=data.get("chainCode"),
            program=data.get("program"),
        )


class FailureLedger:
    """Consecutive-failure counters keyed by hotel id, persisted as JSON."""

    def __init__(
        self,
        path: Optional[Path] = None,
        *,
        max_failures: int = 3,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_failures <= 0:
            raise ValueError("max_failures must be positive")
        self.path = path
        self.max_failures = max_failures
        self._clock = clock
        self._records: Dict[str, FailureRecord] = {}

    def __contains__(self, hotel_id: object) -> bool:
        return hotel_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, hotel_id: str) -> Optional[FailureRecord]:
        return self._records.get(hotel_id)

    def failure_count(self, hotel_id: str) -> int:
        record = self._records.get(hotel_id)
        return record.failure_count if record else 0

    def record_success(self, hotel_id: str) -> bool:
        """Clear the counter; returns True when the hotel had prior failures."""
        return self._records.pop(hotel_id, None) is not None

    def record_failure(
        self,
        hotel_id: str,
        *,
        chain_code: Optional[str] = None,
        program: Optional[str] = None,
    ) -> bool:
        """Count a failure; returns True once the hotel reached the removal threshold."""
        record = self._records.get(hotel_id)
        if record is None:
            record = FailureRecord(hotel_id=hotel_id, chain_code=chain_code, program=program)
            self._records[hotel_id] = record
        record.failure_count += 1
        record.last_failure = self._clock().isoformat()
        return record.failure_count >= self.max_failures

    def load(self) -> "FailureLedger":
        if self.path is None or not self.path.exists():
            return self
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            records = [FailureRecord.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Could not load failure history from %s (%s); starting fresh", self.path, exc)
            return self
        self._records = {record.hotel_id: record for record in records}
        logger.debug("Loaded %s failure records from %s", len(self._records), self.path)
        return self

    def save(self) -> Optional[Path]:
        if self.path is None:
            return None
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [record.to_dict() for record in self._records.values()]
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return self.path


@dataclass(slots=True)
class ReverificationReport:
    tested: int = 0
    still_valid: List[str] = field(default_factory=list)
    recovered: List[str] = field(default_factory=list)
    pending: Dict[str, int] = field(default_factory=dict)
    to_remove: List[str] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "tested": self.tested,
            "still_valid": list(self.still_valid),
            "recovered": list(self.recovered),
            "pending": dict(self.pending),
            "to_remove": list(self.to_remove),
            "dry_run": self.dry_run,
        }


async def reverify_registry(
    registry: LuxuryRegistry,
    probe: LuxuryProbe,
    ledger: FailureLedger,
    *,
    program: Optional[LuxuryProgram] = None,
    dry_run: bool = False,
    delay_ms: int = 1500,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> ReverificationReport:
    report = ReverificationReport(dry_run=dry_run)
    hotel_ids: List[str] = []
    if program in (None, LuxuryProgram.VIRTUOSO):
        hotel_ids = sorted(registry.virtuoso_hotel_ids)
    if program is not LuxuryProgram.VIRTUOSO:
        for chain_code, chain_program in sorted(registry.chain_programs.items()):
            if program is None or chain_program is program:
                logger.info("Skipping chain code %s (no hotel ids stored)", chain_code)

    logger.info(
        "Re-verifying %s hotels (program=%s, max failures=%s, dry run=%s)",
        len(hotel_ids),
        program.value if program else "ALL",
        ledger.max_failures,
        dry_run,
    )
    for index, hotel_id in enumerate(hotel_ids, start=1):
        if index > 1 and delay_ms > 0:
            await sleep(delay_ms / 1000)
        logger.info("[%s/%s] Testing %s", index, len(hotel_ids), hotel_id)
        result = await probe.probe(hotel_id, INDEPENDENT_CHAIN_CODE)
        report.tested += 1
        if result.is_confirmed:
            report.still_valid.append(hotel_id)
            if ledger.record_success(hotel_id):
                logger.info("Recovered: hotel %s is working again", hotel_id)
                report.recovered.append(hotel_id)
            continue
        should_remove = ledger.record_failure(
            hotel_id,
            chain_code=INDEPENDENT_CHAIN_CODE,
            program=program.value if program else None,
        )
        count = ledger.failure_count(hotel_id)
        if should_remove:
            logger.warning("Failed %sx: hotel %s should be removed", count, hotel_id)
            report.to_remove.append(hotel_id)
        else:
            logger.warning(
                "Failed %sx: hotel %s (%s attempts remaining)",
                count,
                hotel_id,
                ledger.max_failures - count,
            )
            report.pending[hotel_id] = count

    logger.info(
        "Re-verification results: %s still valid, %s to remove, %s tested",
        len(report.still_valid),
        len(report.to_remove),
        report.tested,
    )
    if dry_run:
        logger.info("Dry run: registry and failure history left untouched")
        return report
    ledger.save()
    for hotel_id in report.to_remove:
        registry.remove_virtuoso_hotel(hotel_id)
    return report
