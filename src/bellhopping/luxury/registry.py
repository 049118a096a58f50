"""Luxury program membership tables.

Two independent tables decide membership: a chain code maps to at most one
program, and a set of Sabre hotel ids marks individual Virtuoso properties.
Both lookups are O(1).
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from .programs import LuxuryProgram

logger = logging.getLogger(__name__)

DEFAULT_CHAIN_PROGRAMS: Dict[str, LuxuryProgram] = {
    "FS": LuxuryProgram.FOUR_SEASONS_PREFERRED,
    "RZ": LuxuryProgram.RITZ_CARLTON_STARS,
    "MO": LuxuryProgram.BELMOND_BELLINI,
    "RO": LuxuryProgram.ROSEWOOD_ELITE,
    "AM": LuxuryProgram.AMAN_PREFERRED,
    "PE": LuxuryProgram.PENINSULA_PRIVILEGE,
}

# Flagship properties; extended by the discovery tooling.
DEFAULT_VIRTUOSO_HOTEL_IDS: frozenset[str] = frozenset(
    {
        "02179",  # The Plaza, New York
        "06368",  # Le Bristol, Paris
        "12847",  # Mandarin Oriental, Bangkok
        "08934",  # Capella, Singapore
        "15632",  # Aman Tokyo
        "19283",  # Park Hyatt, Tokyo
        "23451",  # The Savoy, London
        "31209",  # Raffles, Singapore
        "42876",  # Hotel du Cap-Eden-Roc, Antibes
        "58392",  # Badrutt's Palace, St. Moritz
    }
)


class LuxuryRegistry:
    def __init__(
        self,
        chain_programs: Optional[Mapping[str, LuxuryProgram]] = None,
        virtuoso_hotel_ids: Optional[Iterable[str]] = None,
    ) -> None:
        self._chain_programs: Dict[str, LuxuryProgram] = dict(chain_programs or {})
        self._virtuoso_ids: set[str] = set(virtuoso_hotel_ids or ())

    @classmethod
    def default(cls) -> "LuxuryRegistry":
        return cls(DEFAULT_CHAIN_PROGRAMS, DEFAULT_VIRTUOSO_HOTEL_IDS)

    @property
    def chain_programs(self) -> Dict[str, LuxuryProgram]:
        return dict(self._chain_programs)

    @property
    def virtuoso_hotel_ids(self) -> frozenset[str]:
        return frozenset(self._virtuoso_ids)

    def get_luxury_programs(
        self,
        chain_code: Optional[str],
        hotel_id: Optional[str],
    ) -> List[LuxuryProgram]:
        programs: List[LuxuryProgram] = []
        if chain_code:
            chain_program = self._chain_programs.get(chain_code)
            if chain_program is not None:
                programs.append(chain_program)
        if hotel_id and hotel_id in self._virtuoso_ids and LuxuryProgram.VIRTUOSO not in programs:
            programs.append(LuxuryProgram.VIRTUOSO)
        return programs

    def is_luxury_hotel(self, chain_code: Optional[str], hotel_id: Optional[str]) -> bool:
        return len(self.get_luxury_programs(chain_code, hotel_id)) > 0

    # ------------------------------------------------------------------
    # maintenance

    def add_chain(self, chain_code: str, program: LuxuryProgram) -> bool:
        """Map ``chain_code`` to ``program`` unless it is already mapped."""
        if chain_code in self._chain_programs:
            return False
        self._chain_programs[chain_code] = program
        return True

    def add_virtuoso_hotel(self, hotel_id: str) -> bool:
        if hotel_id in self._virtuoso_ids:
            return False
        self._virtuoso_ids.add(hotel_id)
        return True

    def remove_virtuoso_hotel(self, hotel_id: str) -> bool:
        if hotel_id not in self._virtuoso_ids:
            return False
        self._virtuoso_ids.discard(hotel_id)
        return True

    def to_dict(self) -> dict[str, object]:
        return {
            "chain_programs": {code: program.value for code, program in sorted(self._chain_programs.items())},
            "virtuoso_hotel_ids": sorted(self._virtuoso_ids),
        }

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2))
        return path

    @classmethod
    def load(cls, path: Path) -> "LuxuryRegistry":
        if not path.exists():
            raise FileNotFoundError(f"Luxury registry not found at {path}")
        data = json.loads(path.read_text())
        chain_programs = {
            str(code): LuxuryProgram(program) for code, program in (data.get("chain_programs") or {}).items()
        }
        virtuoso_ids = [str(hotel_id) for hotel_id in data.get("virtuoso_hotel_ids") or []]
        logger.info(
            "Loaded luxury registry from %s (%s chains, %s Virtuoso hotels)",
            path,
            len(chain_programs),
            len(virtuoso_ids),
        )
        return cls(chain_programs, virtuoso_ids)

    @classmethod
    def from_settings(cls, path: Optional[Path]) -> "LuxuryRegistry":
        """Load the tooling-maintained registry when present, else the built-in data."""
        if path is not None and path.exists():
            return cls.load(path)
        return cls.default()


_default_registry = LuxuryRegistry.default()


def get_luxury_programs(chain_code: Optional[str], hotel_id: Optional[str]) -> List[LuxuryProgram]:
    return _default_registry.get_luxury_programs(chain_code, hotel_id)


def is_luxury_hotel(chain_code: Optional[str], hotel_id: Optional[str]) -> bool:
    return _default_registry.is_luxury_hotel(chain_code, hotel_id)
