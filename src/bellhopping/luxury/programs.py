"""Luxury program identifiers and their display metadata."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class LuxuryProgram(str, Enum):
    VIRTUOSO = "VIRTUOSO"
    FOUR_SEASONS_PREFERRED = "FOUR_SEASONS_PREFERRED"
    RITZ_CARLTON_STARS = "RITZ_CARLTON_STARS"
    BELMOND_BELLINI = "BELMOND_BELLINI"
    ROSEWOOD_ELITE = "ROSEWOOD_ELITE"
    AMAN_PREFERRED = "AMAN_PREFERRED"
    PENINSULA_PRIVILEGE = "PENINSULA_PRIVILEGE"


@dataclass(frozen=True)
class ProgramTheme:
    background: str
    text: str
    border: str


@dataclass(frozen=True)
class LuxuryProgramInfo:
    program: LuxuryProgram
    display_name: str
    description: str
    theme: ProgramTheme


LUXURY_PROGRAM_INFO: Dict[LuxuryProgram, LuxuryProgramInfo] = {
    LuxuryProgram.VIRTUOSO: LuxuryProgramInfo(
        LuxuryProgram.VIRTUOSO,
        "Virtuoso",
        "Exclusive amenities, upgrades & VIP treatment",
        ProgramTheme("bg-black", "text-amber-400", "border-amber-400/20"),
    ),
    LuxuryProgram.FOUR_SEASONS_PREFERRED: LuxuryProgramInfo(
        LuxuryProgram.FOUR_SEASONS_PREFERRED,
        "Four Seasons Preferred",
        "Complimentary breakfast, upgrades & $100 credit",
        ProgramTheme("bg-slate-800", "text-amber-300", "border-amber-300/20"),
    ),
    LuxuryProgram.RITZ_CARLTON_STARS: LuxuryProgramInfo(
        LuxuryProgram.RITZ_CARLTON_STARS,
        "Ritz-Carlton STARS",
        "Room upgrades, dining credits & early check-in",
        ProgramTheme("bg-blue-900", "text-blue-100", "border-blue-200/20"),
    ),
    LuxuryProgram.BELMOND_BELLINI: LuxuryProgramInfo(
        LuxuryProgram.BELMOND_BELLINI,
        "Belmond Bellini",
        "Signature experiences & property credits",
        ProgramTheme("bg-emerald-900", "text-emerald-100", "border-emerald-200/20"),
    ),
    LuxuryProgram.ROSEWOOD_ELITE: LuxuryProgramInfo(
        LuxuryProgram.ROSEWOOD_ELITE,
        "Rosewood Elite",
        "Complimentary breakfast & room upgrades",
        ProgramTheme("bg-rose-900", "text-rose-100", "border-rose-200/20"),
    ),
    LuxuryProgram.AMAN_PREFERRED: LuxuryProgramInfo(
        LuxuryProgram.AMAN_PREFERRED,
        "Aman Preferred",
        "Spa credits, dining experiences & upgrades",
        ProgramTheme("bg-stone-800", "text-stone-100", "border-stone-200/20"),
    ),
    LuxuryProgram.PENINSULA_PRIVILEGE: LuxuryProgramInfo(
        LuxuryProgram.PENINSULA_PRIVILEGE,
        "Peninsula Privilege",
        "$100 credit, upgrades & late checkout",
        ProgramTheme("bg-indigo-900", "text-indigo-100", "border-indigo-200/20"),
    ),
}
