"""Luxury program knowledge base, enrichment and rate probing."""

from .programs import LUXURY_PROGRAM_INFO, LuxuryProgram, LuxuryProgramInfo
from .registry import LuxuryRegistry, get_luxury_programs, is_luxury_hotel

__all__ = [
    "LUXURY_PROGRAM_INFO",
    "LuxuryProgram",
    "LuxuryProgramInfo",
    "LuxuryRegistry",
    "get_luxury_programs",
    "is_luxury_hotel",
]
