"""Hotel domain models and normalization helpers."""

from .models import (
    Address,
    Amenity,
    EnrichedHotelResult,
    HotelResult,
    ProbeResult,
    RoomRate,
)
from .normalizer import (
    PLACEHOLDER_IMAGE_URL,
    ParsedHotel,
    ParseWarning,
    parse_hotel,
    parse_hotel_results,
    select_hero_image,
)

__all__ = [
    "Address",
    "Amenity",
    "EnrichedHotelResult",
    "HotelResult",
    "PLACEHOLDER_IMAGE_URL",
    "ParseWarning",
    "ParsedHotel",
    "ProbeResult",
    "RoomRate",
    "parse_hotel",
    "parse_hotel_results",
    "select_hero_image",
]
