"""Utilities to transform raw Sabre ``GetHotelAvailRS`` payloads into normalised records.

Parsing never raises on a malformed hotel: every field falls back to a
documented default and the fallback is recorded as a :class:`ParseWarning`.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bellhopping.tasks.search_payloads import Coordinates

from .models import Address, Amenity, HotelResult, RoomRate

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE_URL = "https://images.unsplash.com/photo-1566073771259-6a8506099945?w=800"
PHOTO_FORMATS = frozenset({"JPG", "JPEG"})
DEFAULT_ROOM_TYPE = "Standard Room"
DEFAULT_CURRENCY = "USD"
DEFAULT_MAX_OCCUPANCY = 2

_KNOWN_HOTEL_KEYS = frozenset({"HotelInfo", "HotelRateInfo", "Distance"})
_KNOWN_HOTEL_INFO_KEYS = frozenset(
    {
        "HotelCode",
        "HotelName",
        "ChainCode",
        "ChainName",
        "SabreRating",
        "PropertyQualityInfo",
        "LocationInfo",
        "MediaItems",
        "Amenities",
    }
)


@dataclass(frozen=True)
class ParseWarning:
    field: str
    message: str


@dataclass(frozen=True)
class ParsedHotel:
    hotel: HotelResult
    warnings: Tuple[ParseWarning, ...] = ()
    unmapped_fields: Tuple[str, ...] = ()


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    # Single-element collections sometimes arrive as a bare object.
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return [value]
    return []


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        converted = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(converted) or math.isinf(converted):
        return None
    return converted


def _to_int(value: Any) -> Optional[int]:
    converted = _to_float(value)
    return int(converted) if converted is not None else None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, dict):
        return _text(value.get("Text") or value.get("content"))
    if isinstance(value, list):
        parts = [part for part in (_text(item) for item in value) if part]
        return " ".join(parts) or None
    text = str(value).strip()
    return text or None


def _category_text(item: Dict[str, Any]) -> str:
    category = _as_dict(item.get("Category"))
    description = _as_dict(category.get("Description"))
    parts = [_text(description.get("Text")) or "", _text(category.get("Text")) or ""]
    return " ".join(parts).lower()


def _is_map(item: Dict[str, Any]) -> bool:
    return "map" in _category_text(item) or str(item.get("Format") or "").lower() == "map"


def _is_photo(item: Dict[str, Any]) -> bool:
    return str(item.get("Format") or "").upper() in PHOTO_FORMATS


def select_hero_image(media_items: Iterable[Dict[str, Any]]) -> str:
    """Pick a thumbnail: non-map photo, then any non-map image, then anything."""
    items = [item for item in media_items if isinstance(item, dict)]
    for item in items:
        if item.get("Url") and _is_photo(item) and not _is_map(item):
            return item["Url"]
    for item in items:
        if item.get("Url") and not _is_map(item):
            return item["Url"]
    if items and items[0].get("Url"):
        return items[0]["Url"]
    return PLACEHOLDER_IMAGE_URL


def _parse_rate(raw: Any, index: int, warnings: List[ParseWarning]) -> RoomRate:
    rate = _as_dict(raw)
    if not isinstance(raw, dict):
        warnings.append(ParseWarning(f"rates[{index}]", "rate entry is not an object"))

    def _amount(key: str) -> float:
        value = _to_float(rate.get(key))
        if value is None:
            if rate.get(key) is not None:
                warnings.append(ParseWarning(f"rates[{index}].{key}", f"non-numeric value {rate.get(key)!r}"))
            return 0.0
        return value

    occupancy = _to_int(rate.get("MaxOccupancy"))
    return RoomRate(
        room_type=_text(rate.get("RoomType")) or _text(rate.get("RoomDescription")) or DEFAULT_ROOM_TYPE,
        description=_text(rate.get("Text")),
        rate_code=_text(rate.get("RateCode")),
        amount_before_tax=_amount("AmountBeforeTax"),
        amount_after_tax=_amount("AmountAfterTax"),
        currency_code=_text(rate.get("CurrencyCode")) or DEFAULT_CURRENCY,
        bed_type=_text(rate.get("BedType")),
        max_occupancy=occupancy if occupancy and occupancy > 0 else DEFAULT_MAX_OCCUPANCY,
        guarantee=_text(rate.get("GuaranteeType")),
        cancellation_policy=_text(rate.get("CancelPenalty")),
    )


def _extract_rates(hotel: Dict[str, Any], warnings: List[ParseWarning]) -> Tuple[RoomRate, ...]:
    rate_infos = _as_dict(_as_dict(hotel.get("HotelRateInfo")).get("RateInfos"))
    converted = rate_infos.get("ConvertedRateInfo")
    if converted is None:
        if rate_infos.get("RateInfo") is not None:
            warnings.append(
                ParseWarning("HotelRateInfo.RateInfos", "RateInfo present without ConvertedRateInfo; ignored")
            )
        return ()
    return tuple(_parse_rate(raw, index, warnings) for index, raw in enumerate(_as_list(converted)))


def _extract_address(location_info: Dict[str, Any]) -> Address:
    address = _as_dict(location_info.get("Address"))
    state = address.get("StateProv")
    country = address.get("CountryCode") or address.get("CountryName")
    return Address(
        address_line1=_text(address.get("AddressLine1")),
        city=_text(address.get("CityName")),
        state=_text(state.get("StateCode") or state.get("content")) if isinstance(state, dict) else _text(state),
        postal_code=_text(address.get("PostalCode")),
        country=_text(country.get("Code") or country.get("content")) if isinstance(country, dict) else _text(country),
    )


def _extract_coordinates(location_info: Dict[str, Any]) -> Optional[Coordinates]:
    geo = _as_dict(location_info.get("GeoCoordinates"))
    latitude = _to_float(geo.get("Latitude"))
    longitude = _to_float(geo.get("Longitude"))
    if latitude is None or longitude is None:
        return None
    return Coordinates(latitude=latitude, longitude=longitude)


def _extract_amenities(hotel_info: Dict[str, Any]) -> Tuple[Amenity, ...]:
    amenities = _as_list(_as_dict(hotel_info.get("Amenities")).get("Amenity"))
    return tuple(
        Amenity(code=_text(item.get("Code")), description=_text(item.get("Description")))
        for item in amenities
        if isinstance(item, dict)
    )


def _star_rating(hotel_info: Dict[str, Any]) -> Optional[float]:
    rating = _to_float(hotel_info.get("SabreRating"))
    if rating is not None:
        return rating
    quality = _as_dict(_as_dict(hotel_info.get("PropertyQualityInfo")).get("PropertyQuality"))
    return _to_float(quality.get("NTMStarRating"))


def parse_hotel(raw: Any) -> ParsedHotel:
    warnings: List[ParseWarning] = []
    hotel = _as_dict(raw)
    hotel_info = _as_dict(hotel.get("HotelInfo"))
    location_info = _as_dict(hotel_info.get("LocationInfo"))

    hotel_code = _text(hotel_info.get("HotelCode"))
    if hotel_code is None:
        warnings.append(ParseWarning("HotelInfo.HotelCode", "missing hotel code"))
    hotel_name = _text(hotel_info.get("HotelName"))
    if hotel_name is None:
        warnings.append(ParseWarning("HotelInfo.HotelName", "missing hotel name"))

    media_items = [item for item in _as_list(_as_dict(hotel_info.get("MediaItems")).get("MediaItem")) if isinstance(item, dict)]
    thumbnail = select_hero_image(media_items)
    gallery = tuple(item["Url"] for item in media_items if item.get("Url") and not _is_map(item))

    distance = _to_float(hotel.get("Distance"))
    if distance is None and hotel.get("Distance") is not None:
        warnings.append(ParseWarning("Distance", f"non-numeric value {hotel.get('Distance')!r}"))

    result = HotelResult(
        hotel_code=hotel_code or "",
        hotel_name=hotel_name or "Unknown Hotel",
        chain_code=_text(hotel_info.get("ChainCode")),
        chain_name=_text(hotel_info.get("ChainName")),
        star_rating=_star_rating(hotel_info),
        address=_extract_address(location_info),
        coordinates=_extract_coordinates(location_info),
        room_types=_extract_rates(hotel, warnings),
        thumbnail=thumbnail,
        images=gallery or (thumbnail,),
        amenities=_extract_amenities(hotel_info),
        distance_miles=distance,
    )
    unmapped = sorted(
        [key for key in hotel if key not in _KNOWN_HOTEL_KEYS]
        + [f"HotelInfo.{key}" for key in hotel_info if key not in _KNOWN_HOTEL_INFO_KEYS]
    )
    return ParsedHotel(hotel=result, warnings=tuple(warnings), unmapped_fields=tuple(unmapped))


def _hotel_entries(payload: Any) -> List[Any]:
    response = _as_dict(_as_dict(payload).get("GetHotelAvailRS"))
    entries = _as_dict(response.get("HotelAvailInfos")).get("HotelAvailInfo")
    return entries if isinstance(entries, list) else []


def parse_hotel_results(payload: Any) -> List[HotelResult]:
    """Flatten a search response; a missing or malformed hotel list yields ``[]``."""
    hotels: List[HotelResult] = []
    unmapped: set[str] = set()
    for raw in _hotel_entries(payload):
        parsed = parse_hotel(raw)
        for warning in parsed.warnings:
            logger.debug("Hotel %s: %s %s", parsed.hotel.hotel_code or "?", warning.field, warning.message)
        unmapped.update(parsed.unmapped_fields)
        hotels.append(parsed.hotel)
    if unmapped:
        logger.debug("Unmapped hotel fields observed: %s", ", ".join(sorted(unmapped)))
    return hotels
