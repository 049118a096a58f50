"""Utilities for building Sabre hotel availability payloads."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

GEOCODE = "GeoCode"
REF_POINT = "RefPoint"
FALLBACK = "Fallback"


class LocationType(str, Enum):
    AIRPORT = "airport"
    CITY = "city"
    HOTEL = "hotel"


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class SearchLocation:
    """Where to search: raw coordinates, a provider code, or both."""

    coordinates: Optional[Coordinates] = None
    code: Optional[str] = None
    type: Optional[LocationType] = None
    name: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SearchLocation":
        """Build a location from a loose ``{lat, lng, code, type, name}`` mapping.

        Zero latitude or longitude is treated as "no coordinates", matching how the
        autocomplete layer fills unknown positions.
        """
        lat = data.get("lat", data.get("latitude"))
        lng = data.get("lng", data.get("longitude"))
        coordinates = None
        if lat and lng:
            coordinates = Coordinates(latitude=float(lat), longitude=float(lng))
        raw_type = data.get("type")
        location_type = LocationType(str(raw_type).lower()) if raw_type else None
        return cls(
            coordinates=coordinates,
            code=data.get("code") or None,
            type=location_type,
            name=data.get("name") or None,
        )


@dataclass(frozen=True)
class SearchQuery:
    location: SearchLocation
    check_in: date
    check_out: date
    rooms: int = 1
    adults: int = 2
    children: int = 0
    radius_miles: float = 20.0

    def __post_init__(self) -> None:
        if self.check_in >= self.check_out:
            raise ValueError("check_out must be after check_in")
        if self.rooms <= 0:
            raise ValueError("rooms must be positive")
        if self.adults <= 0:
            raise ValueError("adults must be positive")
        if self.children < 0:
            raise ValueError("children must not be negative")
        if self.radius_miles <= 0:
            raise ValueError("radius_miles must be positive")

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def ensure_bookable(self, today: Optional[date] = None) -> None:
        today = today or date.today()
        if self.check_in < today:
            raise ValueError("check_in must not be in the past")

    def to_payload(self, **builder_options: Any) -> dict[str, Any]:
        return SearchRequestBuilder(**builder_options).build(self)


def _midnight(value: date) -> str:
    return f"{value.isoformat()}T00:00:00"


class SearchRequestBuilder:
    """Translate a :class:`SearchQuery` into a ``GetHotelAvailRQ`` body.

    Coordinates always win over a location code. A code is only usable for
    airports and cities; anything else falls back to a fixed reference point.
    """

    def __init__(
        self,
        *,
        currency: str = "USD",
        api_version: str = "5.1.0",
        fallback_ref_point: str = "ORD",
    ) -> None:
        self.currency = currency
        self.api_version = api_version
        self.fallback_ref_point = fallback_ref_point

    @staticmethod
    def geo_strategy(query: SearchQuery) -> str:
        location = query.location
        if location.coordinates is not None:
            return GEOCODE
        if location.code and location.type in (LocationType.AIRPORT, LocationType.CITY):
            return REF_POINT
        return FALLBACK

    def _geo_ref(self, query: SearchQuery) -> dict[str, Any]:
        geo_ref: dict[str, Any] = {"Radius": query.radius_miles, "UOM": "MI"}
        strategy = self.geo_strategy(query)
        location = query.location
        coordinates = location.coordinates
        if coordinates is not None:
            geo_ref["GeoCode"] = {
                "Latitude": float(coordinates.latitude),
                "Longitude": float(coordinates.longitude),
            }
            return geo_ref
        if strategy == REF_POINT:
            ref_value = location.code
        else:
            logger.warning(
                "Search location %r has neither coordinates nor an airport/city code; "
                "falling back to reference point %s",
                location.name or location.code,
                self.fallback_ref_point,
            )
            ref_value = self.fallback_ref_point
        # ValueContext accepts CODE or NAME only.
        geo_ref["RefPoint"] = {"Value": ref_value, "ValueContext": "CODE", "RefPointType": "6"}
        return geo_ref

    def build(self, query: SearchQuery) -> dict[str, Any]:
        return {
            "GetHotelAvailRQ": {
                "version": self.api_version,
                "SearchCriteria": {
                    "GeoSearch": {"GeoRef": self._geo_ref(query)},
                    "RateInfoRef": {
                        "CurrencyCode": self.currency,
                        "BestOnly": "1",
                        "StayDateTimeRange": {
                            "StartDate": _midnight(query.check_in),
                            "EndDate": _midnight(query.check_out),
                        },
                        "Rooms": {"Room": [{"Index": 1, "Adults": query.adults}]},
                    },
                },
            }
        }


def build_search_payload(query: SearchQuery, **builder_options: Any) -> dict[str, Any]:
    return SearchRequestBuilder(**builder_options).build(query)


def build_probe_payload(
    hotel_id: str,
    rate_codes: Sequence[str],
    check_in: date,
    check_out: date,
) -> dict[str, Any]:
    """Availability request naming ``rate_codes`` as non-exclusive candidates."""
    return {
        "GetHotelAvailRQ": {
            "SearchCriteria": {
                "HotelRefs": {"HotelRef": [{"HotelCode": hotel_id}]},
                "RatePlanCandidates": {
                    "RatePlanCandidate": [{"RatePlanCode": code} for code in rate_codes],
                    # Mixed luxury + standard responses are rejected under exact matching.
                    "ExactMatchOnly": False,
                },
                "StayDateRange": {
                    "StartDate": check_in.isoformat(),
                    "EndDate": check_out.isoformat(),
                },
                "NumRooms": 1,
            }
        }
    }
