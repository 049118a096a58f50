"""Dataclasses for normalised hotel search results."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Iterable, List, Optional, Tuple

from bellhopping.luxury.programs import LuxuryProgram
from bellhopping.tasks.search_payloads import Coordinates


@dataclass(frozen=True, slots=True)
class Address:
    address_line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "address_line1": self.address_line1,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
        }


@dataclass(frozen=True, slots=True)
class Amenity:
    code: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "description": self.description}


@dataclass(frozen=True, slots=True)
class RoomRate:
    """One rate candidate for a property."""

    room_type: str
    amount_before_tax: float
    amount_after_tax: float
    currency_code: str
    max_occupancy: int
    description: Optional[str] = None
    rate_code: Optional[str] = None
    bed_type: Optional[str] = None
    guarantee: Optional[str] = None
    cancellation_policy: Optional[str] = None

    @property
    def is_priced(self) -> bool:
        return self.amount_after_tax > 0

    def to_dict(self) -> dict[str, object]:
        return {
            "room_type": self.room_type,
            "description": self.description,
            "rate_code": self.rate_code,
            "amount_before_tax": self.amount_before_tax,
            "amount_after_tax": self.amount_after_tax,
            "currency_code": self.currency_code,
            "bed_type": self.bed_type,
            "max_occupancy": self.max_occupancy,
            "guarantee": self.guarantee,
            "cancellation_policy": self.cancellation_policy,
        }


@dataclass(frozen=True, slots=True)
class HotelResult:
    """Flattened property returned by a hotel availability search.

    ``lowest_rate``, ``highest_rate`` and ``rate_count`` are folds over
    ``room_types`` and are never stored.
    """

    hotel_code: str
    hotel_name: str
    address: Address = field(default_factory=Address)
    room_types: Tuple[RoomRate, ...] = ()
    chain_code: Optional[str] = None
    chain_name: Optional[str] = None
    star_rating: Optional[float] = None
    coordinates: Optional[Coordinates] = None
    thumbnail: Optional[str] = None
    images: Tuple[str, ...] = ()
    amenities: Tuple[Amenity, ...] = ()
    distance_miles: Optional[float] = None

    @property
    def _priced_amounts(self) -> List[float]:
        return [rate.amount_after_tax for rate in self.room_types if rate.is_priced]

    @property
    def lowest_rate(self) -> Optional[float]:
        amounts = self._priced_amounts
        return min(amounts) if amounts else None

    @property
    def highest_rate(self) -> Optional[float]:
        amounts = self._priced_amounts
        return max(amounts) if amounts else None

    @property
    def rate_count(self) -> int:
        return len(self.room_types)

    @property
    def currency_code(self) -> str:
        return self.room_types[0].currency_code if self.room_types else "USD"

    def to_dict(self) -> dict[str, object]:
        coordinates = (
            {"latitude": self.coordinates.latitude, "longitude": self.coordinates.longitude}
            if self.coordinates
            else None
        )
        return {
            "hotel_code": self.hotel_code,
            "hotel_name": self.hotel_name,
            "chain_code": self.chain_code,
            "chain_name": self.chain_name,
            "star_rating": self.star_rating,
            "address": self.address.to_dict(),
            "coordinates": coordinates,
            "lowest_rate": self.lowest_rate,
            "highest_rate": self.highest_rate,
            "currency_code": self.currency_code,
            "rate_count": self.rate_count,
            "thumbnail": self.thumbnail,
            "images": list(self.images),
            "amenities": [amenity.to_dict() for amenity in self.amenities],
            "distance_miles": self.distance_miles,
            "room_types": [rate.to_dict() for rate in self.room_types],
        }


@dataclass(frozen=True, slots=True)
class EnrichedHotelResult(HotelResult):
    """A :class:`HotelResult` tagged with its luxury program memberships."""

    luxury_programs: Tuple[LuxuryProgram, ...] = ()

    @property
    def is_luxury(self) -> bool:
        return bool(self.luxury_programs)

    @classmethod
    def from_hotel(cls, hotel: HotelResult, programs: Iterable[LuxuryProgram]) -> "EnrichedHotelResult":
        base = {item.name: getattr(hotel, item.name) for item in fields(HotelResult)}
        return cls(**base, luxury_programs=tuple(dict.fromkeys(programs)))

    def to_dict(self) -> dict[str, object]:
        data = HotelResult.to_dict(self)
        data["luxury_programs"] = [program.value for program in self.luxury_programs]
        data["is_luxury"] = self.is_luxury
        return data


@dataclass(slots=True)
class ProbeResult:
    """Outcome of probing one hotel for a luxury rate plan."""

    is_confirmed: bool
    rate_code_found: Optional[str] = None
    rate_amount: Optional[float] = None
    currency: Optional[str] = None
    benefits_detected: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "is_confirmed": self.is_confirmed,
            "rate_code_found": self.rate_code_found,
            "rate_amount": self.rate_amount,
            "currency": self.currency,
            "benefits_detected": list(self.benefits_detected),
            "error": self.error,
        }
