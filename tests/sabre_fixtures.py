"""Builders for Sabre-shaped payloads and small test doubles."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from bellhopping.config.settings import Settings


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DummyAuth:
    def __init__(self, token: str = "token-123", error: Optional[Exception] = None) -> None:
        self.token = token
        self.error = error
        self.calls = 0
        self.invalidated = 0

    async def get_token(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.token

    def invalidate(self) -> None:
        self.invalidated += 1

    async def aclose(self) -> None:
        return None


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "base_url": "https://sabre.test",
        "client_id": "client-id",
        "client_secret": "client-secret",
        "username": "agent",
        "password": "hunter2",
        "cert_secret": "cert-secret",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def sabre_rate(after_tax: Any, before_tax: Any = None, **extra: Any) -> Dict[str, Any]:
    rate = {
        "RoomType": "Deluxe King",
        "AmountBeforeTax": before_tax if before_tax is not None else after_tax,
        "AmountAfterTax": after_tax,
        "CurrencyCode": "USD",
    }
    rate.update(extra)
    return rate


def sabre_hotel(
    code: str = "100001",
    name: str = "Harbor View Hotel",
    chain_code: Optional[str] = "XX",
    rates: Optional[List[Dict[str, Any]]] = None,
    media: Optional[List[Dict[str, Any]]] = None,
    **info: Any,
) -> Dict[str, Any]:
    hotel_info: Dict[str, Any] = {
        "HotelCode": code,
        "HotelName": name,
        "ChainCode": chain_code,
        "ChainName": "Example Chain",
        "LocationInfo": {
            "Address": {
                "AddressLine1": "1 Ocean Drive",
                "CityName": "Miami",
                "StateProv": "FL",
                "PostalCode": "33139",
                "CountryCode": "US",
            },
            "GeoCoordinates": {"Latitude": 25.79, "Longitude": -80.13},
        },
    }
    if media is not None:
        hotel_info["MediaItems"] = {"MediaItem": media}
    hotel_info.update(info)
    entry: Dict[str, Any] = {"HotelInfo": hotel_info}
    if rates is not None:
        entry["HotelRateInfo"] = {"RateInfos": {"ConvertedRateInfo": rates}}
    return entry


def sabre_search_response(*hotels: Dict[str, Any]) -> Dict[str, Any]:
    return {"GetHotelAvailRS": {"HotelAvailInfos": {"HotelAvailInfo": list(hotels)}}}


def sabre_rate_plans(*plans: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "GetHotelAvailRS": {
            "HotelAvailInfos": {"HotelAvailInfo": [{"RatePlans": {"RatePlan": list(plans)}}]}
        }
    }
