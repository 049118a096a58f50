from __future__ import annotations

import logging

import pytest

from bellhopping.hotels import PLACEHOLDER_IMAGE_URL, parse_hotel, parse_hotel_results, select_hero_image

from sabre_fixtures import sabre_hotel, sabre_rate, sabre_search_response


@pytest.mark.parametrize(
    "payload",
    [
        {},
        None,
        {"GetHotelAvailRS": None},
        {"GetHotelAvailRS": {"HotelAvailInfos": {}}},
        {"GetHotelAvailRS": {"HotelAvailInfos": {"HotelAvailInfo": None}}},
        {"GetHotelAvailRS": {"HotelAvailInfos": {"HotelAvailInfo": {"HotelInfo": {}}}}},
    ],
)
def test_missing_or_malformed_hotel_list_yields_empty_list(payload):
    assert parse_hotel_results(payload) == []


def test_build_hotel_results_flattens_nested_payload():
    payload = sabre_search_response(
        sabre_hotel(
            rates=[
                sabre_rate(
                    220.0,
                    before_tax=199.0,
                    RateCode="RAC",
                    Text="Flexible rate",
                    BedType="King",
                    MaxOccupancy="3",
                    GuaranteeType="Deposit",
                    CancelPenalty={"Text": "Free cancellation until 48h"},
                ),
                sabre_rate("150.00"),
            ],
            SabreRating="4.5",
            Amenities={"Amenity": [{"Code": "POOL", "Description": "Outdoor pool"}]},
        )
    )

    [hotel] = parse_hotel_results(payload)

    assert hotel.hotel_code == "100001"
    assert hotel.hotel_name == "Harbor View Hotel"
    assert hotel.chain_code == "XX"
    assert hotel.star_rating == 4.5
    assert hotel.address.city == "Miami"
    assert hotel.address.country == "US"
    assert hotel.coordinates is not None and hotel.coordinates.latitude == 25.79
    assert hotel.lowest_rate == 150.0
    assert hotel.highest_rate == 220.0
    assert hotel.rate_count == 2
    assert hotel.currency_code == "USD"
    first = hotel.room_types[0]
    assert first.rate_code == "RAC"
    assert first.amount_before_tax == 199.0
    assert first.max_occupancy == 3
    assert first.cancellation_policy == "Free cancellation until 48h"
    assert [(amenity.code, amenity.description) for amenity in hotel.amenities] == [("POOL", "Outdoor pool")]


def test_lowest_rate_ignores_zero_and_unparseable_amounts():
    parsed = parse_hotel(sabre_hotel(rates=[sabre_rate(0), sabre_rate("n/a"), sabre_rate(180.5)]))

    hotel = parsed.hotel
    assert hotel.lowest_rate == 180.5
    assert hotel.highest_rate == 180.5
    assert hotel.rate_count == 3
    assert hotel.room_types[1].amount_after_tax == 0.0
    assert any(warning.field == "rates[1].AmountAfterTax" for warning in parsed.warnings)


def test_hotel_without_rates_has_no_lowest_rate():
    [hotel] = parse_hotel_results(sabre_search_response(sabre_hotel(chain_code="FS")))

    assert hotel.room_types == ()
    assert hotel.lowest_rate is None
    assert hotel.highest_rate is None


def test_raw_rate_info_is_not_used_for_rates():
    entry = sabre_hotel()
    entry["HotelRateInfo"] = {"RateInfos": {"RateInfo": [sabre_rate(99.0)]}}

    parsed = parse_hotel(entry)

    assert parsed.hotel.room_types == ()
    assert [warning.field for warning in parsed.warnings] == ["HotelRateInfo.RateInfos"]


def test_single_converted_rate_object_is_accepted():
    entry = sabre_hotel()
    entry["HotelRateInfo"] = {"RateInfos": {"ConvertedRateInfo": sabre_rate(310.0)}}

    assert parse_hotel(entry).hotel.lowest_rate == 310.0


def test_missing_fields_fall_back_to_documented_defaults():
    parsed = parse_hotel({"HotelInfo": {"HotelCode": "42"}, "HotelRateInfo": {"RateInfos": {"ConvertedRateInfo": [{}]}}})

    hotel = parsed.hotel
    assert hotel.hotel_name == "Unknown Hotel"
    assert hotel.chain_code is None
    assert hotel.address.city is None
    assert hotel.address.postal_code is None
    assert hotel.coordinates is None
    rate = hotel.room_types[0]
    assert rate.room_type == "Standard Room"
    assert rate.currency_code == "USD"
    assert rate.max_occupancy == 2
    assert rate.amount_after_tax == 0.0
    assert rate.description is None
    assert hotel.thumbnail == PLACEHOLDER_IMAGE_URL
    assert hotel.images == (PLACEHOLDER_IMAGE_URL,)


def test_nan_star_rating_falls_back_to_quality_info():
    entry = sabre_hotel(
        SabreRating="NaN",
        PropertyQualityInfo={"PropertyQuality": {"NTMStarRating": "5"}},
    )

    assert parse_hotel(entry).hotel.star_rating == 5.0


def test_hero_image_prefers_non_map_photo():
    media = [
        {"Url": "https://img.test/map.jpg", "Format": "JPG", "Category": {"Description": {"Text": "Map"}}},
        {"Url": "https://img.test/logo.png", "Format": "PNG"},
        {"Url": "https://img.test/lobby.jpg", "Format": "JPEG", "Category": {"Text": "Lobby"}},
    ]

    hotel = parse_hotel(sabre_hotel(media=media)).hotel

    assert hotel.thumbnail == "https://img.test/lobby.jpg"
    assert hotel.images == ("https://img.test/logo.png", "https://img.test/lobby.jpg")


def test_hero_image_falls_back_progressively():
    map_only = [{"Url": "https://img.test/area-map.gif", "Format": "GIF", "Category": {"Text": "Area map"}}]
    non_photo = map_only + [{"Url": "https://img.test/pool.png", "Format": "PNG"}]

    assert select_hero_image(non_photo) == "https://img.test/pool.png"
    assert select_hero_image(map_only) == "https://img.test/area-map.gif"
    assert select_hero_image([{"Format": "JPG"}]) == PLACEHOLDER_IMAGE_URL
    assert select_hero_image([]) == PLACEHOLDER_IMAGE_URL


def test_unmapped_fields_are_logged_at_debug(caplog):
    entry = sabre_hotel(rates=[sabre_rate(120.0)], PropertyTypeInfo={"Code": "RESORT"})
    entry["Promotions"] = []

    with caplog.at_level(logging.DEBUG, logger="bellhopping.hotels.normalizer"):
        parse_hotel_results(sabre_search_response(entry))

    assert "HotelInfo.PropertyTypeInfo" in caplog.text
    assert "Promotions" in caplog.text
