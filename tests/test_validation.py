# tests/test_validation.py
from datetime import date

import pytest

from dealership.connectors.base import IncomingVehicle, validate_incoming_vehicle


FULL_RECORD = {
    "external_id": "EXT-100",
    "type": "USED",
    "make": "Audi",
    "model": "A6",
    "trim": "45 TDI quattro",
    "year": 2020,
    "mileage": 61000,
    "fuel": "Diesel",
    "gearbox": "Automatyczna",
    "body_type": "Kombi",
    "drive": "4x4",
    "power_hp": 231,
    "engine_cc": 2967,
    "color": "Czarny",
    "price_gross": 154900.0,
    "currency": "PLN",
    "installment_amount": 2190.0,
    "location": "Poznań",
    "description_pl": "Zadbane auto, serwisowane w ASO.",
    "description_en": "Well kept, dealer serviced.",
    "images": ["https://cdn.example.com/a6/1.jpg", "https://cdn.example.com/a6/2.jpg"],
    "videos": ["https://youtu.be/abc123"],
    "features": ["Navigation", "Leather"],
}


def test_valid_record_is_returned_unchanged():
    vehicle, error = validate_incoming_vehicle(FULL_RECORD)
    assert error is None
    assert isinstance(vehicle, IncomingVehicle)
    assert vehicle.model_dump() == FULL_RECORD


def test_minimal_record_leaves_optional_fields_unset():
    vehicle, error = validate_incoming_vehicle(
        {"external_id": "EXT-1", "type": "NEW", "make": "Kia", "model": "Ceed", "year": 2024, "price_gross": 0}
    )
    assert error is None
    assert vehicle.currency is None
    assert vehicle.images is None
    assert vehicle.mileage is None


def test_camel_case_feed_keys_are_accepted():
    vehicle, error = validate_incoming_vehicle({
        "externalId": "EXT-001",
        "type": "USED",
        "make": "BMW",
        "model": "5 Series",
        "year": 2021,
        "priceGross": 199000,
        "powerHP": 190,
        "descriptionEN": "Clean",
    })
    assert error is None
    assert vehicle.external_id == "EXT-001"
    assert vehicle.price_gross == 199000
    assert vehicle.power_hp == 190
    assert vehicle.description_en == "Clean"


@pytest.mark.parametrize("field, value", [
    ("external_id", ""),
    ("type", "BROKEN"),
    ("make", ""),
    ("model", ""),
    ("year", 1899),
    ("year", date.today().year + 3),
    ("mileage", -1),
    ("power_hp", 0),
    ("power_hp", 2001),
    ("price_gross", -1),
    ("currency", "USD"),
    ("images", ["not-a-url"]),
    ("images", [f"https://cdn.example.com/{i}.jpg" for i in range(31)]),
    ("videos", ["v"] * 6),
    ("features", ["f"] * 101),
    ("description_pl", "x" * 10001),
    ("year", True),
    ("year", "2020"),
    ("mileage", True),
    ("power_hp", 150.5),
    ("price_gross", True),
    ("installment_amount", False),
])
def test_single_violation_is_rejected(field, value):
    data = dict(FULL_RECORD, **{field: value})
    vehicle, error = validate_incoming_vehicle(data)
    assert vehicle is None
    assert error


def test_year_upper_bound_is_current_year_plus_two():
    data = dict(FULL_RECORD, year=date.today().year + 2)
    vehicle, error = validate_incoming_vehicle(data)
    assert error is None
    assert vehicle.year == date.today().year + 2


def test_all_violations_are_reported_together():
    vehicle, error = validate_incoming_vehicle({"external_id": "x", "year": 1800})
    assert vehicle is None
    assert "make" in error
    assert "model" in error
    assert "year" in error
    assert "; " in error


@pytest.mark.parametrize("raw", [None, "EXT-1", 42, ["a"]])
def test_non_mapping_input_is_rejected_without_raising(raw):
    vehicle, error = validate_incoming_vehicle(raw)
    assert vehicle is None
    assert error
