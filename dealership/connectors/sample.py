# dealership/connectors/sample.py
"""Connector for the sample dealer JSON API.

Adding another source means writing a `Connector` subclass like this one
and listing it in `registry.py`; deduplication, upserts and job logging are
handled by the import pipeline.
"""
import os
from typing import Any, Dict, List

import httpx
from dotenv import load_dotenv

from .base import Connector
from ..errors import FetchError
from ..utils import retry

load_dotenv()

FETCH_TIMEOUT = float(os.getenv("IMPORT_FETCH_TIMEOUT", "30"))

FUEL_MAP = {
    "petrol": "Benzyna",
    "diesel": "Diesel",
    "hybrid": "Hybryda",
    "phev": "Hybryda plug-in",
    "electric": "Elektryczny",
    "lpg": "LPG",
}

GEARBOX_MAP = {
    "manual": "Manualna",
    "automatic": "Automatyczna",
    "dct": "Automatyczna",
    "cvt": "CVT",
}

BODY_MAP = {
    "sedan": "Sedan",
    "hatchback": "Hatchback",
    "estate": "Kombi",
    "suv": "SUV",
    "coupe": "Coupe",
    "van": "Van",
    "cabrio": "Cabrio",
}

# served when SAMPLE_API_URL is not configured (local development, demos)
DEMO_FEED: List[Dict[str, Any]] = [
    {
        "id": "EXT-001",
        "vehicle_type": "used",
        "brand": "BMW",
        "car_model": "7 Series",
        "version": "740d xDrive",
        "production_year": 2021,
        "odometer_km": 52000,
        "engine_type": "diesel",
        "transmission": "automatic",
        "body": "sedan",
        "hp": 286,
        "cc": 2993,
        "selling_price": 399000,
        "monthly_payment": 4190,
        "depot": "Warszawa",
        "description": "BMW serii 7 w pełnym wyposażeniu Executive. Stan idealny.",
        "photo_urls": ["https://images.unsplash.com/photo-1555215695-3004980ad54e?w=800"],
    },
    {
        "id": "EXT-002",
        "vehicle_type": "new",
        "brand": "Mercedes-Benz",
        "car_model": "E-Class",
        "version": "E300e AMG Line",
        "production_year": 2024,
        "odometer_km": 0,
        "engine_type": "phev",
        "transmission": "automatic",
        "body": "sedan",
        "hp": 320,
        "cc": 1999,
        "selling_price": 329000,
        "monthly_payment": 3490,
        "depot": "Kraków",
        "description": "Nowy Mercedes E300e AMG Line. Plug-in hybrid, zasięg elektryczny 50km.",
        "photo_urls": ["https://images.unsplash.com/photo-1618843479313-40f8afb4b4d8?w=800"],
    },
]


class SampleExternalAPIConnector(Connector):
    name = "SampleExternalAPI"

    def __init__(self, base_url=None, api_key=None, timeout=FETCH_TIMEOUT, transport=None):
        self.base_url = base_url if base_url is not None else os.getenv("SAMPLE_API_URL", "")
        self.api_key = api_key if api_key is not None else os.getenv("SAMPLE_API_KEY", "")
        self.timeout = timeout
        self.transport = transport

    def fetch_raw(self) -> List[Dict[str, Any]]:
        if not self.base_url:
            return [dict(item) for item in DEMO_FEED]
        return self._get_vehicles()

    @retry(httpx.TransportError, tries=3, delay=2, backoff=2)
    def _get_vehicles(self) -> List[Dict[str, Any]]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        with httpx.Client(base_url=self.base_url, headers=headers, timeout=self.timeout,
                          transport=self.transport) as client:
            resp = client.get("/vehicles")
            resp.raise_for_status()
            payload = resp.json()
        if isinstance(payload, dict):
            payload = payload.get("vehicles")
        if not isinstance(payload, list):
            raise FetchError("unexpected response shape, expected a list of vehicles")
        return payload

    def map_record(self, item: Dict[str, Any]) -> Dict[str, Any]:
        engine_type = item.get("engine_type")
        transmission = item.get("transmission")
        body = item.get("body")
        return {
            "external_id": item["id"],
            "type": "NEW" if item.get("vehicle_type") == "new" else "USED",
            "make": item.get("brand"),
            "model": item.get("car_model"),
            "trim": item.get("version"),
            "year": item.get("production_year"),
            "mileage": item.get("odometer_km"),
            "fuel": FUEL_MAP.get(engine_type, engine_type),
            "gearbox": GEARBOX_MAP.get(transmission, transmission),
            "body_type": BODY_MAP.get(body, body),
            "power_hp": item.get("hp"),
            "engine_cc": item.get("cc"),
            "price_gross": item.get("selling_price"),
            "currency": "PLN",
            "installment_amount": item.get("monthly_payment"),
            "location": item.get("depot"),
            "description_pl": item.get("description"),
            "images": item.get("photo_urls"),
        }
