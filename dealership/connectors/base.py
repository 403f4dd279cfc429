# dealership/connectors/base.py
"""Connector contract and validation of incoming vehicle records.

A connector pulls raw records from one external inventory source, maps them
into `IncomingVehicle` and reports anything it had to drop as a plain
string. The import pipeline never sees raw source data.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Tuple

import httpx
from pydantic import (
    AliasChoices, AnyUrl, BaseModel, ConfigDict, Field, StrictFloat, StrictInt, TypeAdapter,
    ValidationError, field_validator,
)

from ..errors import FetchError
from ..models import Currency, VehicleType
from ..utils import logger

MAX_IMAGES = 30
MAX_VIDEOS = 5
MAX_FEATURES = 100
MAX_DESCRIPTION = 10000
MIN_YEAR = 1900

_url_adapter = TypeAdapter(AnyUrl)


def _alias(*names):
    return AliasChoices(*names)


class IncomingVehicle(BaseModel):
    """Normalized vehicle as produced by a connector, before reconciliation."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    external_id: str = Field(min_length=1, validation_alias=_alias("external_id", "externalId"))
    type: VehicleType
    make: str = Field(min_length=1)
    model: str = Field(min_length=1)
    trim: Optional[str] = None
    # booleans are not numbers here
    year: StrictInt
    mileage: Optional[StrictInt] = Field(default=None, ge=0)
    fuel: Optional[str] = None
    gearbox: Optional[str] = None
    body_type: Optional[str] = Field(default=None, validation_alias=_alias("body_type", "bodyType"))
    drive: Optional[str] = None
    power_hp: Optional[StrictInt] = Field(default=None, ge=1, le=2000, validation_alias=_alias("power_hp", "powerHP"))
    engine_cc: Optional[StrictInt] = Field(default=None, validation_alias=_alias("engine_cc", "engineCC"))
    color: Optional[str] = None
    price_gross: StrictFloat = Field(ge=0, validation_alias=_alias("price_gross", "priceGross"))
    currency: Optional[Currency] = None
    installment_amount: Optional[StrictFloat] = Field(
        default=None, validation_alias=_alias("installment_amount", "installmentAmount"))
    location: Optional[str] = None
    description_pl: Optional[str] = Field(
        default=None, max_length=MAX_DESCRIPTION, validation_alias=_alias("description_pl", "descriptionPL"))
    description_en: Optional[str] = Field(
        default=None, max_length=MAX_DESCRIPTION, validation_alias=_alias("description_en", "descriptionEN"))
    images: Optional[List[str]] = Field(default=None, max_length=MAX_IMAGES)
    videos: Optional[List[str]] = Field(default=None, max_length=MAX_VIDEOS)
    features: Optional[List[str]] = Field(default=None, max_length=MAX_FEATURES)

    @field_validator("year")
    @classmethod
    def _year_in_range(cls, value: int) -> int:
        max_year = date.today().year + 2
        if not MIN_YEAR <= value <= max_year:
            raise ValueError(f"year must be between {MIN_YEAR} and {max_year}")
        return value

    @field_validator("images")
    @classmethod
    def _images_are_urls(cls, value):
        if value is None:
            return value
        for url in value:
            try:
                _url_adapter.validate_python(url)
            except ValidationError:
                raise ValueError(f"invalid image URL: {url!r}") from None
        return value


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "record"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def validate_incoming_vehicle(raw: Any) -> Tuple[Optional[IncomingVehicle], Optional[str]]:
    """Check `raw` against the incoming vehicle schema.

    Returns ``(vehicle, None)`` on success and ``(None, message)`` otherwise,
    where the message lists every violated constraint. Never raises.
    """
    try:
        return IncomingVehicle.model_validate(raw), None
    except ValidationError as e:
        return None, _format_errors(e)


@dataclass
class ConnectorResult:
    vehicles: List[IncomingVehicle] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


class Connector(ABC):
    """One external inventory source.

    Subclasses provide `name`, `fetch_raw` and `map_record`; `fetch` drives
    them and keeps a single bad record or an unreachable source from
    raising out of the connector.
    """

    name: str

    @abstractmethod
    def fetch_raw(self) -> List[Any]:
        """Retrieve every raw record from the source."""

    @abstractmethod
    def map_record(self, raw: Any) -> dict:
        """Translate one raw record into the incoming vehicle shape."""

    def external_id_of(self, raw: Any) -> str:
        if isinstance(raw, dict) and raw.get("id") is not None:
            return str(raw["id"])
        return "?"

    def fetch(self) -> ConnectorResult:
        result = ConnectorResult()
        try:
            records = self.fetch_raw()
        except (FetchError, httpx.HTTPError, ValueError) as e:
            logger.warning("Connector %s fetch failed: %s", self.name, e)
            result.errors.append(f"Fetch error: {e}")
            return result

        for raw in records:
            external_id = self.external_id_of(raw)
            try:
                mapped = self.map_record(raw)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                result.errors.append(f"[{external_id}] mapping error: {e}")
                continue
            vehicle, error = validate_incoming_vehicle(mapped)
            if error:
                result.errors.append(f"[{external_id}] {error}")
                continue
            result.vehicles.append(vehicle)
        logger.info("Connector %s fetched %d vehicles (%d rejected)", self.name, len(result.vehicles), len(result.errors))
        return result
