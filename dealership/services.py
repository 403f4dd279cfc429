# dealership/services.py
"""Read paths for the public listing and the admin operations on vehicles.

Listing and detail reads go through the optional cache; every admin write
invalidates the affected keys.
"""
import math
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from sqlalchemy.orm import Session

from . import crud, schemas
from .cache import LISTING_PATTERN, Cache
from .errors import VehicleNotFound
from .models import MANUAL_SOURCE, Vehicle, VehicleStatus
from .utils import logger, make_vehicle_slug, new_slug_suffix

load_dotenv()

LISTING_CACHE_TTL = int(os.getenv("LISTING_CACHE_TTL", "60"))
VEHICLE_CACHE_TTL = int(os.getenv("VEHICLE_CACHE_TTL", "120"))
FILTERS_CACHE_TTL = 300


def _invalidate(cache: Cache, *patterns: str):
    for pattern in patterns:
        outcome = cache.invalidate(pattern)
        if not outcome.ok:
            logger.warning("Cache invalidation of %s failed: %s", pattern, outcome.error)


def search_vehicles(db: Session, filters: schemas.VehicleFilter, cache: Cache) -> schemas.VehiclePage:
    cache_key = "listing:" + filters.model_dump_json()
    cached = cache.get(cache_key)
    if cached is not None:
        return schemas.VehiclePage.model_validate(cached)

    criteria = filters.model_dump(exclude={"sort", "page", "limit"})
    if filters.type is not None:
        criteria["type"] = filters.type.value
    skip = (filters.page - 1) * filters.limit
    res = crud.list_vehicles(db, criteria, skip=skip, limit=filters.limit, sort=filters.sort)
    page = schemas.VehiclePage(
        data=[schemas.VehicleListItem.model_validate(v) for v in res["items"]],
        total=res["total"],
        page=filters.page,
        limit=filters.limit,
        pages=math.ceil(res["total"] / filters.limit),
    )
    cache.set(cache_key, page.model_dump(mode="json"), LISTING_CACHE_TTL)
    return page


def get_vehicle_detail(db: Session, slug: str, cache: Cache) -> schemas.VehicleOut:
    cache_key = f"vehicle:{slug}"
    cached = cache.get(cache_key)
    if cached is not None:
        return schemas.VehicleOut.model_validate(cached)
    obj = crud.get_vehicle_by_slug(db, slug, active_only=True)
    if obj is None:
        raise VehicleNotFound(slug)
    detail = schemas.VehicleOut.model_validate(obj)
    cache.set(cache_key, detail.model_dump(mode="json"), VEHICLE_CACHE_TTL)
    return detail


def filter_options(db: Session, cache: Cache) -> schemas.FilterOptions:
    cached = cache.get("filters:options")
    if cached is not None:
        return schemas.FilterOptions.model_validate(cached)
    make_models = crud.make_models(db)
    options = schemas.FilterOptions(
        makes=list(make_models),
        make_models=make_models,
        fuels=crud.distinct_values(db, Vehicle.fuel),
        gearboxes=crud.distinct_values(db, Vehicle.gearbox),
        body_types=crud.distinct_values(db, Vehicle.body_type),
        drives=crud.distinct_values(db, Vehicle.drive),
        locations=crud.distinct_values(db, Vehicle.location),
    )
    cache.set("filters:options", options.model_dump(mode="json"), FILTERS_CACHE_TTL)
    return options


def create_manual_vehicle(db: Session, payload: schemas.VehicleCreate, cache: Cache,
                          suffix_factory=new_slug_suffix) -> Vehicle:
    """Create an admin-entered vehicle; a slug collision surfaces as `SlugConflictError`."""
    data: Dict[str, Any] = payload.model_dump(mode="json")
    data["slug"] = make_vehicle_slug(payload.type.value, payload.make, payload.model, payload.year, suffix_factory())
    data["source"] = MANUAL_SOURCE
    data["has_en"] = bool(payload.description_en)
    data["promoted_until"] = payload.promoted_until
    data["published_at"] = crud.utcnow() if payload.status is VehicleStatus.ACTIVE else None
    obj = crud.create_vehicle(db, data)
    logger.info("Created vehicle %s", obj.slug)
    _invalidate(cache, LISTING_PATTERN, "filters:*")
    return obj


def update_vehicle(db: Session, vehicle_id: str, payload: schemas.VehicleUpdate, cache: Cache) -> Vehicle:
    obj = crud.get_vehicle(db, vehicle_id)
    if obj is None:
        raise VehicleNotFound(vehicle_id)
    changes: Dict[str, Any] = payload.model_dump(mode="json", exclude_unset=True)
    if "promoted_until" in changes:
        changes["promoted_until"] = payload.promoted_until
    if "description_en" in changes:
        changes["has_en"] = bool(changes["description_en"])
    # published_at is set on the first activation only
    if changes.get("status") == VehicleStatus.ACTIVE.value and obj.published_at is None:
        changes["published_at"] = crud.utcnow()
    obj = crud.update_vehicle(db, obj, changes)
    _invalidate(cache, f"vehicle:{obj.slug}", LISTING_PATTERN, "filters:*")
    return obj


def soft_delete_vehicle(db: Session, vehicle_id: str, cache: Cache) -> Vehicle:
    obj = crud.get_vehicle(db, vehicle_id)
    if obj is None:
        raise VehicleNotFound(vehicle_id)
    obj = crud.update_vehicle(db, obj, {"status": VehicleStatus.INACTIVE.value})
    logger.info("Deactivated vehicle %s", obj.slug)
    _invalidate(cache, f"vehicle:{obj.slug}", LISTING_PATTERN, "filters:*")
    return obj


def record_lead(db: Session, slug: str, payload: schemas.LeadCreate) -> Optional[str]:
    """Store a lead for an active vehicle; bot submissions are accepted but dropped."""
    if payload.honeypot:
        logger.info("Dropped lead with filled honeypot for %s", slug)
        return None
    vehicle = crud.get_vehicle_by_slug(db, slug, active_only=True)
    if vehicle is None:
        raise VehicleNotFound(slug)
    lead = crud.create_lead(db, vehicle, payload.model_dump(exclude={"honeypot"}))
    return lead.id
