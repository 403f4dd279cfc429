# dealership/crud.py
"""Persistence helpers for vehicles, import jobs and leads.

Every write helper commits its own unit of work so that the import pipeline
can isolate failures record by record.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import SlugConflictError
from .models import ImportJob, ImportJobStatus, Lead, Vehicle, VehicleStatus

MAX_STORED_JOB_ERRORS = 200

SORTS = {
    "newest": (Vehicle.published_at.desc(),),
    "cheapest": (Vehicle.price_gross.asc(),),
    "expensive": (Vehicle.price_gross.desc(),),
    "low_mileage": (Vehicle.mileage.asc(),),
    "year_desc": (Vehicle.year.desc(),),
    "promoted": (Vehicle.published_at.desc(),),
}


def utcnow():
    return datetime.now(timezone.utc)


def get_vehicle(db: Session, vehicle_id: str) -> Optional[Vehicle]:
    return db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()


def get_vehicle_by_slug(db: Session, slug: str, active_only: bool = False) -> Optional[Vehicle]:
    q = db.query(Vehicle).filter(Vehicle.slug == slug)
    if active_only:
        q = q.filter(Vehicle.status == VehicleStatus.ACTIVE.value)
    return q.first()


def find_by_source_key(db: Session, source: str, external_id: str) -> Optional[Vehicle]:
    return (
        db.query(Vehicle)
        .filter(Vehicle.source == source, Vehicle.source_external_id == external_id)
        .first()
    )


def create_vehicle(db: Session, data: Dict[str, Any]) -> Vehicle:
    """Insert a vehicle; a taken slug raises `SlugConflictError`."""
    obj = Vehicle(**data)
    db.add(obj)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if get_vehicle_by_slug(db, data["slug"]) is not None:
            raise SlugConflictError(data["slug"])
        raise
    db.refresh(obj)
    return obj


def update_vehicle(db: Session, obj: Vehicle, updates: Dict[str, Any]) -> Vehicle:
    for k, v in updates.items():
        setattr(obj, k, v)
    obj.updated_at = utcnow()
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    db.refresh(obj)
    return obj


def list_vehicles(db: Session, filters: Dict[str, Any], skip: int = 0, limit: int = 24, sort: str = "newest"):
    q = db.query(Vehicle).filter(Vehicle.status == VehicleStatus.ACTIVE.value)
    conds = []
    if filters.get("type"):
        conds.append(Vehicle.type == filters["type"])
    for key, column in (("make", Vehicle.make), ("model", Vehicle.model), ("fuel", Vehicle.fuel),
                        ("gearbox", Vehicle.gearbox), ("body_type", Vehicle.body_type),
                        ("drive", Vehicle.drive), ("location", Vehicle.location)):
        if filters.get(key):
            conds.append(column.in_(filters[key]))
    for key, column, op in (("year_from", Vehicle.year, "ge"), ("year_to", Vehicle.year, "le"),
                            ("mileage_from", Vehicle.mileage, "ge"), ("mileage_to", Vehicle.mileage, "le"),
                            ("price_from", Vehicle.price_gross, "ge"), ("price_to", Vehicle.price_gross, "le")):
        if filters.get(key) is not None:
            conds.append(column >= filters[key] if op == "ge" else column <= filters[key])
    if filters.get("only_en"):
        conds.append(Vehicle.has_en.is_(True))
    if filters.get("q"):
        pattern = f"%{filters['q'].strip()}%"
        conds.append(or_(
            Vehicle.make.ilike(pattern),
            Vehicle.model.ilike(pattern),
            Vehicle.trim.ilike(pattern),
            Vehicle.vin.ilike(pattern),
            Vehicle.description_pl.ilike(pattern),
        ))
    if conds:
        q = q.filter(and_(*conds))
    total = q.count()
    order = (Vehicle.promoted.desc(),) + SORTS.get(sort, SORTS["newest"])
    items = q.order_by(*order).offset(skip).limit(limit).all()
    return {"total": total, "items": items}


def distinct_values(db: Session, column) -> List[str]:
    rows = (
        db.query(column)
        .filter(Vehicle.status == VehicleStatus.ACTIVE.value, column.isnot(None))
        .distinct()
        .all()
    )
    return sorted(r[0] for r in rows)


def make_models(db: Session) -> Dict[str, List[str]]:
    rows = (
        db.query(Vehicle.make, Vehicle.model)
        .filter(Vehicle.status == VehicleStatus.ACTIVE.value)
        .distinct()
        .all()
    )
    result: Dict[str, List[str]] = {}
    for make, model in rows:
        result.setdefault(make, []).append(model)
    return {make: sorted(models) for make, models in sorted(result.items())}


def create_import_job(db: Session, connector: str) -> ImportJob:
    job = ImportJob(connector=connector, status=ImportJobStatus.RUNNING.value, started_at=utcnow())
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def finish_import_job(db: Session, job_id: str, status: ImportJobStatus, new_count: int,
                      updated_count: int, errors: List[str]) -> ImportJob:
    job = db.query(ImportJob).filter(ImportJob.id == job_id).one()
    job.status = status.value
    job.finished_at = utcnow()
    job.new_count = new_count
    job.updated_count = updated_count
    job.error_count = len(errors)
    job.errors = errors[:MAX_STORED_JOB_ERRORS] if errors else None
    db.commit()
    return job


def list_import_jobs(db: Session, limit: int = 20) -> List[ImportJob]:
    return db.query(ImportJob).order_by(ImportJob.started_at.desc()).limit(limit).all()


def create_lead(db: Session, vehicle: Vehicle, data: Dict[str, Any]) -> Lead:
    lead = Lead(vehicle_id=vehicle.id, **data)
    db.add(lead)
    db.commit()
    db.refresh(lead)
    return lead
