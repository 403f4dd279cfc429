# dealership/api/routes.py
import os
import secrets
from typing import Annotated, List, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import crud, schemas, services
from ..cache import Cache, get_cache
from ..connectors.registry import ConnectorRegistry, get_registry
from ..db import get_db, get_session_factory
from ..errors import SlugConflictError, VehicleNotFound
from ..importer import run_import
from ..scheduler import ScheduledImport, get_scheduled_import
from ..utils import logger

load_dotenv()

router = APIRouter()


def _token_matches(given: Optional[str], expected: Optional[str]) -> bool:
    if not given or not expected:
        return False
    return secrets.compare_digest(given.encode(), expected.encode())


def require_admin(x_admin_token: Optional[str] = Header(None)):
    if not _token_matches(x_admin_token, os.getenv("ADMIN_API_TOKEN")):
        raise HTTPException(status_code=401, detail="Unauthorized")


def require_cron(authorization: Optional[str] = Header(None)):
    token = os.getenv("IMPORT_SECRET_TOKEN")
    if not token or not _token_matches(authorization, f"Bearer {token}"):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/vehicles", response_model=schemas.VehiclePage)
def list_vehicles(
    filters: Annotated[schemas.VehicleFilter, Query()],
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    return services.search_vehicles(db, filters, cache)


@router.get("/vehicles/filters", response_model=schemas.FilterOptions)
def vehicle_filters(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    return services.filter_options(db, cache)


@router.get("/vehicles/{slug}", response_model=schemas.VehicleOut)
def get_vehicle(slug: str, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    try:
        return services.get_vehicle_detail(db, slug, cache)
    except VehicleNotFound:
        raise HTTPException(status_code=404, detail="Vehicle not found")


@router.post("/vehicles/{slug}/leads", status_code=status.HTTP_201_CREATED)
def create_lead(slug: str, payload: schemas.LeadCreate, db: Session = Depends(get_db)):
    try:
        services.record_lead(db, slug, payload)
    except VehicleNotFound:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return {"ok": True}


@router.post("/admin/vehicles", response_model=schemas.VehicleCreated,
             status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_vehicle(payload: schemas.VehicleCreate, db: Session = Depends(get_db),
                   cache: Cache = Depends(get_cache)):
    try:
        obj = services.create_manual_vehicle(db, payload, cache)
    except SlugConflictError:
        raise HTTPException(status_code=409, detail="Duplicate slug, retry")
    return schemas.VehicleCreated(id=obj.id, slug=obj.slug)


@router.patch("/admin/vehicles/{vehicle_id}", response_model=schemas.VehicleOut,
              dependencies=[Depends(require_admin)])
def update_vehicle(vehicle_id: str, payload: schemas.VehicleUpdate, db: Session = Depends(get_db),
                   cache: Cache = Depends(get_cache)):
    try:
        return services.update_vehicle(db, vehicle_id, payload, cache)
    except VehicleNotFound:
        raise HTTPException(status_code=404, detail="Vehicle not found")


@router.delete("/admin/vehicles/{vehicle_id}", dependencies=[Depends(require_admin)])
def delete_vehicle(vehicle_id: str, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    try:
        services.soft_delete_vehicle(db, vehicle_id, cache)
    except VehicleNotFound:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return {"status": "deleted"}


@router.post("/admin/import/run", response_model=schemas.ImportResponse,
             dependencies=[Depends(require_admin)])
def trigger_import(
    payload: Optional[schemas.ImportRequest] = Body(None),
    registry: ConnectorRegistry = Depends(get_registry),
    session_factory=Depends(get_session_factory),
    cache: Cache = Depends(get_cache),
):
    connector = payload.connector if payload else None
    logger.info("Manual import requested (connector=%s)", connector or "all")
    results = run_import(connector, registry=registry, session_factory=session_factory, cache=cache)
    return schemas.ImportResponse(results=results)


@router.get("/admin/import/jobs", response_model=List[schemas.ImportJobOut],
            dependencies=[Depends(require_admin)])
def import_jobs(limit: int = Query(20, ge=1, le=100), db: Session = Depends(get_db)):
    return crud.list_import_jobs(db, limit=limit)


@router.get("/admin/import/connectors", dependencies=[Depends(require_admin)])
def import_connectors(registry: ConnectorRegistry = Depends(get_registry)):
    return {"connectors": [c.name for c in registry.list()]}


@router.get("/import/cron", response_model=schemas.ImportResponse, dependencies=[Depends(require_cron)])
def cron_import(scheduled: ScheduledImport = Depends(get_scheduled_import)):
    results = scheduled.tick()
    if results is None:
        return schemas.ImportResponse(skipped=True)
    return schemas.ImportResponse(results=results)
