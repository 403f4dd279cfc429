# dealership/importer.py
"""Inventory import: run connectors and reconcile their output with stock.

Each connector invocation gets an `ImportJob` row that is created before the
fetch and always finalized as SUCCESS or FAILED. Incoming vehicles are
matched on (source, external id): a match is updated in place, anything else
becomes a new ACTIVE listing. Record-level failures are collected on the job
and never stop the batch; an unexpected exception fails only the connector
it came from.
"""
import os
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FetchTimeout
from typing import Callable, List, Optional

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import crud
from .cache import LISTING_PATTERN, Cache, get_cache
from .connectors.base import Connector, ConnectorResult, IncomingVehicle
from .connectors.registry import ConnectorRegistry, get_registry
from .db import SessionLocal
from .errors import SlugConflictError
from .models import Currency, ImportJobStatus, VehicleStatus
from .schemas import ImportRunResult
from .utils import logger, make_vehicle_slug, new_slug_suffix

load_dotenv()

# upper bound for a whole connector fetch, retries included
CONNECTOR_TIMEOUT = float(os.getenv("IMPORT_CONNECTOR_TIMEOUT", "300"))

CREATED = "created"
UPDATED = "updated"

_fetch_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="connector-fetch")


def _describe(exc: Exception) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__


def vehicle_fields(incoming: IncomingVehicle) -> dict:
    """Columns an import may write; identity, type and status are not among them."""
    return {
        "make": incoming.make,
        "model": incoming.model,
        "trim": incoming.trim,
        "year": incoming.year,
        "mileage": incoming.mileage,
        "fuel": incoming.fuel,
        "gearbox": incoming.gearbox,
        "body_type": incoming.body_type,
        "drive": incoming.drive,
        "power_hp": incoming.power_hp,
        "engine_cc": incoming.engine_cc,
        "color": incoming.color,
        "price_gross": incoming.price_gross,
        "currency": (incoming.currency or Currency.PLN).value,
        "installment_amount": incoming.installment_amount,
        "location": incoming.location,
        "description_pl": incoming.description_pl,
        "description_en": incoming.description_en,
        "has_en": bool(incoming.description_en),
        "images": list(incoming.images or []),
        "videos": list(incoming.videos or []),
        "features": list(incoming.features or []),
    }


def reconcile_vehicle(db: Session, source: str, incoming: IncomingVehicle,
                      suffix_factory: Callable[[], str] = new_slug_suffix) -> str:
    """Insert or update one incoming vehicle; returns CREATED or UPDATED."""
    fields = vehicle_fields(incoming)
    existing = crud.find_by_source_key(db, source, incoming.external_id)
    if existing is not None:
        crud.update_vehicle(db, existing, fields)
        return UPDATED

    data = dict(
        fields,
        source=source,
        source_external_id=incoming.external_id,
        type=incoming.type.value,
        status=VehicleStatus.ACTIVE.value,
        published_at=crud.utcnow(),
    )
    for attempt in (1, 2):
        data["slug"] = make_vehicle_slug(incoming.type.value, incoming.make, incoming.model,
                                         incoming.year, suffix_factory())
        try:
            crud.create_vehicle(db, data)
            return CREATED
        except SlugConflictError as e:
            if attempt == 2:
                raise
            logger.warning("Slug collision on %s, retrying with a fresh suffix", e.slug)


def fetch_with_timeout(connector: Connector, timeout: Optional[float]) -> ConnectorResult:
    future = _fetch_pool.submit(connector.fetch)
    try:
        return future.result(timeout=timeout)
    except FetchTimeout:
        future.cancel()
        logger.warning("Connector %s fetch timed out after %ss", connector.name, timeout)
        return ConnectorResult(errors=[f"Fetch error: timed out after {timeout:g}s"])


def _run_connector(connector: Connector, session_factory, cache: Cache,
                   fetch_timeout: Optional[float]) -> ImportRunResult:
    new_count = updated_count = 0
    errors: List[str] = []
    db = session_factory()
    try:
        try:
            job = crud.create_import_job(db, connector.name)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Could not create import job for %s", connector.name)
            errors.append(f"Fatal: could not create import job: {_describe(e)}")
            return ImportRunResult(connector=connector.name, new_count=0, updated_count=0,
                                   error_count=len(errors), errors=errors, job_id=None)
        job_id = job.id
        logger.info("Import %s started (job %s)", connector.name, job_id)

        try:
            fetched = fetch_with_timeout(connector, fetch_timeout)
            errors.extend(fetched.errors)
            for incoming in fetched.vehicles:
                try:
                    outcome = reconcile_vehicle(db, connector.name, incoming)
                except (SQLAlchemyError, SlugConflictError) as e:
                    db.rollback()
                    logger.warning("Import %s: record %s not saved: %s", connector.name, incoming.external_id, e)
                    errors.append(f"[{incoming.external_id}] DB error: {_describe(e)}")
                    continue
                if outcome == CREATED:
                    new_count += 1
                else:
                    updated_count += 1
            status = ImportJobStatus.SUCCESS
        except Exception as e:
            db.rollback()
            logger.exception("Import %s failed", connector.name)
            errors.append(f"Fatal: {_describe(e)}")
            status = ImportJobStatus.FAILED

        try:
            crud.finish_import_job(db, job_id, status, new_count, updated_count, errors)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not finalize import job %s", job_id)

        if status is ImportJobStatus.SUCCESS:
            outcome = cache.invalidate(LISTING_PATTERN)
            if not outcome.ok:
                logger.warning("Listing cache invalidation failed after %s import: %s", connector.name, outcome.error)

        logger.info("Import %s: +%d new, ~%d updated, %d errors", connector.name, new_count, updated_count, len(errors))
        return ImportRunResult(connector=connector.name, new_count=new_count, updated_count=updated_count,
                               error_count=len(errors), errors=errors, job_id=job_id)
    finally:
        db.close()


def run_import(connector_name: Optional[str] = None, *, registry: Optional[ConnectorRegistry] = None,
               session_factory=None, cache: Optional[Cache] = None,
               fetch_timeout: Optional[float] = CONNECTOR_TIMEOUT) -> List[ImportRunResult]:
    """Run one named connector, or every registered connector in order."""
    registry = registry if registry is not None else get_registry()
    session_factory = session_factory if session_factory is not None else SessionLocal
    cache = cache if cache is not None else get_cache()

    connectors = registry.select(connector_name)
    if connector_name is not None and not connectors:
        logger.warning("No connector named %r, nothing to import", connector_name)

    return [_run_connector(c, session_factory, cache, fetch_timeout) for c in connectors]
