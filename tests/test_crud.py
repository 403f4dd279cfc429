# tests/test_crud.py
import pytest
from sqlalchemy.exc import IntegrityError

from dealership import crud
from dealership.errors import SlugConflictError
from dealership.models import ImportJobStatus


def _vehicle(**overrides):
    data = {"slug": "uzywane-audi-a4-2019-abc123", "type": "USED", "make": "Audi", "model": "A4",
            "year": 2019, "price_gross": 89900, "status": "ACTIVE"}
    data.update(overrides)
    return data


def test_create_and_get(db):
    obj = crud.create_vehicle(db, _vehicle())
    assert obj.id
    assert crud.get_vehicle(db, obj.id).slug == "uzywane-audi-a4-2019-abc123"
    assert crud.get_vehicle_by_slug(db, obj.slug).make == "Audi"
    assert obj.source == "manual"
    assert obj.images == []


def test_active_only_lookup_hides_inactive(db):
    crud.create_vehicle(db, _vehicle(status="INACTIVE"))
    assert crud.get_vehicle_by_slug(db, "uzywane-audi-a4-2019-abc123", active_only=True) is None
    assert crud.get_vehicle_by_slug(db, "uzywane-audi-a4-2019-abc123") is not None


def test_duplicate_slug_raises_slug_conflict(db):
    crud.create_vehicle(db, _vehicle())
    with pytest.raises(SlugConflictError):
        crud.create_vehicle(db, _vehicle(make="BMW"))


def test_duplicate_reconciliation_key_is_rejected_by_store(db):
    crud.create_vehicle(db, _vehicle(source="A", source_external_id="1"))
    with pytest.raises(IntegrityError):
        crud.create_vehicle(db, _vehicle(slug="other-slug", source="A", source_external_id="1"))
    assert crud.find_by_source_key(db, "A", "1").slug == "uzywane-audi-a4-2019-abc123"


def test_manual_vehicles_may_share_null_external_id(db):
    crud.create_vehicle(db, _vehicle(slug="s1"))
    crud.create_vehicle(db, _vehicle(slug="s2"))
    assert crud.find_by_source_key(db, "manual", "x") is None


def test_list_vehicles_filters_and_sorts(db):
    crud.create_vehicle(db, _vehicle(slug="a", price_gross=50000, fuel="Diesel"))
    crud.create_vehicle(db, _vehicle(slug="b", make="BMW", model="X5", price_gross=250000, fuel="Benzyna"))
    crud.create_vehicle(db, _vehicle(slug="c", make="BMW", model="X1", price_gross=120000, promoted=True))
    crud.create_vehicle(db, _vehicle(slug="d", make="BMW", model="X3", status="SOLD"))

    res = crud.list_vehicles(db, {"make": ["BMW"]}, sort="cheapest")
    assert res["total"] == 2
    assert [v.slug for v in res["items"]] == ["c", "b"]

    res = crud.list_vehicles(db, {"price_to": 100000})
    assert [v.slug for v in res["items"]] == ["a"]

    res = crud.list_vehicles(db, {"q": "x5"})
    assert [v.slug for v in res["items"]] == ["b"]

    # promoted listings come first regardless of sort
    res = crud.list_vehicles(db, {}, sort="expensive")
    assert [v.slug for v in res["items"]] == ["c", "b", "a"]


def test_import_job_lifecycle(db):
    job = crud.create_import_job(db, "A")
    assert job.status == "RUNNING"
    assert job.started_at is not None

    crud.finish_import_job(db, job.id, ImportJobStatus.FAILED, 1, 2, ["Fatal: boom"])
    [stored] = crud.list_import_jobs(db)
    assert stored.status == "FAILED"
    assert (stored.new_count, stored.updated_count, stored.error_count) == (1, 2, 1)
    assert stored.errors == ["Fatal: boom"]
    assert stored.finished_at is not None
