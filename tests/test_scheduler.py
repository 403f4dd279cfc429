# tests/test_scheduler.py
import threading

import pytest

from dealership import scheduler as scheduler_module
from dealership.connectors.registry import ConnectorRegistry
from dealership.importer import run_import
from dealership.models import ImportJob
from dealership.scheduler import ScheduledImport


def test_tick_runs_importer_and_releases_guard():
    calls = []
    scheduled = ScheduledImport(runner=lambda: calls.append(1) or [])
    assert scheduled.tick() == []
    assert calls == [1]
    assert scheduled.running is False


def test_tick_skipped_while_previous_run_in_flight():
    started, release = threading.Event(), threading.Event()
    calls = []

    def slow_runner():
        calls.append(1)
        started.set()
        release.wait(5)
        return []

    scheduled = ScheduledImport(runner=slow_runner)
    worker = threading.Thread(target=scheduled.tick)
    worker.start()
    assert started.wait(5)

    assert scheduled.running is True
    assert scheduled.tick() is None
    assert calls == [1]

    release.set()
    worker.join(5)
    assert scheduled.running is False
    scheduled.tick()
    assert calls == [1, 1]


def test_skipped_tick_performs_no_fetch_and_creates_no_jobs(db, session_factory, cache, connectors, record):
    conn = connectors.static("A", [record()])
    registry = ConnectorRegistry([conn])
    scheduled = ScheduledImport(
        runner=lambda: run_import(registry=registry, session_factory=session_factory, cache=cache))

    scheduled._in_flight.acquire()
    try:
        assert scheduled.tick() is None
    finally:
        scheduled._in_flight.release()

    assert conn.fetch_calls == 0
    assert db.query(ImportJob).count() == 0

    results = scheduled.tick()
    assert [r.connector for r in results] == ["A"]
    assert conn.fetch_calls == 1


def test_guard_released_when_run_raises():
    def broken():
        raise RuntimeError("database down")

    scheduled = ScheduledImport(runner=broken)
    with pytest.raises(RuntimeError):
        scheduled.tick()
    assert scheduled.running is False


def test_start_and_shutdown_scheduler():
    sched = scheduler_module.start_scheduler(interval_minutes=60)
    try:
        assert sched.running
        job = sched.get_job("inventory-import")
        assert job is not None
        assert job.trigger.interval.total_seconds() == 3600
    finally:
        scheduler_module.shutdown_scheduler()
    assert not scheduler_module.scheduler.running
