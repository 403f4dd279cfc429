# dealership/scheduler.py
"""Periodic import of every registered connector.

At most one scheduled run is in flight per process: a tick that fires while
the previous one is still working is skipped, not queued. Manual imports
call `run_import` directly and do not take this guard.
"""
import os
import threading
from typing import Callable, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv

from .importer import run_import
from .schemas import ImportRunResult
from .utils import logger

load_dotenv()

IMPORT_INTERVAL_MINUTES = int(os.getenv("IMPORT_INTERVAL_MINUTES", "30"))


class ScheduledImport:
    def __init__(self, runner: Callable[[], List[ImportRunResult]] = run_import):
        self._runner = runner
        self._in_flight = threading.Lock()

    @property
    def running(self) -> bool:
        return self._in_flight.locked()

    def tick(self) -> Optional[List[ImportRunResult]]:
        """Run all connectors unless a scheduled run is already in progress.

        Returns the per-connector results, or None when the tick was skipped.
        """
        if not self._in_flight.acquire(blocking=False):
            logger.info("Skipping scheduled import: previous run still in progress")
            return None
        try:
            logger.info("Starting scheduled import")
            results = self._runner()
            for r in results:
                logger.info("Scheduled import %s: +%d new, ~%d updated, %d errors",
                            r.connector, r.new_count, r.updated_count, r.error_count)
            return results
        finally:
            self._in_flight.release()


scheduled_import = ScheduledImport()
scheduler = BackgroundScheduler()


def get_scheduled_import() -> ScheduledImport:
    return scheduled_import


def _tick():
    try:
        scheduled_import.tick()
    except Exception:
        logger.exception("Scheduled import crashed")


def start_scheduler(interval_minutes: int = IMPORT_INTERVAL_MINUTES):
    if scheduler.running:
        return scheduler
    scheduler.add_job(_tick, "interval", minutes=interval_minutes, id="inventory-import",
                      max_instances=1, coalesce=True, replace_existing=True)
    scheduler.start()
    logger.info("Scheduler started (import every %d min)", interval_minutes)
    return scheduler


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
