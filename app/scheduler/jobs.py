"""
app/scheduler/jobs.py

APScheduler-based scheduler for periodic domain syncs and log maintenance.

Schedule
--------
  sync_<domain>   : every SYNC_INTERVAL_HOURS hours, one job per enabled domain
  log_flush       : every LOG_FLUSH_INTERVAL_MINUTES minutes
  log_cleanup     : 04:00 UTC every day, keeps LOG_RETENTION_DAYS days

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_log_settings, get_sync_settings
from app.services.log_buffer import get_log_buffer
from app.services.sync_domains import get_domain_registry
from app.services.sync_orchestrator import get_sync_orchestrator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: Domain sync
# ---------------------------------------------------------------------------


def run_domain_sync(domain: str) -> None:
    """
    Run one domain sync and flush the execution log.
    The orchestrator never raises for sync failures; they arrive as ERROR results.
    """
    logger.info("Scheduler: sync domain=%s starting", domain)
    log_buffer = get_log_buffer()
    try:
        config = get_domain_registry().get(domain)
        result = get_sync_orchestrator().run_sync(config)
        logger.info(
            "Scheduler: sync domain=%s status=%s records=%s duration_ms=%s",
            domain,
            result.status.value,
            result.total_records,
            result.total_duration_ms,
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: sync failed domain=%s: %s", domain, exc)
    finally:
        if not log_buffer.flush():
            logger.warning("Scheduler: log flush after sync failed domain=%s", domain)


# ---------------------------------------------------------------------------
# Job: Log maintenance
# ---------------------------------------------------------------------------


def run_log_flush() -> None:
    if not get_log_buffer().flush():
        logger.warning("Scheduler: periodic log flush failed; entries remain buffered")


def run_log_cleanup() -> None:
    retention_days = get_log_settings().retention_days
    logger.info("Scheduler: log_cleanup starting retention_days=%s", retention_days)
    try:
        deleted = get_log_buffer().cleanup_older_than(retention_days)
    except ValueError as exc:
        logger.warning("Scheduler: log_cleanup skipped: %s", exc)
        return
    logger.info("Scheduler: log_cleanup complete deleted=%s", deleted)


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    sync_settings = get_sync_settings()
    log_settings = get_log_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    for domain in get_domain_registry().names():
        scheduler.add_job(
            run_domain_sync,
            trigger="interval",
            hours=sync_settings.interval_hours,
            args=[domain],
            id=f"sync_{domain}",
            name=f"Periodic {domain} sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )
    scheduler.add_job(
        run_log_flush,
        trigger="interval",
        minutes=log_settings.flush_interval_minutes,
        id="log_flush",
        name="Execution log flush",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        run_log_cleanup,
        trigger="cron",
        hour=4,
        minute=0,
        id="log_cleanup",
        name="Execution log retention cleanup",
        replace_existing=True,
        misfire_grace_time=3600,
    )

    return scheduler
