"""APScheduler-based interval scheduling for full syncs."""

from __future__ import annotations

import logging
import time

from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.blocking import BlockingScheduler

from wiz_access.config import ConnectorConfig
from wiz_access.connector import WizConnector
from wiz_access.errors import ConnectorError
from wiz_access.runner import LocalSyncRunner

logger = logging.getLogger("wiz_access.scheduler")

# Seconds before the first whole-sync retry; doubles each time
RETRY_BACKOFF_BASE = 30


def run_sync(config: ConnectorConfig, connector: WizConnector | None = None) -> dict[str, int] | None:
    """Run a full sync, retrying the whole sync on connector errors.

    Page-level retries happen in the client; this only covers a sync that
    failed outright. Returns None when every attempt failed.
    """
    max_retries = config.scheduler.max_retries
    connector = connector or WizConnector.from_config(config.wiz)

    for attempt in range(max_retries + 1):
        try:
            results = LocalSyncRunner(connector).run()
            logger.info("Scheduled sync complete: %s", results)
            return results
        except ConnectorError as exc:
            if attempt < max_retries:
                delay = RETRY_BACKOFF_BASE * (2 ** attempt)
                logger.warning(
                    "Sync failed (attempt %d/%d), retrying in %ds: %s",
                    attempt + 1, max_retries, delay, exc,
                )
                time.sleep(delay)
            else:
                logger.error("Sync failed after %d retries: %s", max_retries, exc)
    return None


def _on_job_error(event) -> None:
    """Log job execution errors."""
    logger.error(
        "Job %s raised an exception: %s",
        event.job_id,
        event.exception,
    )


def start_scheduler(config: ConnectorConfig) -> None:
    """Start the blocking scheduler with one interval job for the full sync."""
    scheduler = BlockingScheduler()
    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    sched = config.scheduler

    scheduler.add_job(
        run_sync,
        "interval",
        minutes=sched.interval_min,
        args=[config],
        id="wiz_sync",
        max_instances=1,
        misfire_grace_time=sched.misfire_grace_time,
    )

    logger.info("Starting scheduler with jobs: %s",
                [j.id for j in scheduler.get_jobs()])
    scheduler.start()
