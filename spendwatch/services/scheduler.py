"""Periodic threshold sweep over all active budgets (APScheduler)."""

from __future__ import annotations

import logging
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler

from spendwatch.services.monitor import BudgetMonitor

logger = logging.getLogger("spendwatch.scheduler")

JOB_ID = "threshold-sweep"


def run_sweep(monitor_factory: Callable[[], BudgetMonitor]) -> int:
    written = monitor_factory().check_all_active()
    logger.info("threshold sweep finished, %d alert rows written", written)
    return written


def start_scheduler(
    monitor_factory: Callable[[], BudgetMonitor], interval_minutes: int
) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_sweep,
        "interval",
        minutes=interval_minutes,
        args=[monitor_factory],
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("threshold sweep scheduled every %d minutes", interval_minutes)
    return scheduler
