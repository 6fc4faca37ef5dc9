# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault Scheduler - Recurring snapshots from a cron expression.

Wraps an APScheduler AsyncIOScheduler running a single job. A failed run
is logged and never stops later runs.
"""

from datetime import datetime, UTC
from typing import Any, Awaitable, Callable

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from snapvault.errors import explain_invalid_cron_expression
from snapvault.exceptions import InvalidScheduleError

logger = structlog.get_logger()

JOB_ID = "snapvault_scheduled_backup"


def parse_cron_expression(expression: str) -> CronTrigger:
    """
    Parse a standard five-field cron expression.

    Raises:
        InvalidScheduleError: If the expression is malformed
    """
    try:
        return CronTrigger.from_crontab(expression)
    except (ValueError, TypeError) as e:
        raise InvalidScheduleError(
            explain_invalid_cron_expression(expression),
            details={"expression": expression, "error": str(e)},
        ) from e


class BackupScheduler:
    """
    Owned scheduler component with an explicit start/stop lifecycle.

    Args:
        run_backup: Coroutine function creating one snapshot
    """

    def __init__(self, run_backup: Callable[[], Awaitable[Any]]) -> None:
        self._run_backup = run_backup
        self._scheduler: AsyncIOScheduler | None = None
        self._expression: str | None = None

        self.total_runs = 0
        self.failed_runs = 0
        self.last_run_at: datetime | None = None
        self.last_error: str | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def expression(self) -> str | None:
        return self._expression

    @property
    def next_run_time(self) -> datetime | None:
        if not self.running:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def start(self, cron_expression: str | None) -> None:
        """
        Start scheduled backups.

        An empty expression disables scheduling. Starting again replaces
        the active schedule. Must be called from a running event loop.

        Raises:
            InvalidScheduleError: If the expression is malformed
        """
        expression = (cron_expression or "").strip()
        if not expression:
            logger.info("backup_schedule_disabled")
            return

        trigger = parse_cron_expression(expression)

        # At most one active schedule
        self.stop()

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self._run_scheduled_backup,
            trigger=trigger,
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()

        self._scheduler = scheduler
        self._expression = expression

        next_run = self.next_run_time
        logger.info(
            "backup_scheduler_started",
            schedule=expression,
            next_run=next_run.isoformat() if next_run else None,
        )

    def stop(self) -> None:
        """Stop scheduled backups (idempotent)."""
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return

        if scheduler.running:
            scheduler.shutdown(wait=False)

        logger.info("backup_scheduler_stopped", schedule=self._expression)
        self._expression = None

    async def _run_scheduled_backup(self) -> None:
        """Run one scheduled snapshot; failures are logged, never raised."""
        logger.info("scheduled_backup_starting")
        self.total_runs += 1
        self.last_run_at = datetime.now(UTC)

        try:
            archive = await self._run_backup()
        except Exception as e:
            self.failed_runs += 1
            self.last_error = str(e)
            logger.error("scheduled_backup_failed", error=str(e))
            return

        self.last_error = None
        logger.info(
            "scheduled_backup_completed",
            filename=getattr(archive, "filename", None),
        )

    def status(self) -> dict:
        next_run = self.next_run_time
        return {
            "running": self.running,
            "schedule": self._expression,
            "next_run_at": next_run.isoformat() if next_run else None,
            "total_runs": self.total_runs,
            "failed_runs": self.failed_runs,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_error": self.last_error,
        }
