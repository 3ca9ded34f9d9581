"""Scheduler service for periodic queue sweeps."""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from notification_delivery.logging import get_logger

logger = get_logger(__name__, component="scheduler")

SWEEP_JOB_ID = "delivery-sweep"


class SchedulerService:
    """Runs the sweep callable on an interval in a background thread.

    Overlapping runs are prevented (max_instances=1) and missed runs are
    collapsed into one (coalesce=True).
    """

    def __init__(
        self,
        sweep_callable: Callable[[], int],
        interval_seconds: int,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            sweep_callable: Parameterless entry point, e.g. QueueSweeper.run
            interval_seconds: Seconds between runs
            shutdown_event: Set on shutdown so the main thread can exit
        """
        self.sweep_callable = sweep_callable
        self.interval_seconds = interval_seconds
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Register the sweep job and start the scheduler.

        The first sweep runs immediately so items left over from a previous
        process are picked up without waiting a full interval.
        """
        if self.scheduler.running:
            logger.warning(
                "Scheduler already running, ignoring start()",
                extra={"event": "scheduler.already_running"},
            )
            return

        first_run = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self._run_sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc),
            id=SWEEP_JOB_ID,
            name="Delivery queue sweep",
            replace_existing=True,
            next_run_time=first_run,
        )
        self.scheduler.start()

        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "next_run_time": first_run.isoformat(),
            },
        )

    def _run_sweep(self) -> None:
        completed = self.sweep_callable()
        logger.debug(
            f"Scheduled sweep finished, {completed} item(s) completed",
            extra={"event": "scheduler.sweep.finished", "completed": completed},
        )

    def shutdown(self, wait: bool = False) -> None:
        """Stop the scheduler.

        Args:
            wait: If True, block until a running sweep finishes
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self) -> int:
        """Run one sweep synchronously in the calling thread."""
        logger.info("Triggering immediate sweep", extra={"event": "scheduler.trigger_now"})
        return self.sweep_callable()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(SWEEP_JOB_ID)
        return job.next_run_time if job else None
