"""Periodic draining of the delivery queue."""

from .service import SWEEP_JOB_ID, SchedulerService
from .sweeper import QueueSweeper

__all__ = [
    "QueueSweeper",
    "SchedulerService",
    "SWEEP_JOB_ID",
]
