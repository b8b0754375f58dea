"""Periodic scheduling of feed syncs and scrape cycles."""

from .service import SCRAPE_JOB_ID, SYNC_JOB_ID, SchedulerService

__all__ = ["SchedulerService", "SYNC_JOB_ID", "SCRAPE_JOB_ID"]
