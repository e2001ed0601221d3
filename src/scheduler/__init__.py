"""Scheduled jobs: the APScheduler engine and the daily news briefing."""

from src.scheduler.briefing import send_daily_briefing
from src.scheduler.engine import SchedulerEngine

__all__ = [
    "SchedulerEngine",
    "send_daily_briefing",
]
