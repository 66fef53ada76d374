"""Event observers that keep external task lists and calendars in sync."""

from boardsync.observers.base import IntegrationSyncError, SyncObserver
from boardsync.observers.calendar import CalendarSyncObserver, calculate_end, is_all_day
from boardsync.observers.google_tasks import GoogleTasksSyncObserver

__all__ = [
    "IntegrationSyncError",
    "SyncObserver",
    "GoogleTasksSyncObserver",
    "CalendarSyncObserver",
    "calculate_end",
    "is_all_day",
]
