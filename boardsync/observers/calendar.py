"""Mirror scheduled cards into a calendar."""

from datetime import datetime, timedelta

from boardsync.events.types import Card
from boardsync.models.sync_status import IntegrationType
from boardsync.observers.base import SyncObserver

DEFAULT_CALENDAR_ID = "primary"


def is_all_day(card: Card) -> bool:
    """Cards scheduled at midnight are treated as all-day entries."""
    scheduled = card.scheduled_date
    return scheduled is not None and scheduled.hour == 0 and scheduled.minute == 0


def calculate_end(card: Card) -> datetime | None:
    """End of the calendar entry for a scheduled card.

    The due date wins; otherwise all-day entries end at 23:59:59 and
    timed ones last one hour.
    """
    if card.due_date is not None:
        return card.due_date
    if card.scheduled_date is None:
        return None
    if is_all_day(card):
        return card.scheduled_date.replace(hour=23, minute=59, second=59, microsecond=0)
    return card.scheduled_date + timedelta(hours=1)


class CalendarSyncObserver(SyncObserver):
    """Keeps one calendar entry per scheduled card. Runs before task sync."""

    integration_type = IntegrationType.CALENDAR
    priority = 20

    def __init__(self, *args, calendar_id: str = DEFAULT_CALENDAR_ID, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.calendar_id = calendar_id

    def target_id(self, card: Card) -> str:
        return self.calendar_id

    def build_notes(self, card: Card) -> str:
        parts = []
        if card.description and card.description.strip():
            parts.append(card.description)
        if card.due_date is not None:
            parts.append(f"Deadline: {card.due_date.isoformat()}")
        return "\n\n".join(parts)

    def due_date_for(self, card: Card) -> datetime | None:
        return calculate_end(card)
