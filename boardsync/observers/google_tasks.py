"""Mirror scheduled cards into a task list."""

from datetime import datetime

from boardsync.events.types import Card, CardUpdatedEvent, DomainEvent, EventType
from boardsync.models.sync_status import IntegrationType
from boardsync.observers.base import SyncObserver

DEFAULT_TASK_LIST = "Simple Task Board Manager"


class GoogleTasksSyncObserver(SyncObserver):
    """Creates, updates and removes one task per scheduled card.

    Tasks go into a list named after the card's board; cards without a
    board name fall back to ``default_list``.
    """

    integration_type = IntegrationType.GOOGLE_TASKS
    priority = 10

    def __init__(self, *args, default_list: str = DEFAULT_TASK_LIST, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.default_list = default_list

    def can_handle(self, event: DomainEvent) -> bool:
        if not super().can_handle(event):
            return False
        if event.event_type == EventType.CARD_UPDATED:
            return isinstance(event, CardUpdatedEvent) and event.requires_external_sync()
        return True

    def target_id(self, card: Card) -> str:
        if card.board_name and card.board_name.strip():
            return card.board_name.strip()
        return self.default_list

    def build_notes(self, card: Card) -> str:
        lines = []
        if card.description and card.description.strip():
            lines.append(f"Description: {card.description}")
            lines.append("")
        if card.scheduled_date is not None:
            lines.append(f"Scheduled for: {card.scheduled_date.isoformat()}")
        if card.due_date is not None:
            lines.append(f"Due: {card.due_date.isoformat()}")
        lines.append(f"Card ID: {card.id}")
        return "\n".join(lines)

    def due_date_for(self, card: Card) -> datetime | None:
        return card.due_date or card.scheduled_date
