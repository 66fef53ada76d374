"""Domain event definitions for card scheduling changes."""

import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from boardsync.events.exceptions import InvalidArgumentError


class EventType(str, Enum):
    """Routing tags for domain events."""

    CARD_SCHEDULED = "CardScheduled"
    CARD_UNSCHEDULED = "CardUnscheduled"
    CARD_UPDATED = "CardUpdated"


# Fields whose change has to be propagated to external providers
EXTERNAL_SYNC_FIELDS: frozenset[str] = frozenset(
    {"scheduled_date", "due_date", "title", "description"}
)

_clock_lock = threading.Lock()
_last_occurred_on: datetime | None = None


def _occurred_now() -> datetime:
    """Return a UTC timestamp that never goes backwards within the process."""
    global _last_occurred_on
    with _clock_lock:
        now = datetime.utcnow()
        if _last_occurred_on is not None and now <= _last_occurred_on:
            now = _last_occurred_on + timedelta(microseconds=1)
        _last_occurred_on = now
        return now


class Card(BaseModel):
    """Read-only snapshot of a board card as seen by the sync layer."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    title: str = ""
    description: str | None = None
    scheduled_date: datetime | None = None
    due_date: datetime | None = None
    board_column_id: int | None = None
    board_name: str | None = None
    card_type_id: int | None = None
    progress_type: str | None = None

    @property
    def is_scheduled(self) -> bool:
        return self.scheduled_date is not None


class DomainEvent(BaseModel):
    """Immutable fact about something that happened in the domain.

    Subclasses fix ``event_type``; entity identity is optional and
    defaults to ``None`` for events not tied to an entity.
    """

    model_config = ConfigDict(frozen=True)

    event_type: ClassVar[EventType]

    event_id: UUID = Field(default_factory=uuid4, description="Unique event identifier")
    occurred_on: datetime = Field(
        default_factory=_occurred_now,
        description="When the event was created (UTC)",
    )

    @property
    def entity_id(self) -> int | None:
        return None

    @property
    def entity_type(self) -> str | None:
        return None

    def to_log_dict(self) -> dict[str, Any]:
        """Compact representation for structured log records."""
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "occurred_on": self.occurred_on.isoformat(),
        }


class CardEvent(DomainEvent):
    """Base for events scoped to a single card."""

    card: Card

    @field_validator("card")
    @classmethod
    def _card_must_have_id(cls, card: Card) -> Card:
        if card.id is None:
            raise InvalidArgumentError("Card events require a card with an id")
        return card

    @property
    def entity_id(self) -> int | None:
        return self.card.id

    @property
    def entity_type(self) -> str | None:
        return "Card"

    @property
    def card_id(self) -> int | None:
        return self.entity_id


class CardScheduledEvent(CardEvent):
    """A card received a scheduled date, or its scheduled date moved."""

    event_type: ClassVar[EventType] = EventType.CARD_SCHEDULED

    scheduled_date: datetime
    previous_scheduled_date: datetime | None = None

    def is_first_scheduling(self) -> bool:
        return self.previous_scheduled_date is None

    def is_scheduling_changed(self) -> bool:
        return not self.is_first_scheduling()


class CardUnscheduledEvent(CardEvent):
    """A card lost its scheduled date."""

    event_type: ClassVar[EventType] = EventType.CARD_UNSCHEDULED

    previous_scheduled_date: datetime | None = None

    def had_previous_scheduling(self) -> bool:
        return self.previous_scheduled_date is not None


class CardUpdatedEvent(CardEvent):
    """One or more fields of a card changed."""

    event_type: ClassVar[EventType] = EventType.CARD_UPDATED

    previous_card: Card | None = None
    changed_fields: frozenset[str] = Field(default_factory=frozenset)

    def is_field_changed(self, field_name: str) -> bool:
        return field_name in self.changed_fields

    def is_scheduled_date_changed(self) -> bool:
        return self.is_field_changed("scheduled_date")

    def is_due_date_changed(self) -> bool:
        return self.is_field_changed("due_date")

    def is_title_changed(self) -> bool:
        return self.is_field_changed("title")

    def is_description_changed(self) -> bool:
        return self.is_field_changed("description")

    def requires_external_sync(self) -> bool:
        """True when a field mirrored by external providers changed."""
        return not EXTERNAL_SYNC_FIELDS.isdisjoint(self.changed_fields)
