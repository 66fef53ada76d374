"""Observer contract for the domain event bus."""

from abc import ABC, abstractmethod
from typing import ClassVar

from boardsync.events.types import DomainEvent, EventType


class EventObserver(ABC):
    """A named, prioritised reaction to one or more event types.

    Observers declare the event types they accept in ``event_types``;
    the publisher routes events by that tag and then asks ``can_handle``
    for a final, event-specific decision. Higher ``priority`` runs first.
    """

    event_types: ClassVar[frozenset[EventType]] = frozenset()
    priority: ClassVar[int] = 0

    @property
    def observer_name(self) -> str:
        """Stable identifier used in logs."""
        return self.__class__.__name__

    def can_handle(self, event: DomainEvent) -> bool:
        """Check whether this observer wants the given event.

        Must be a pure predicate. The default accepts every event whose
        tag is declared in ``event_types``.
        """
        return event.event_type in self.event_types

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        """Process an event.

        May raise; the publisher isolates the failure from the other
        observers and reports it once the round is over.
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.observer_name} priority={self.priority}>"
