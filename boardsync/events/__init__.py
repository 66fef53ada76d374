"""Domain event bus for card scheduling changes.

Components:
- types.py: Card snapshot and the card event variants
- observer.py: EventObserver contract
- publisher.py: EventPublisher (typed registry, sync and async publish)
- pool.py: daemon worker pool behind publish_async
- exceptions.py: bus error types
"""

from boardsync.events.exceptions import (
    EventPublishingError,
    InvalidArgumentError,
    ObserverFailure,
)
from boardsync.events.observer import EventObserver
from boardsync.events.pool import DaemonWorkerPool
from boardsync.events.publisher import EventPublisher
from boardsync.events.types import (
    Card,
    CardEvent,
    CardScheduledEvent,
    CardUnscheduledEvent,
    CardUpdatedEvent,
    DomainEvent,
    EventType,
)

__all__ = [
    # Types
    "EventType",
    "Card",
    "DomainEvent",
    "CardEvent",
    "CardScheduledEvent",
    "CardUnscheduledEvent",
    "CardUpdatedEvent",
    # Bus
    "EventObserver",
    "EventPublisher",
    "DaemonWorkerPool",
    # Errors
    "InvalidArgumentError",
    "ObserverFailure",
    "EventPublishingError",
]
