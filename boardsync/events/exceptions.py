"""Error types raised by the event bus."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from boardsync.events.types import DomainEvent


class InvalidArgumentError(ValueError):
    """A missing or malformed event or observer was handed to the bus."""


class ObserverFailure(Exception):
    """One observer's ``handle`` raised while processing an event.

    The original exception is kept as ``__cause__``.
    """

    def __init__(self, observer_name: str, event: DomainEvent, error: BaseException) -> None:
        super().__init__(f"Observer {observer_name} failed on {event.event_type.value}: {error}")
        self.observer_name = observer_name
        self.event = event
        self.error = error
        self.__cause__ = error


class EventPublishingError(Exception):
    """Raised by ``publish`` after every observer ran and at least one failed."""

    def __init__(
        self,
        message: str,
        event: DomainEvent | None = None,
        failures: list[ObserverFailure] | None = None,
    ) -> None:
        super().__init__(message)
        self.event = event
        self.failures = list(failures or [])
        if self.failures:
            self.__cause__ = self.failures[0].error

    @property
    def first_error(self) -> BaseException | None:
        """The first observer error of the round, if any."""
        return self.failures[0].error if self.failures else None

    @property
    def failed_observers(self) -> list[str]:
        return [failure.observer_name for failure in self.failures]
