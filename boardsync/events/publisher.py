"""In-process publish/subscribe bus for domain events.

The registry is copy-on-write: subscribe/unsubscribe build new tuples
under a lock and swap them in, so ``publish`` iterates a stable snapshot
without taking any lock. Observers are routed through a mapping from
``EventType`` to the observers that declared it, kept in subscription
order.

Event Flow:
    card change → DomainEvent → EventPublisher.publish
                                      ↓
                      observers for event.event_type (can_handle)
                                      ↓
                      priority order, failures collected per observer
"""

import logging
import threading
from concurrent.futures import Future

from boardsync.events.exceptions import (
    EventPublishingError,
    InvalidArgumentError,
    ObserverFailure,
)
from boardsync.events.observer import EventObserver
from boardsync.events.pool import DaemonWorkerPool
from boardsync.events.types import DomainEvent, EventType

logger = logging.getLogger(__name__)

DEFAULT_ASYNC_WORKERS = 5


class EventPublisher:
    """Event bus with a typed observer registry and a bounded async pool."""

    def __init__(self, max_workers: int = DEFAULT_ASYNC_WORKERS) -> None:
        """Initialize the publisher.

        Args:
            max_workers: Concurrency of the pool used by ``publish_async``
        """
        if max_workers < 1:
            raise InvalidArgumentError("max_workers must be at least 1")
        self.max_workers = max_workers
        self._lock = threading.Lock()
        self._observers: tuple[EventObserver, ...] = ()
        self._routes: dict[EventType, tuple[EventObserver, ...]] = {}
        self._executor: DaemonWorkerPool | None = None

    @property
    def executor(self) -> DaemonWorkerPool:
        """Lazy-initialize the async worker pool.

        Its threads are daemon threads, so a hung observer never blocks
        interpreter exit.
        """
        if self._executor is None:
            with self._lock:
                if self._executor is None:
                    self._executor = DaemonWorkerPool(
                        max_workers=self.max_workers,
                        thread_name_prefix="EventPublisher-Async",
                    )
        return self._executor

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def subscribe(self, observer: EventObserver) -> None:
        """Register an observer. Subscribing twice is a no-op.

        Raises:
            InvalidArgumentError: If observer is None, not an EventObserver,
                or declares no event types
        """
        if observer is None:
            raise InvalidArgumentError("Observer cannot be None")
        if not isinstance(observer, EventObserver):
            raise InvalidArgumentError(
                f"Expected an EventObserver, got {type(observer).__name__}"
            )
        if not observer.event_types:
            raise InvalidArgumentError(
                f"Observer {observer.observer_name} declares no event types"
            )

        with self._lock:
            if observer in self._observers:
                logger.debug(
                    "Observer already subscribed",
                    extra={"observer": observer.observer_name},
                )
                return
            self._observers = self._observers + (observer,)
            self._routes = self._build_routes(self._observers)

        logger.debug(
            "Observer subscribed",
            extra={
                "observer": observer.observer_name,
                "event_types": sorted(t.value for t in observer.event_types),
            },
        )

    def unsubscribe(self, observer: EventObserver) -> None:
        """Remove an observer if present."""
        with self._lock:
            if observer not in self._observers:
                logger.debug(
                    "Observer was not subscribed",
                    extra={"observer": getattr(observer, "observer_name", repr(observer))},
                )
                return
            self._observers = tuple(o for o in self._observers if o is not observer)
            self._routes = self._build_routes(self._observers)

        logger.debug("Observer unsubscribed", extra={"observer": observer.observer_name})

    def get_observer_count(self) -> int:
        return len(self._observers)

    def is_subscribed(self, observer: EventObserver) -> bool:
        return observer in self._observers

    def clear_observers(self) -> None:
        """Drop every registration."""
        with self._lock:
            self._observers = ()
            self._routes = {}
        logger.debug("All observers removed")

    @staticmethod
    def _build_routes(
        observers: tuple[EventObserver, ...],
    ) -> dict[EventType, tuple[EventObserver, ...]]:
        routes: dict[EventType, list[EventObserver]] = {}
        for observer in observers:
            for event_type in observer.event_types:
                routes.setdefault(event_type, []).append(observer)
        return {event_type: tuple(items) for event_type, items in routes.items()}

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(self, event: DomainEvent) -> None:
        """Deliver an event to every compatible observer, highest priority first.

        A failing observer does not stop the others. Once all of them ran,
        the failures are raised together.

        Raises:
            InvalidArgumentError: If event is None or not a DomainEvent
            EventPublishingError: If at least one observer failed
        """
        self._validate_event(event)

        candidates = self._routes.get(event.event_type, ())
        failures: list[ObserverFailure] = []
        compatible = [
            observer
            for observer in candidates
            if self._accepts(observer, event, failures)
        ]

        if not compatible and not failures:
            logger.info(
                "No compatible observers for event",
                extra={**event.to_log_dict(), "registered": len(self._observers)},
            )
            return

        # sorted() is stable, so equal priorities keep subscription order
        ordered = sorted(compatible, key=lambda o: o.priority, reverse=True)

        logger.info(
            "Publishing event",
            extra={
                **event.to_log_dict(),
                "observers": [o.observer_name for o in ordered],
            },
        )

        for observer in ordered:
            try:
                observer.handle(event)
            except Exception as e:
                logger.error(
                    "Observer failed to process event",
                    extra={
                        **event.to_log_dict(),
                        "observer": observer.observer_name,
                        "error": str(e),
                    },
                    exc_info=True,
                )
                failures.append(ObserverFailure(observer.observer_name, event, e))
                # Continue with the remaining observers
                continue

            logger.debug(
                "Observer processed event",
                extra={"event_id": str(event.event_id), "observer": observer.observer_name},
            )

        if failures:
            raise EventPublishingError(
                f"Errors occurred while publishing event {event.event_type.value}: "
                f"{len(failures)} observer(s) failed",
                event=event,
                failures=failures,
            )

        logger.debug(
            "Event processed",
            extra={"event_id": str(event.event_id), "observer_count": len(ordered)},
        )

    def publish_async(self, event: DomainEvent) -> Future:
        """Publish on the worker pool and return immediately.

        The returned future resolves once every observer ran, or raises
        the same ``EventPublishingError`` that ``publish`` would.

        Raises:
            InvalidArgumentError: If event is None or not a DomainEvent
        """
        self._validate_event(event)
        logger.debug("Publishing event asynchronously", extra=event.to_log_dict())
        return self.executor.submit(self.publish, event)

    def shutdown(self, wait: bool = True, timeout: float | None = None) -> None:
        """Stop the async pool. Queued, not yet started publishes are cancelled.

        Args:
            wait: Wait for running publishes to finish
            timeout: Upper bound on that wait; None waits indefinitely

        A later ``publish_async`` starts a fresh pool.
        """
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait, timeout=timeout)

    @staticmethod
    def _validate_event(event: DomainEvent) -> None:
        if event is None:
            raise InvalidArgumentError("Event cannot be None")
        if not isinstance(event, DomainEvent):
            raise InvalidArgumentError(f"Expected a DomainEvent, got {type(event).__name__}")

    @staticmethod
    def _accepts(
        observer: EventObserver,
        event: DomainEvent,
        failures: list[ObserverFailure],
    ) -> bool:
        """Evaluate ``can_handle``; a raising predicate counts as an observer failure."""
        try:
            return bool(observer.can_handle(event))
        except Exception as e:
            logger.error(
                "Observer can_handle raised",
                extra={
                    "event_id": str(event.event_id),
                    "observer": observer.observer_name,
                    "error": str(e),
                },
                exc_info=True,
            )
            failures.append(ObserverFailure(observer.observer_name, event, e))
            return False
