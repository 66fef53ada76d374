"""Contract of the external task list / calendar providers."""

from datetime import datetime
from typing import ClassVar, Protocol, runtime_checkable


class ProviderError(Exception):
    """An external provider call failed.

    ``retryable`` tells the retry classifier how to treat the failure;
    ``None`` leaves the decision to the configured exception lists.
    """

    retryable: ClassVar[bool | None] = None

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientProviderError(ProviderError):
    """Temporary failure (network, throttling, 5xx); worth retrying."""

    retryable: ClassVar[bool | None] = True


class PermanentProviderError(ProviderError):
    """Failure that will not go away by retrying (bad request, auth, 404)."""

    retryable: ClassVar[bool | None] = False


@runtime_checkable
class ExternalItemProvider(Protocol):
    """An external system holding one item per synced card."""

    def create_or_update_external_item(
        self,
        title: str,
        notes: str,
        due_date: datetime | None,
        list_or_calendar_id: str,
        external_id: str | None = None,
    ) -> str:
        """Create the item, or update it when ``external_id`` is given.

        Returns:
            The provider's identifier for the item
        """
        ...

    def delete_external_item(self, external_id: str, list_or_calendar_id: str) -> None:
        """Delete a previously created item."""
        ...
