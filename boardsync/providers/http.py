"""REST-backed external item provider.

Talks to a task/calendar gateway exposing:

    POST   {base}/lists/{list_id}/items               -> {"id": "..."}
    PUT    {base}/lists/{list_id}/items/{item_id}     -> {"id": "..."}
    DELETE {base}/lists/{list_id}/items/{item_id}

Transport failures, 429 and 5xx responses are transient; any other
4xx is permanent.
"""

import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from boardsync.providers.base import PermanentProviderError, TransientProviderError

logger = logging.getLogger(__name__)


class HttpExternalItemProvider:
    """ExternalItemProvider implementation over httpx."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            base_url: Gateway base URL
            timeout: Request timeout in seconds
            transport: Optional transport (tests use httpx.MockTransport)
        """
        if not base_url:
            raise ValueError("base_url is required for HttpExternalItemProvider")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    @classmethod
    def from_settings(cls, settings) -> "HttpExternalItemProvider":
        return cls(
            base_url=settings.EXTERNAL_PROVIDER_URL,
            timeout=settings.EXTERNAL_PROVIDER_TIMEOUT_SECONDS,
        )

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def create_or_update_external_item(
        self,
        title: str,
        notes: str,
        due_date: datetime | None,
        list_or_calendar_id: str,
        external_id: str | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "title": title,
            "notes": notes,
            "due": due_date.isoformat() if due_date else None,
        }
        items_path = f"/lists/{quote(list_or_calendar_id, safe='')}/items"

        if external_id:
            response = self._request("PUT", f"{items_path}/{quote(external_id, safe='')}", payload)
        else:
            response = self._request("POST", items_path, payload)

        try:
            item_id = response.json()["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise PermanentProviderError(
                f"Provider response carried no item id: {response.text[:200]}",
                status_code=response.status_code,
            ) from e

        logger.info(
            "External item saved",
            extra={"list_id": list_or_calendar_id, "external_id": item_id, "updated": bool(external_id)},
        )
        return str(item_id)

    def delete_external_item(self, external_id: str, list_or_calendar_id: str) -> None:
        path = (
            f"/lists/{quote(list_or_calendar_id, safe='')}"
            f"/items/{quote(external_id, safe='')}"
        )
        try:
            self._request("DELETE", path)
        except PermanentProviderError as e:
            if e.status_code == 404:
                logger.warning(
                    "External item already gone",
                    extra={"list_id": list_or_calendar_id, "external_id": external_id},
                )
                return
            raise

        logger.info(
            "External item deleted",
            extra={"list_id": list_or_calendar_id, "external_id": external_id},
        )

    def _request(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> httpx.Response:
        try:
            response = self.client.request(method, path, json=payload)
            response.raise_for_status()
        except httpx.TransportError as e:
            raise TransientProviderError(f"{method} {path} failed: {e}") from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            message = f"{method} {path} returned {status_code}: {e.response.text[:200]}"
            if status_code == 429 or status_code >= 500:
                raise TransientProviderError(message, status_code=status_code) from e
            raise PermanentProviderError(message, status_code=status_code) from e
        return response

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None
