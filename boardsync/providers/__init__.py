"""External task list / calendar providers called by the sync observers."""

from boardsync.providers.base import (
    ExternalItemProvider,
    PermanentProviderError,
    ProviderError,
    TransientProviderError,
)
from boardsync.providers.http import HttpExternalItemProvider

__all__ = [
    "ExternalItemProvider",
    "ProviderError",
    "TransientProviderError",
    "PermanentProviderError",
    "HttpExternalItemProvider",
]
