"""Error taxonomy shared by the store, client, service, and HTTP layer."""

from __future__ import annotations

from typing import Any, Optional


class ChatError(Exception):
    """Base class for failures that map onto an HTTP-style response."""

    status_code: int = 500
    reason: str = "internal_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    @property
    def detail(self) -> Any:
        return self.message


class ValidationError(ChatError):
    status_code = 400
    reason = "validation_error"


class NotFoundError(ChatError):
    status_code = 404
    reason = "not_found"


class ProviderError(ChatError):
    """The completion provider call failed.

    ``status_code`` is the upstream status when the provider answered, or 502
    for network-level failures and unusable responses.
    """

    reason = "provider_error"

    def __init__(self, message: str, *, status_code: int = 502, payload: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def detail(self) -> Any:
        return self.payload if self.payload is not None else self.message


class StoreError(ChatError):
    """Persistence failure. The detail never carries storage internals."""

    reason = "store_error"

    @property
    def detail(self) -> Any:
        return "Internal server error"


class ConfigurationError(RuntimeError):
    """Required startup configuration is missing or invalid."""
