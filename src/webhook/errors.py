"""Exceptions raised while shaping or dispatching webhook requests."""

from __future__ import annotations

from typing import Any


class WebhookAPIError(Exception):
    """Base class for webhook client failures.

    ``operation`` names the client call that failed, once the client has
    seen the error.
    """

    operation: str | None = None


class TransportError(WebhookAPIError):
    """Raised when the remote API could not be reached (connect error, timeout)."""


class RequestError(WebhookAPIError):
    """Raised when the remote API rejected a request with a non-success status."""

    def __init__(self, status_code: int, error: Any = None) -> None:
        self.status_code = status_code
        self.error = error
        super().__init__(f"Request failed with status {status_code}: {error}")

    @property
    def code(self) -> int | None:
        """Platform error code from the JSON error body, if any."""
        if isinstance(self.error, dict):
            return self.error.get("code")
        return None


class EncodingError(WebhookAPIError):
    """Raised when a request body cannot be serialized to JSON."""
