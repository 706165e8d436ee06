"""Authentication contexts for webhook calls.

Owner-authenticated calls send the bot token in the ``Authorization``
header. Token-authenticated calls embed the webhook (or interaction) token
in the URL path and send no header. A call uses exactly one of the two.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class WebhookAuth(Protocol):
    def path_fragment(self) -> str:
        """Path segment inserted after the webhook id."""
        ...

    def headers(self) -> dict[str, str]:
        """Headers the auth mode contributes."""
        ...


@dataclass(frozen=True)
class OwnerAuth:
    """Bot/application token sent as the ``Authorization`` header."""

    token: str

    def path_fragment(self) -> str:
        return ""

    def headers(self) -> dict[str, str]:
        return {"Authorization": self.token}

    def __repr__(self) -> str:
        return "OwnerAuth(token=***)"


@dataclass(frozen=True)
class TokenAuth:
    """Webhook or interaction token embedded in the URL path."""

    webhook_token: str

    def path_fragment(self) -> str:
        return f"/{self.webhook_token}"

    def headers(self) -> dict[str, str]:
        return {}

    def __repr__(self) -> str:
        return "TokenAuth(webhook_token=***)"
