"""Shared test fixtures for the webhook resource client."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.webhook.client import WebhookClient
from src.webhook.models import DispatchResponse

API_BASE = "https://api.test/v10"
WEBHOOK_ID = "111"
WEBHOOK_TOKEN = "wh-token_AbC.123"
BOT_TOKEN = "Bot owner-token"


@pytest.fixture
def dispatcher() -> AsyncMock:
    """Dispatcher double that records calls and answers 200 with a small JSON body."""
    mock = AsyncMock()
    mock.dispatch.return_value = DispatchResponse(
        status_code=200, content=b'{"id": "999"}',
    )
    return mock


@pytest.fixture
def client(dispatcher: AsyncMock) -> WebhookClient:
    return WebhookClient(dispatcher, api_base=API_BASE)


# --- Helpers ---


def sent(dispatcher: AsyncMock) -> dict[str, Any]:
    """Keyword arguments of the single dispatch call made so far."""
    dispatcher.dispatch.assert_awaited_once()
    return dict(dispatcher.dispatch.await_args.kwargs)


def sent_json(dispatcher: AsyncMock) -> Any:
    """Decoded JSON body of the single dispatch call made so far."""
    return json.loads(sent(dispatcher)["body"].content)
