"""HTTP dispatcher for shaped webhook requests.

Sends requests with httpx, serializes them per rate-limit bucket, waits out
429 responses, and maps failures onto the client's error types.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Protocol

import httpx

from src.webhook.errors import RequestError, TransportError
from src.webhook.models import DispatchResponse, JsonBody, MultipartBody, RequestBody
from src.webhook.rate_limiter import BucketId, BucketRateLimiter
from src.webhook.routes import BucketKey, HTTPMethod

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_BACKOFF_CAP_SECONDS = 30
_DEFAULT_TIMEOUT_SECONDS = 30.0


class Dispatcher(Protocol):
    async def dispatch(
        self,
        bucket_key: BucketKey,
        resource_id: int | str | None,
        method: HTTPMethod,
        url: str,
        body: RequestBody | None,
        headers: dict[str, str],
    ) -> DispatchResponse: ...


class HttpxDispatcher:
    """Dispatcher backed by an ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = _MAX_RETRIES,
        rate_limiter: BucketRateLimiter | None = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(verify=True, timeout=timeout)
        self._max_retries = max_retries
        self._limiter = rate_limiter or BucketRateLimiter()

    @classmethod
    def from_env(cls) -> HttpxDispatcher:
        """Create a dispatcher with configuration from environment variables."""
        timeout = float(os.environ.get("WEBHOOK_HTTP_TIMEOUT", str(_DEFAULT_TIMEOUT_SECONDS)))
        max_retries = int(os.environ.get("WEBHOOK_MAX_RETRIES", str(_MAX_RETRIES)))
        return cls(timeout=timeout, max_retries=max_retries)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpxDispatcher:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def dispatch(
        self,
        bucket_key: BucketKey,
        resource_id: int | str | None,
        method: HTTPMethod,
        url: str,
        body: RequestBody | None,
        headers: dict[str, str],
    ) -> DispatchResponse:
        bucket: BucketId = (
            BucketKey(bucket_key).value,
            None if resource_id is None else str(resource_id),
        )

        async with self._limiter.hold(bucket):
            for attempt in range(self._max_retries + 1):
                delay = self._limiter.delay(bucket)
                if delay > 0:
                    logger.debug("Bucket %s exhausted, waiting %.2fs", bucket[0], delay)
                    await asyncio.sleep(delay)

                resp = await self._send(method, url, body, headers)
                self._limiter.update(bucket, resp.headers)

                if resp.status_code != 429 or attempt >= self._max_retries:
                    break
                wait = min(_retry_after(resp), _BACKOFF_CAP_SECONDS)
                logger.warning(
                    "Rate limited on bucket %s (attempt %d), retrying in %.2fs",
                    bucket[0], attempt + 1, wait,
                )
                await asyncio.sleep(wait)

        if resp.status_code >= 400:
            raise RequestError(resp.status_code, _decode_error(resp))
        return DispatchResponse(
            status_code=resp.status_code,
            content=resp.content,
            headers=dict(resp.headers),
        )

    async def _send(
        self,
        method: HTTPMethod,
        url: str,
        body: RequestBody | None,
        headers: dict[str, str],
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {"headers": headers}
        if isinstance(body, JsonBody):
            kwargs["content"] = body.content
        elif isinstance(body, MultipartBody):
            kwargs["data"] = {"payload_json": body.payload_json}
            kwargs["files"] = {
                "file": (body.file.filename, body.file.data, body.file.content_type),
            }

        try:
            return await self._client.request(HTTPMethod(method).value, url, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("Transport failure on %s request: %s", HTTPMethod(method).value, exc)
            raise TransportError(str(exc)) from exc


def _retry_after(resp: httpx.Response) -> float:
    """Seconds to wait after a 429, from the JSON body or the Retry-After header."""
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and "retry_after" in payload:
        try:
            return float(payload["retry_after"])
        except (TypeError, ValueError):
            pass
    header = resp.headers.get("retry-after")
    if header is not None:
        try:
            return float(header)
        except ValueError:
            pass
    return 1.0


def _decode_error(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text
