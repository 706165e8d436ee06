"""Tests for the httpx-backed dispatcher."""

from __future__ import annotations

import json
from collections.abc import Callable
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from src.webhook.dispatcher import HttpxDispatcher
from src.webhook.errors import RequestError, TransportError
from src.webhook.models import Attachment, JsonBody, MultipartBody
from src.webhook.rate_limiter import BucketRateLimiter
from src.webhook.routes import BucketKey, HTTPMethod

URL = "https://api.test/v10/webhooks/1/tok"


def _dispatcher(
    handler: Callable[[httpx.Request], httpx.Response], **kwargs: object,
) -> HttpxDispatcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxDispatcher(client=client, **kwargs)  # type: ignore[arg-type]


async def _dispatch(dispatcher: HttpxDispatcher, **overrides: object):
    request: dict[str, object] = {
        "bucket_key": BucketKey.WEBHOOKS_WID,
        "resource_id": "1",
        "method": HTTPMethod.GET,
        "url": URL,
        "body": None,
        "headers": {},
    }
    request.update(overrides)
    return await dispatcher.dispatch(**request)  # type: ignore[arg-type]


class TestRequestEncoding:
    @pytest.mark.asyncio
    async def test_json_body_sent_as_content(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "9"})

        dispatcher = _dispatcher(handler)
        resp = await _dispatch(
            dispatcher,
            method=HTTPMethod.POST,
            body=JsonBody(b'{"content":"hi"}'),
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 200
        assert resp.json() == {"id": "9"}
        assert seen[0].method == "POST"
        assert seen[0].headers["content-type"] == "application/json"
        assert json.loads(seen[0].content) == {"content": "hi"}

    @pytest.mark.asyncio
    async def test_multipart_body_has_payload_json_part(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            request.read()
            seen.append(request)
            return httpx.Response(204)

        dispatcher = _dispatcher(handler)
        body = MultipartBody(
            payload_json='{"content":"log"}',
            file=Attachment(filename="out.txt", data=b"line1", content_type="text/plain"),
        )
        resp = await _dispatch(dispatcher, method=HTTPMethod.POST, body=body)

        assert resp.json() is None
        request = seen[0]
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'name="payload_json"' in request.content
        assert b'{"content":"log"}' in request.content
        assert b'filename="out.txt"' in request.content
        assert b"line1" in request.content

    @pytest.mark.asyncio
    async def test_headers_forwarded(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        dispatcher = _dispatcher(handler)
        await _dispatch(
            dispatcher,
            method=HTTPMethod.DELETE,
            headers={"Authorization": "Bot x", "X-Audit-Log-Reason": "gone"},
        )
        assert seen[0].headers["authorization"] == "Bot x"
        assert seen[0].headers["x-audit-log-reason"] == "gone"


class TestErrors:
    @pytest.mark.asyncio
    async def test_client_error_raises_request_error_with_payload(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Unknown Webhook", "code": 10015})

        with pytest.raises(RequestError) as exc_info:
            await _dispatch(_dispatcher(handler))
        assert exc_info.value.status_code == 404
        assert exc_info.value.error == {"message": "Unknown Webhook", "code": 10015}
        assert exc_info.value.code == 10015

    @pytest.mark.asyncio
    async def test_non_json_error_body_kept_as_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(RequestError) as exc_info:
            await _dispatch(_dispatcher(handler))
        assert exc_info.value.error == "Bad Gateway"
        assert exc_info.value.code is None

    @pytest.mark.asyncio
    async def test_connect_error_raises_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError):
            await _dispatch(_dispatcher(handler))

    @pytest.mark.asyncio
    async def test_timeout_raises_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TransportError):
            await _dispatch(_dispatcher(handler))


class TestRateLimitRetries:
    @pytest.mark.asyncio
    async def test_retries_after_429(self) -> None:
        responses = iter([
            httpx.Response(429, json={"retry_after": 0.5, "global": False}),
            httpx.Response(200, json={"id": "1"}),
        ])
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return next(responses)

        with patch("src.webhook.dispatcher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            resp = await _dispatch(_dispatcher(handler))

        assert resp.status_code == 200
        assert len(calls) == 2
        sleep.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    async def test_retry_after_header_used_without_json(self) -> None:
        responses = iter([
            httpx.Response(429, headers={"Retry-After": "2"}),
            httpx.Response(204),
        ])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        with patch("src.webhook.dispatcher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await _dispatch(_dispatcher(handler))

        sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_non_numeric_retry_after_falls_back_to_default(self) -> None:
        responses = iter([
            httpx.Response(429, json={"retry_after": "soon"}),
            httpx.Response(204),
        ])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        with patch("src.webhook.dispatcher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            resp = await _dispatch(_dispatcher(handler))

        assert resp.status_code == 204
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_non_numeric_retry_after_uses_header(self) -> None:
        responses = iter([
            httpx.Response(429, json={"retry_after": None}, headers={"Retry-After": "3"}),
            httpx.Response(204),
        ])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        with patch("src.webhook.dispatcher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await _dispatch(_dispatcher(handler))

        sleep.assert_awaited_once_with(3.0)

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429, json={"retry_after": 1})

        with patch("src.webhook.dispatcher.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(RequestError) as exc_info:
                await _dispatch(_dispatcher(handler, max_retries=2))

        assert exc_info.value.status_code == 429
        # 1 initial + 2 retries
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_wait_capped_at_30_seconds(self) -> None:
        responses = iter([
            httpx.Response(429, json={"retry_after": 600}),
            httpx.Response(204),
        ])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        with patch("src.webhook.dispatcher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await _dispatch(_dispatcher(handler))

        sleep.assert_awaited_once_with(30)

    @pytest.mark.asyncio
    async def test_no_retry_on_other_client_errors(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={"message": "Invalid Form Body"})

        with pytest.raises(RequestError):
            await _dispatch(_dispatcher(handler))
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_exhausted_bucket_delays_next_request(self) -> None:
        responses = iter([
            httpx.Response(
                200,
                headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset-After": "5"},
            ),
            httpx.Response(200),
        ])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        dispatcher = _dispatcher(handler)
        with patch("src.webhook.dispatcher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await _dispatch(dispatcher)
            sleep.assert_not_awaited()
            await _dispatch(dispatcher)

        sleep.assert_awaited_once()
        assert 0 < sleep.await_args.args[0] <= 5

    @pytest.mark.asyncio
    async def test_released_buckets_do_not_accumulate(self) -> None:
        limiter = BucketRateLimiter()
        dispatcher = _dispatcher(lambda r: httpx.Response(204), rate_limiter=limiter)

        for i in range(1000):
            await _dispatch(
                dispatcher,
                bucket_key=BucketKey.INTERACTIONS_IID_TOKEN_CALLBACK,
                resource_id=str(i),
                method=HTTPMethod.POST,
            )

        assert limiter.bucket_count == 0


class TestConfiguration:
    def test_negative_max_retries_rejected(self) -> None:
        with pytest.raises(ValueError, match="max_retries"):
            HttpxDispatcher(max_retries=-1)

    @pytest.mark.asyncio
    async def test_zero_max_retries_sends_once(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429, json={"retry_after": 1})

        with patch("src.webhook.dispatcher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(RequestError):
                await _dispatch(_dispatcher(handler, max_retries=0))

        assert len(calls) == 1
        sleep.assert_not_awaited()

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEBHOOK_MAX_RETRIES", "5")
        monkeypatch.setenv("WEBHOOK_HTTP_TIMEOUT", "12.5")
        dispatcher = HttpxDispatcher.from_env()
        assert dispatcher._max_retries == 5
        assert dispatcher._client.timeout.read == 12.5

    @pytest.mark.asyncio
    async def test_does_not_close_injected_client(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(204)))
        async with HttpxDispatcher(client=client):
            pass
        assert not client.is_closed
        await client.aclose()
