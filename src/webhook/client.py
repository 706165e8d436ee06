"""Webhook resource client.

One coroutine per webhook / interaction-response endpoint. Each call shapes
exactly one dispatch request (bucket key, resource id, method, URL, body,
headers) and returns the dispatcher's response unchanged. Rate limiting,
retries and transport live in the dispatcher.
"""

from __future__ import annotations

import functools
import logging
import os
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar
from urllib.parse import quote

from src.models import AllowedMentions, Embed, WebhookPayload
from src.webhook import routes
from src.webhook.auth import OwnerAuth, TokenAuth, WebhookAuth
from src.webhook.encoding import compact, json_body, payload_body
from src.webhook.errors import WebhookAPIError
from src.webhook.models import Attachment, DispatchResponse, RequestBody

if TYPE_CHECKING:
    from src.webhook.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://discord.com/api/v10"
AUDIT_LOG_REASON_HEADER = "X-Audit-Log-Reason"

Snowflake = int | str
EmbedsArg = Sequence[Embed | dict[str, Any]] | None
MentionsArg = AllowedMentions | dict[str, Any] | None

P = ParamSpec("P")
R = TypeVar("R")


def _operation(
    func: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    """Tag errors escaping a client call with the call's name."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await func(*args, **kwargs)
        except WebhookAPIError as exc:
            exc.operation = func.__name__
            raise

    return wrapper


class WebhookClient:
    """Shapes webhook and interaction-response requests for a dispatcher."""

    def __init__(self, dispatcher: Dispatcher, api_base: str = DEFAULT_API_BASE) -> None:
        self._dispatcher = dispatcher
        self._api_base = api_base

    @classmethod
    def from_env(cls, dispatcher: Dispatcher | None = None) -> WebhookClient:
        """Create a client with the API base from environment variables."""
        api_base = os.environ.get("WEBHOOK_API_BASE", DEFAULT_API_BASE)
        if dispatcher is None:
            from src.webhook.dispatcher import HttpxDispatcher

            dispatcher = HttpxDispatcher.from_env()
        return cls(dispatcher, api_base=api_base)

    @property
    def api_base(self) -> str:
        return self._api_base

    async def _request(
        self,
        route: routes.Route,
        auth: WebhookAuth,
        resource_id: Snowflake | None,
        *,
        body: RequestBody | None = None,
        headers: dict[str, str] | None = None,
        reason: str | None = None,
        **params: object,
    ) -> DispatchResponse:
        url = route.compile(self._api_base, auth=auth.path_fragment(), **params)
        request_headers = {**auth.headers(), **(headers or {})}
        if reason is not None:
            request_headers[AUDIT_LOG_REASON_HEADER] = quote(reason, safe="")

        logger.debug(
            "Dispatching %s %s (bucket=%s)", route.method.value, route.path, route.bucket.value,
        )
        return await self._dispatcher.dispatch(
            bucket_key=route.bucket,
            resource_id=resource_id,
            method=route.method,
            url=url,
            body=body,
            headers=request_headers,
        )

    # --- Webhooks ---

    @_operation
    async def webhook(self, token: str, webhook_id: Snowflake) -> DispatchResponse:
        """Get a webhook using the owner's token."""
        return await self._request(
            routes.GET_WEBHOOK, OwnerAuth(token), None, webhook_id=webhook_id,
        )

    @_operation
    async def token_webhook(self, webhook_token: str, webhook_id: Snowflake) -> DispatchResponse:
        """Get a webhook using its own token; no Authorization header is sent."""
        return await self._request(
            routes.GET_WEBHOOK, TokenAuth(webhook_token), None, webhook_id=webhook_id,
        )

    @_operation
    async def token_execute_webhook(
        self,
        webhook_token: str,
        webhook_id: Snowflake,
        wait: bool = False,
        content: str | None = None,
        username: str | None = None,
        avatar_url: str | None = None,
        tts: bool | None = None,
        file: Attachment | None = None,
        embeds: EmbedsArg = None,
        allowed_mentions: MentionsArg = None,
        flags: int | None = None,
    ) -> DispatchResponse:
        """Execute a webhook.

        With ``wait`` the response carries the created message, otherwise
        the remote answers with an empty body. Unset fields are left out of
        the payload. A ``file`` switches the body to multipart.
        """
        fields = compact({
            "content": content,
            "username": username,
            "avatar_url": avatar_url,
            "tts": tts,
            "embeds": embeds,
            "allowed_mentions": allowed_mentions,
            "flags": flags,
        })
        body, headers = payload_body(fields, file)
        return await self._request(
            routes.EXECUTE_WEBHOOK,
            TokenAuth(webhook_token),
            webhook_id,
            body=body,
            headers=headers,
            webhook_id=webhook_id,
            wait="true" if wait else "false",
        )

    @_operation
    async def execute(
        self,
        webhook_token: str,
        webhook_id: Snowflake,
        payload: WebhookPayload,
        file: Attachment | None = None,
        wait: bool = False,
    ) -> DispatchResponse:
        """Execute a webhook from a :class:`WebhookPayload`."""
        return await self.token_execute_webhook(
            webhook_token,
            webhook_id,
            wait=wait,
            content=payload.content,
            username=payload.username,
            avatar_url=payload.avatar_url,
            tts=payload.tts,
            file=file,
            embeds=payload.embeds,
            allowed_mentions=payload.allowed_mentions,
            flags=payload.flags,
        )

    @_operation
    async def update_webhook(
        self,
        token: str,
        webhook_id: Snowflake,
        data: dict[str, Any],
        reason: str | None = None,
    ) -> DispatchResponse:
        """Modify a webhook. ``data`` is sent as-is."""
        body, headers = json_body(data)
        return await self._request(
            routes.UPDATE_WEBHOOK,
            OwnerAuth(token),
            webhook_id,
            body=body,
            headers=headers,
            reason=reason,
            webhook_id=webhook_id,
        )

    @_operation
    async def token_update_webhook(
        self,
        webhook_token: str,
        webhook_id: Snowflake,
        data: dict[str, Any],
        reason: str | None = None,
    ) -> DispatchResponse:
        body, headers = json_body(data)
        return await self._request(
            routes.UPDATE_WEBHOOK,
            TokenAuth(webhook_token),
            webhook_id,
            body=body,
            headers=headers,
            reason=reason,
            webhook_id=webhook_id,
        )

    @_operation
    async def delete_webhook(
        self, token: str, webhook_id: Snowflake, reason: str | None = None,
    ) -> DispatchResponse:
        return await self._request(
            routes.DELETE_WEBHOOK, OwnerAuth(token), webhook_id,
            reason=reason, webhook_id=webhook_id,
        )

    @_operation
    async def token_delete_webhook(
        self, webhook_token: str, webhook_id: Snowflake, reason: str | None = None,
    ) -> DispatchResponse:
        return await self._request(
            routes.DELETE_WEBHOOK, TokenAuth(webhook_token), webhook_id,
            reason=reason, webhook_id=webhook_id,
        )

    # --- Webhook messages ---

    @_operation
    async def token_get_message(
        self, webhook_token: str, webhook_id: Snowflake, message_id: Snowflake,
    ) -> DispatchResponse:
        """Get a message previously sent by the webhook."""
        return await self._request(
            routes.GET_MESSAGE, TokenAuth(webhook_token), webhook_id,
            webhook_id=webhook_id, message_id=message_id,
        )

    @_operation
    async def token_edit_message(
        self,
        webhook_token: str,
        webhook_id: Snowflake,
        message_id: Snowflake,
        content: str | None = None,
        embeds: EmbedsArg = None,
        allowed_mentions: MentionsArg = None,
    ) -> DispatchResponse:
        """Edit a webhook message. Unset fields are sent as null, which clears them."""
        body, headers = json_body({
            "content": content,
            "embeds": embeds,
            "allowed_mentions": allowed_mentions,
        })
        return await self._request(
            routes.TOKEN_EDIT_MESSAGE,
            TokenAuth(webhook_token),
            webhook_id,
            body=body,
            headers=headers,
            webhook_id=webhook_id,
            message_id=message_id,
        )

    @_operation
    async def token_delete_message(
        self, webhook_token: str, webhook_id: Snowflake, message_id: Snowflake,
    ) -> DispatchResponse:
        return await self._request(
            routes.TOKEN_DELETE_MESSAGE, TokenAuth(webhook_token), webhook_id,
            webhook_id=webhook_id, message_id=message_id,
        )

    @_operation
    async def edit_webhook_message(
        self,
        webhook_token: str,
        webhook_id: Snowflake,
        message_id: Snowflake,
        *,
        content: str | None = None,
        embeds: EmbedsArg = None,
        allowed_mentions: MentionsArg = None,
    ) -> DispatchResponse:
        """Edit a message created by a webhook.

        Same wire shape as :meth:`token_edit_message` but classified under
        the webhook's own bucket.
        """
        body, headers = json_body({
            "content": content,
            "embeds": embeds,
            "allowed_mentions": allowed_mentions,
        })
        return await self._request(
            routes.EDIT_WEBHOOK_MESSAGE,
            TokenAuth(webhook_token),
            webhook_id,
            body=body,
            headers=headers,
            webhook_id=webhook_id,
            message_id=message_id,
        )

    @_operation
    async def delete_webhook_message(
        self, webhook_token: str, webhook_id: Snowflake, message_id: Snowflake,
    ) -> DispatchResponse:
        # The remote accepts an empty JSON object here.
        body, headers = json_body({})
        return await self._request(
            routes.DELETE_WEBHOOK_MESSAGE,
            TokenAuth(webhook_token),
            webhook_id,
            body=body,
            headers=headers,
            webhook_id=webhook_id,
            message_id=message_id,
        )

    # --- Interactions ---

    @_operation
    async def create_interaction_response(
        self,
        interaction_token: str,
        interaction_id: Snowflake,
        type: int,
        *,
        tts: bool | None = None,
        content: str | None = None,
        embeds: EmbedsArg = None,
        allowed_mentions: MentionsArg = None,
        flags: int | None = None,
    ) -> DispatchResponse:
        """Respond to an interaction.

        Unlike message edits, null fields are dropped from ``data``, and
        ``data`` itself is null when nothing is set.
        """
        data = compact({
            "tts": tts,
            "content": content,
            "embeds": embeds,
            "allowed_mentions": allowed_mentions,
            "flags": flags,
        }) or None
        body, headers = json_body({"type": type, "data": data})
        return await self._request(
            routes.INTERACTION_RESPONSE,
            TokenAuth(interaction_token),
            interaction_id,
            body=body,
            headers=headers,
            interaction_id=interaction_id,
        )

    @_operation
    async def edit_original_interaction_response(
        self,
        interaction_token: str,
        application_id: Snowflake,
        *,
        content: str | None = None,
        embeds: EmbedsArg = None,
        allowed_mentions: MentionsArg = None,
    ) -> DispatchResponse:
        return await self.edit_webhook_message(
            interaction_token,
            application_id,
            routes.ORIGINAL_MESSAGE,
            content=content,
            embeds=embeds,
            allowed_mentions=allowed_mentions,
        )

    @_operation
    async def delete_original_interaction_response(
        self, interaction_token: str, application_id: Snowflake,
    ) -> DispatchResponse:
        return await self.delete_webhook_message(
            interaction_token, application_id, routes.ORIGINAL_MESSAGE,
        )
