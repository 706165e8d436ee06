"""Endpoint descriptors and rate-limit bucket keys for webhook resources."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BucketKey(str, Enum):
    """Groups endpoints that share a rate-limit counter on the remote platform."""

    WEBHOOKS_WID = "webhooks_wid"
    WEBHOOKS_WID_MESSAGES = "webhooks_wid_messages"
    WEBHOOKS_WID_MESSAGES_MID = "webhooks_wid_messages_mid"
    WEBHOOKS_ID = "webhooks_id"
    INTERACTIONS_IID_TOKEN_CALLBACK = "interactions_iid_token_callback"


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PATCH = "PATCH"
    DELETE = "DELETE"


ORIGINAL_MESSAGE = "@original"


@dataclass(frozen=True)
class Route:
    """Fixed (bucket, method, path template) triple for one operation.

    ``{auth}`` in the template is replaced by the auth context's path
    fragment: empty for owner-token calls, ``/{token}`` otherwise.
    """

    bucket: BucketKey
    method: HTTPMethod
    path: str

    def compile(self, api_base: str, **params: object) -> str:
        return api_base.rstrip("/") + self.path.format(**params)


WEBHOOK = "/webhooks/{webhook_id}{auth}"
WEBHOOK_MESSAGE = "/webhooks/{webhook_id}{auth}/messages/{message_id}"
INTERACTION_CALLBACK = "/interactions/{interaction_id}{auth}/callback"

GET_WEBHOOK = Route(BucketKey.WEBHOOKS_WID, HTTPMethod.GET, WEBHOOK)
EXECUTE_WEBHOOK = Route(BucketKey.WEBHOOKS_WID, HTTPMethod.POST, WEBHOOK + "?wait={wait}")
UPDATE_WEBHOOK = Route(BucketKey.WEBHOOKS_WID, HTTPMethod.PATCH, WEBHOOK)
DELETE_WEBHOOK = Route(BucketKey.WEBHOOKS_WID, HTTPMethod.DELETE, WEBHOOK)

GET_MESSAGE = Route(BucketKey.WEBHOOKS_WID_MESSAGES_MID, HTTPMethod.GET, WEBHOOK_MESSAGE)
TOKEN_EDIT_MESSAGE = Route(BucketKey.WEBHOOKS_WID_MESSAGES, HTTPMethod.PATCH, WEBHOOK_MESSAGE)
TOKEN_DELETE_MESSAGE = Route(BucketKey.WEBHOOKS_WID_MESSAGES, HTTPMethod.DELETE, WEBHOOK_MESSAGE)
EDIT_WEBHOOK_MESSAGE = Route(BucketKey.WEBHOOKS_WID, HTTPMethod.PATCH, WEBHOOK_MESSAGE)
DELETE_WEBHOOK_MESSAGE = Route(BucketKey.WEBHOOKS_ID, HTTPMethod.DELETE, WEBHOOK_MESSAGE)

INTERACTION_RESPONSE = Route(
    BucketKey.INTERACTIONS_IID_TOKEN_CALLBACK, HTTPMethod.POST, INTERACTION_CALLBACK,
)
