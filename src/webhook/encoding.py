"""Request body encoding: JSON vs. multipart, and field compaction."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel

from src.webhook.errors import EncodingError
from src.webhook.models import Attachment, JsonBody, MultipartBody, RequestBody

JSON_HEADERS = {"Content-Type": "application/json"}


def to_jsonable(value: Any) -> Any:
    """Recursively convert pydantic models and enums into plain JSON values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def encode_json(data: Any) -> str:
    try:
        return json.dumps(to_jsonable(data), separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError, RecursionError) as exc:
        raise EncodingError(f"Request body is not JSON serializable: {exc}") from exc


def compact(fields: dict[str, Any]) -> dict[str, Any]:
    """Drop fields whose value is None."""
    return {k: v for k, v in fields.items() if v is not None}


def json_body(data: Any) -> tuple[JsonBody, dict[str, str]]:
    """Encode ``data`` verbatim as a JSON body; explicit nulls are kept."""
    return JsonBody(encode_json(data).encode()), dict(JSON_HEADERS)


def payload_body(
    fields: dict[str, Any], file: Attachment | None = None,
) -> tuple[RequestBody, dict[str, str]]:
    """Resolve the body variant for a message payload.

    With a file the JSON fields travel in the ``payload_json`` part and no
    Content-Type header is set, since the transport frames the multipart
    body itself.
    """
    if file is None:
        return json_body(fields)
    return MultipartBody(payload_json=encode_json(fields), file=file), {}
