"""Data models for the webhook request pipeline."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Attachment:
    """File uploaded alongside an execute-webhook request."""

    filename: str
    data: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class JsonBody:
    """Standalone JSON request body."""

    content: bytes


@dataclass(frozen=True)
class MultipartBody:
    """Multipart request body: JSON fields under ``payload_json`` plus a file part."""

    payload_json: str
    file: Attachment


RequestBody = JsonBody | MultipartBody


@dataclass
class DispatchResponse:
    """Successful response returned by a dispatcher."""

    status_code: int
    content: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        """Decode the body; ``None`` when the remote sent nothing (204, wait=false)."""
        if not self.content:
            return None
        return json.loads(self.content)
