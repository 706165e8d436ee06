"""Shared Pydantic data models for webhook and interaction payloads."""

from __future__ import annotations

from enum import Enum, IntEnum, IntFlag

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class InteractionCallbackType(IntEnum):
    PONG = 1
    CHANNEL_MESSAGE_WITH_SOURCE = 4
    DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE = 5
    DEFERRED_UPDATE_MESSAGE = 6
    UPDATE_MESSAGE = 7


class MessageFlags(IntFlag):
    SUPPRESS_EMBEDS = 1 << 2
    EPHEMERAL = 1 << 6
    SUPPRESS_NOTIFICATIONS = 1 << 12


class AllowedMentionType(str, Enum):
    ROLES = "roles"
    USERS = "users"
    EVERYONE = "everyone"


# --- Embed Models ---


class EmbedField(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: str
    inline: bool | None = None


class EmbedFooter(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    icon_url: str | None = None


class EmbedAuthor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    url: str | None = None
    icon_url: str | None = None


class EmbedMedia(BaseModel):
    """Image or thumbnail reference."""

    model_config = ConfigDict(frozen=True)

    url: str
    height: int | None = None
    width: int | None = None


class Embed(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str | None = None
    description: str | None = None
    url: str | None = None
    timestamp: str | None = None  # ISO8601
    color: int | None = Field(default=None, ge=0, le=0xFFFFFF)
    footer: EmbedFooter | None = None
    image: EmbedMedia | None = None
    thumbnail: EmbedMedia | None = None
    author: EmbedAuthor | None = None
    fields: list[EmbedField] | None = None


# --- Mentions ---


class AllowedMentions(BaseModel):
    """Controls which mentions in the content may ping.

    An empty ``parse`` list suppresses every mention.
    """

    model_config = ConfigDict(frozen=True)

    parse: list[AllowedMentionType] | None = None
    roles: list[str] | None = None
    users: list[str] | None = None
    replied_user: bool | None = None


# --- Message Payloads ---


class WebhookPayload(BaseModel):
    """JSON fields of an execute-webhook request."""

    model_config = ConfigDict(frozen=True)

    content: str | None = None
    username: str | None = None
    avatar_url: str | None = None
    tts: bool | None = None
    embeds: list[Embed] | None = None
    allowed_mentions: AllowedMentions | None = None
    flags: int | None = None
