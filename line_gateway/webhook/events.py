"""Webhook event models.

Field names follow the platform's camelCase JSON; Python attributes are
snake_case. Unknown fields are ignored and unknown event or message types
parse into ``UnknownEvent`` / ``UnknownMessage`` so a newer webhook schema
never fails a whole delivery.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag
from pydantic.alias_generators import to_camel


class WebhookModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True,
    )


def _tag_or_unknown(known: frozenset[str]):
    def discriminate(value: Any) -> str:
        kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
        return kind if isinstance(kind, str) and kind in known else "unknown"

    return discriminate


# --- Sources ---


class UserSource(WebhookModel):
    type: Literal["user"] = "user"
    user_id: str


class GroupSource(WebhookModel):
    type: Literal["group"] = "group"
    group_id: str
    user_id: str | None = None


class RoomSource(WebhookModel):
    type: Literal["room"] = "room"
    room_id: str
    user_id: str | None = None


Source = Annotated[Union[UserSource, GroupSource, RoomSource], Field(discriminator="type")]


# --- Message contents ---


class ContentProvider(WebhookModel):
    type: Literal["line", "external"]
    original_content_url: str | None = None
    preview_image_url: str | None = None


class TextMessage(WebhookModel):
    type: Literal["text"] = "text"
    id: str
    text: str


class ImageMessage(WebhookModel):
    type: Literal["image"] = "image"
    id: str
    content_provider: ContentProvider


class VideoMessage(WebhookModel):
    type: Literal["video"] = "video"
    id: str
    duration: int | None = None
    content_provider: ContentProvider


class AudioMessage(WebhookModel):
    type: Literal["audio"] = "audio"
    id: str
    duration: int | None = None
    content_provider: ContentProvider


class FileMessage(WebhookModel):
    type: Literal["file"] = "file"
    id: str
    file_name: str
    file_size: int


class LocationMessage(WebhookModel):
    type: Literal["location"] = "location"
    id: str
    title: str | None = None
    address: str | None = None
    latitude: float
    longitude: float


class StickerMessage(WebhookModel):
    type: Literal["sticker"] = "sticker"
    id: str
    package_id: str
    sticker_id: str


class UnknownMessage(WebhookModel):
    """A message type this gateway does not model; raw fields kept as extras."""

    model_config = ConfigDict(extra="allow")

    type: str
    id: str | None = None


_MESSAGE_TYPES = frozenset({"text", "image", "video", "audio", "file", "location", "sticker"})

MessageContent = Annotated[
    Union[
        Annotated[TextMessage, Tag("text")],
        Annotated[ImageMessage, Tag("image")],
        Annotated[VideoMessage, Tag("video")],
        Annotated[AudioMessage, Tag("audio")],
        Annotated[FileMessage, Tag("file")],
        Annotated[LocationMessage, Tag("location")],
        Annotated[StickerMessage, Tag("sticker")],
        Annotated[UnknownMessage, Tag("unknown")],
    ],
    Discriminator(_tag_or_unknown(_MESSAGE_TYPES)),
]


# --- Event payloads ---


class Members(WebhookModel):
    members: list[Source]


class PostbackParams(WebhookModel):
    """Values picked through a datetime picker action; at most one is set."""

    date: str | None = None
    time: str | None = None
    datetime: str | None = None


class Postback(WebhookModel):
    data: str
    params: PostbackParams | None = None


class Beacon(WebhookModel):
    type: Literal["enter", "leave", "banner"]
    hwid: str
    dm: str | None = None


class Link(WebhookModel):
    result: Literal["ok", "failed"]
    nonce: str | None = None


class Things(WebhookModel):
    type: Literal["link", "unlink"]
    device_id: str


# --- Events ---


class EventBase(WebhookModel):
    """Properties shared by every webhook event."""

    timestamp: int
    source: Source
    reply_token: str | None = None
    mode: str | None = None
    webhook_event_id: str | None = None


class MessageEvent(EventBase):
    type: Literal["message"] = "message"
    message: MessageContent


class FollowEvent(EventBase):
    type: Literal["follow"] = "follow"


class UnfollowEvent(EventBase):
    type: Literal["unfollow"] = "unfollow"


class JoinEvent(EventBase):
    type: Literal["join"] = "join"


class LeaveEvent(EventBase):
    type: Literal["leave"] = "leave"


class MemberJoinedEvent(EventBase):
    type: Literal["memberJoined"] = "memberJoined"
    joined: Members


class MemberLeftEvent(EventBase):
    type: Literal["memberLeft"] = "memberLeft"
    left: Members


class PostbackEvent(EventBase):
    type: Literal["postback"] = "postback"
    postback: Postback


class BeaconEvent(EventBase):
    type: Literal["beacon"] = "beacon"
    beacon: Beacon


class AccountLinkEvent(EventBase):
    type: Literal["accountLink"] = "accountLink"
    link: Link


class ThingsEvent(EventBase):
    type: Literal["things"] = "things"
    things: Things


class UnknownEvent(EventBase):
    """An event type this gateway does not model; raw fields kept as extras."""

    model_config = ConfigDict(extra="allow")

    type: str
    timestamp: int | None = None
    source: Source | None = None


_EVENT_TYPES = frozenset({
    "message", "follow", "unfollow", "join", "leave", "memberJoined",
    "memberLeft", "postback", "beacon", "accountLink", "things",
})

WebhookEvent = Annotated[
    Union[
        Annotated[MessageEvent, Tag("message")],
        Annotated[FollowEvent, Tag("follow")],
        Annotated[UnfollowEvent, Tag("unfollow")],
        Annotated[JoinEvent, Tag("join")],
        Annotated[LeaveEvent, Tag("leave")],
        Annotated[MemberJoinedEvent, Tag("memberJoined")],
        Annotated[MemberLeftEvent, Tag("memberLeft")],
        Annotated[PostbackEvent, Tag("postback")],
        Annotated[BeaconEvent, Tag("beacon")],
        Annotated[AccountLinkEvent, Tag("accountLink")],
        Annotated[ThingsEvent, Tag("things")],
        Annotated[UnknownEvent, Tag("unknown")],
    ],
    Discriminator(_tag_or_unknown(_EVENT_TYPES)),
]
