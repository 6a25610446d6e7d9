"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- stored entities (`Notice`, `Comment`, `ChatRoom`, `ChatMessage`, `User`)
- create payloads sent by callers (`NoticeCreate`, `CommentCreate`, ...)

Wire format:
- Stored JSON uses camelCase keys (`authorId`, `rsvpList`, `photoURL`); Python attributes
  are snake_case. Models accept either spelling and `to_wire()` emits camelCase.
- Timestamps stay ISO-8601 strings, exactly as stored.
- List-typed fields accept the shapes the realtime backend returns (missing, arrays,
  integer-keyed objects, push-id keyed objects) and normalize them to lists in key order.

Only the fields needed to render an entity at all are required; a snapshot entry that
fails validation is dropped by the reader, not surfaced to callers. Nested extras degrade
instead: malformed comments are dropped one by one, a malformed `lastMessage` reads as
None and a location without coordinates reads as no location.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from noticeboard.core.geo import GeoPoint
from noticeboard.core.time import parse_timestamp
from noticeboard.store.backend import as_sequence

logger = logging.getLogger(__name__)

NoticeType = Literal["event", "alert", "news"]
Priority = Literal["low", "medium", "high", "emergency"]
RoomType = Literal["private", "group"]
MessageType = Literal["text", "image", "system"]


def _sequence(value: Any) -> list[Any]:
    seq = as_sequence(value)
    if seq is None:
        raise ValueError(f"expected a list, got {type(value).__name__}")
    return seq


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the stored JSON shape (camelCase, no nulls)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Location(WireModel):
    """A coordinate plus a human-readable address."""

    latitude: float
    longitude: float
    address: str = ""

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.latitude, lon=self.longitude)


def _optional_location(value: Any) -> Location | None:
    """Read a stored location; one without usable coordinates counts as no location."""
    if value is None or isinstance(value, Location):
        return value
    try:
        return Location.model_validate(value)
    except ValidationError:
        logger.debug("Ignoring location without coordinates: %r", value)
        return None


class Comment(WireModel):
    id: str = Field(..., min_length=1)
    author_id: str = ""
    author_name: str = ""
    author_photo: str | None = None
    text: str = ""
    created_at: str | None = None


def _valid_comments(value: Any) -> list[Comment]:
    comments: list[Comment] = []
    for raw in _sequence(value):
        try:
            comments.append(Comment.model_validate(raw))
        except ValidationError:
            logger.warning("Dropping malformed comment %r", raw)
    return comments


class Notice(WireModel):
    """A location-tagged community post (event, alert or news)."""

    id: str = Field(..., min_length=1)
    type: NoticeType
    author_id: str = ""
    author_name: str = ""
    author_photo: str | None = None
    title: str = ""
    description: str = ""
    image_url: str | None = None
    location: Location | None = None
    created_at: str | None = None
    expires_at: str | None = None
    priority: Priority = "low"
    rsvp_list: list[str] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    likes: list[str] = Field(default_factory=list)

    @field_validator("rsvp_list", "likes", mode="before")
    @classmethod
    def _normalize_lists(cls, value: Any) -> list[Any]:
        return _sequence(value)

    @field_validator("comments", mode="before")
    @classmethod
    def _drop_bad_comments(cls, value: Any) -> list[Comment]:
        return _valid_comments(value)

    @field_validator("location", mode="before")
    @classmethod
    def _read_location(cls, value: Any) -> Location | None:
        return _optional_location(value)


class ChatMessage(WireModel):
    id: str = Field(..., min_length=1)
    room_id: str = ""
    sender_id: str = ""
    sender_name: str = ""
    sender_photo: str | None = None
    text: str | None = None
    image_url: str | None = None
    type: MessageType = "text"
    timestamp: str | None = None
    read: bool = False


class ChatRoom(WireModel):
    """A chat room; `lastMessage`/`lastMessageTime` are denormalized from its newest message."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: RoomType
    members: list[str] = Field(default_factory=list)
    last_message: ChatMessage | None = None
    last_message_time: str | None = None
    created_at: str | None = None
    created_by: str = ""
    location: Location | None = None

    @field_validator("members", mode="before")
    @classmethod
    def _normalize_members(cls, value: Any) -> list[Any]:
        return _sequence(value)

    @field_validator("last_message", mode="before")
    @classmethod
    def _drop_bad_last_message(cls, value: Any) -> Any:
        if value is None or isinstance(value, ChatMessage):
            return value
        try:
            return ChatMessage.model_validate(value)
        except ValidationError:
            logger.warning("Ignoring malformed lastMessage %r", value)
            return None

    @field_validator("location", mode="before")
    @classmethod
    def _read_location(cls, value: Any) -> Location | None:
        return _optional_location(value)

    @property
    def activity_time(self) -> str | None:
        """The first of `lastMessageTime`, `createdAt` that parses as a timestamp."""
        return next((t for t in (self.last_message_time, self.created_at) if parse_timestamp(t)), None)


class User(WireModel):
    id: str = Field(..., min_length=1)
    email: str = ""
    display_name: str = ""
    photo_url: str | None = Field(default=None, alias="photoURL")
    location: Location | None = None
    created_at: str | None = None

    @field_validator("location", mode="before")
    @classmethod
    def _read_location(cls, value: Any) -> Location | None:
        return _optional_location(value)


class NoticeCreate(WireModel):
    """Caller payload for a new notice; id, timestamps and lists are filled in by the store."""

    author_id: str = Field(..., min_length=1)
    author_name: str
    author_photo: str | None = None
    type: NoticeType
    title: str = Field(..., min_length=1)
    description: str = ""
    image_url: str | None = None
    location: Location | None = None
    expires_at: str | None = None
    priority: Priority = "low"


class CommentCreate(WireModel):
    author_id: str = Field(..., min_length=1)
    author_name: str
    author_photo: str | None = None
    text: str = Field(..., min_length=1)


class ChatRoomCreate(WireModel):
    name: str = Field(..., min_length=1)
    type: RoomType = "group"
    created_by: str = Field(..., min_length=1)
    location: Location | None = None


class ChatMessageCreate(WireModel):
    room_id: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    sender_name: str
    sender_photo: str | None = None
    text: str | None = None
    image_url: str | None = None
    type: MessageType = "text"
    read: bool = False


class UserUpdate(WireModel):
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = Field(default=None, alias="photoURL")
    location: Location | None = None
