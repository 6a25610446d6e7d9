"""
Community service (the public surface of the core).

Screens, the CLI and the HTTP API call this class; it is the single place where notice
and chat-room access is implemented:
- one-shot reads (`get_*`) degrade to empty results when the backend is unavailable,
- live feeds (`subscribe_to_*`) return a `Subscription` with `unsubscribe()`,
- writes (`create_*`, `toggle_*`, `join_chat_room`, `send_message`, `add_comment`,
  user profile writes) propagate every failure to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from noticeboard.context import BackendContext
from noticeboard.core.errors import StoreUnavailable, ValidationFailure
from noticeboard.core.geo import GeoPoint
from noticeboard.domain.models import (
    ChatMessage,
    ChatMessageCreate,
    ChatRoom,
    ChatRoomCreate,
    Comment,
    CommentCreate,
    Notice,
    NoticeCreate,
    User,
    UserUpdate,
)
from noticeboard.store.backend import join_path
from noticeboard.store.entity_store import CHAT_MESSAGES, CHAT_ROOMS, NOTICES, USERS, EntityStore
from noticeboard.sync.live_query import LiveQuery, Subscription
from noticeboard.sync.snapshots import MESSAGE_FEED, NOTICE_FEED, ROOM_FEED, Feed, M, materialize_children, parse_entity
from noticeboard.services.mutations import MutationOps

logger = logging.getLogger(__name__)


class CommunityService:
    def __init__(self, context: BackendContext):
        self._settings = context.settings
        self._blobs = context.blobs
        self._store = EntityStore(context.backend)
        self._live = LiveQuery(self._store)
        self._mutations = MutationOps(self._store)

    def _radius(self, radius_km: float | None) -> float:
        if radius_km is None:
            return float(self._settings.proximity.default_radius_km)
        return float(radius_km)

    def _read(
        self,
        collection: str,
        feed: Feed[M],
        *,
        parent_id: str | None = None,
        origin: GeoPoint | None = None,
        radius_km: float | None = None,
    ) -> list[M]:
        try:
            if parent_id is None:
                children = self._store.get_all(collection)
            else:
                children = self._store.get_list(collection, parent_id)
        except StoreUnavailable:
            logger.exception("Error reading /%s; returning an empty list", join_path(collection, parent_id or ""))
            return []
        return materialize_children(children, feed, origin=origin, radius_km=radius_km)

    # --- notices ---

    def get_notices(self, origin: GeoPoint | None = None, radius_km: float | None = None) -> list[Notice]:
        """Notices near `origin` (all notices when origin is None), newest first."""
        return self._read(NOTICES, NOTICE_FEED, origin=origin, radius_km=self._radius(radius_km))

    def subscribe_to_notices(
        self,
        on_update: Callable[[list[Notice]], Any],
        origin: GeoPoint | None = None,
        radius_km: float | None = None,
    ) -> Subscription[Notice]:
        return self._live.subscribe(NOTICES, on_update, NOTICE_FEED, origin=origin, radius_km=self._radius(radius_km))

    def create_notice(self, data: NoticeCreate | Mapping[str, Any]) -> Notice:
        return self._mutations.create_notice(NoticeCreate.model_validate(data))

    def add_comment(self, notice_id: str, data: CommentCreate | Mapping[str, Any]) -> Comment:
        return self._mutations.create_comment(notice_id, CommentCreate.model_validate(data))

    def toggle_like(self, notice_id: str, user_id: str) -> list[str]:
        return self._mutations.toggle_membership(join_path(NOTICES, notice_id, "likes"), user_id)

    def toggle_rsvp(self, notice_id: str, user_id: str) -> list[str]:
        return self._mutations.toggle_membership(join_path(NOTICES, notice_id, "rsvpList"), user_id)

    # --- chat rooms ---

    def get_chat_rooms(self, origin: GeoPoint | None = None, radius_km: float | None = None) -> list[ChatRoom]:
        """Rooms near `origin`, most recently active first."""
        return self._read(CHAT_ROOMS, ROOM_FEED, origin=origin, radius_km=self._radius(radius_km))

    def get_chat_rooms_for_member(self, user_id: str) -> list[ChatRoom]:
        return [room for room in self._read(CHAT_ROOMS, ROOM_FEED) if user_id in room.members]

    def subscribe_to_chat_rooms(
        self,
        on_update: Callable[[list[ChatRoom]], Any],
        origin: GeoPoint | None = None,
        radius_km: float | None = None,
    ) -> Subscription[ChatRoom]:
        return self._live.subscribe(CHAT_ROOMS, on_update, ROOM_FEED, origin=origin, radius_km=self._radius(radius_km))

    def create_chat_room(self, data: ChatRoomCreate | Mapping[str, Any]) -> ChatRoom:
        return self._mutations.create_chat_room(ChatRoomCreate.model_validate(data))

    def join_chat_room(self, room_id: str, user_id: str) -> list[str]:
        return self._mutations.add_membership(join_path(CHAT_ROOMS, room_id, "members"), user_id)

    # --- messages ---

    def get_messages(self, room_id: str) -> list[ChatMessage]:
        """Messages of a room in send order."""
        return self._read(CHAT_MESSAGES, MESSAGE_FEED, parent_id=room_id)

    def subscribe_to_messages(
        self, room_id: str, on_update: Callable[[list[ChatMessage]], Any]
    ) -> Subscription[ChatMessage]:
        return self._live.subscribe(join_path(CHAT_MESSAGES, room_id), on_update, MESSAGE_FEED)

    def send_message(self, data: ChatMessageCreate | Mapping[str, Any]) -> ChatMessage:
        return self._mutations.create_message(ChatMessageCreate.model_validate(data))

    # --- images ---

    def upload_image(self, content: bytes, *, folder: str = "images", content_type: str = "image/jpeg") -> str:
        return self._blobs.upload(content, folder=folder, content_type=content_type)

    # --- users ---

    def create_user(self, user: User | Mapping[str, Any]) -> User:
        user = User.model_validate(user)
        self._store.set(join_path(USERS, user.id), user.to_wire())
        return user

    def get_user(self, user_id: str) -> User | None:
        path = join_path(USERS, user_id)
        try:
            raw = self._store.get(path)
        except StoreUnavailable:
            logger.exception("Error reading /%s", path)
            return None
        if raw is None:
            return None
        try:
            return parse_entity(user_id, raw, User)
        except ValidationFailure as exc:
            logger.warning("Dropping user: %s", exc)
            return None

    def update_user(self, user_id: str, updates: UserUpdate | Mapping[str, Any]) -> None:
        """Merge the provided profile fields; a field explicitly set to None is cleared."""
        updates = UserUpdate.model_validate(updates)
        fields = updates.model_dump(by_alias=True, include=set(updates.model_fields_set), mode="json")
        if fields:
            self._store.update(USERS, user_id, fields)

    # --- subscriptions ---

    @staticmethod
    def unsubscribe(handle: Subscription[Any] | None) -> None:
        LiveQuery.unsubscribe(handle)
