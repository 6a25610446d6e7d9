"""
Mutation operations.

Two families of writes:
- membership lists (`likes`, `rsvpList`, `members`): read the list, change it, write the
  whole list back. These are plain read-modify-write sequences; two concurrent toggles on
  the same list can lose one of the changes.
- append-only creators for notices, comments, rooms and messages, which delegate id and
  timestamp stamping to the `EntityStore`.

Write failures always propagate; the one exception is the denormalized
`lastMessage`/`lastMessageTime` refresh after a message send, which is best-effort.
"""

from __future__ import annotations

import logging
from typing import Any

from noticeboard.core.errors import NotFound
from noticeboard.domain.models import (
    ChatMessage,
    ChatMessageCreate,
    ChatRoom,
    ChatRoomCreate,
    Comment,
    CommentCreate,
    Notice,
    NoticeCreate,
)
from noticeboard.store.backend import join_path
from noticeboard.store.entity_store import CHAT_MESSAGES, CHAT_ROOMS, COMMENTS, NOTICES, EntityStore

logger = logging.getLogger(__name__)

NOTICE_LIST_DEFAULTS: dict[str, Any] = {"rsvpList": [], "comments": [], "likes": []}


class MutationOps:
    def __init__(self, store: EntityStore):
        self._store = store

    # --- membership lists ---

    def toggle_membership(self, list_path: str, user_id: str) -> list[str]:
        """Remove `user_id` from the list if present (first occurrence), else append it."""
        members = self._store.read_list(list_path)
        if user_id in members:
            members.remove(user_id)
        else:
            members.append(user_id)
        self._store.replace_list(list_path, members)
        return members

    def add_membership(self, list_path: str, user_id: str) -> list[str]:
        """Append `user_id` unless already present; never removes."""
        members = self._store.read_list(list_path)
        if user_id in members:
            return members
        members.append(user_id)
        self._store.replace_list(list_path, members)
        return members

    # --- creators ---

    def create_notice(self, data: NoticeCreate) -> Notice:
        record = self._store.create(NOTICES, data.to_wire(), defaults=NOTICE_LIST_DEFAULTS)
        logger.info("Notice %s created by %s", record["id"], data.author_id)
        return Notice.model_validate(record)

    def create_chat_room(self, data: ChatRoomCreate) -> ChatRoom:
        payload = data.to_wire()
        payload["members"] = [data.created_by]
        record = self._store.create(CHAT_ROOMS, payload)
        logger.info("Chat room %s created by %s", record["id"], data.created_by)
        return ChatRoom.model_validate(record)

    def create_comment(self, notice_id: str, data: CommentCreate) -> Comment:
        notice_path = join_path(NOTICES, notice_id)
        if not self._store.exists(notice_path):
            raise NotFound(notice_path)
        record = self._store.create(join_path(notice_path, COMMENTS), data.to_wire())
        return Comment.model_validate(record)

    def create_message(self, data: ChatMessageCreate) -> ChatMessage:
        record = self._store.create(join_path(CHAT_MESSAGES, data.room_id), data.to_wire(), stamp_field="timestamp")
        message = ChatMessage.model_validate(record)
        self._refresh_last_message(message)
        return message

    def _refresh_last_message(self, message: ChatMessage) -> None:
        room_path = join_path(CHAT_ROOMS, message.room_id)
        try:
            if not self._store.exists(room_path):
                logger.warning("Message %s sent to unknown room %s", message.id, message.room_id)
                return
            self._store.update(
                CHAT_ROOMS,
                message.room_id,
                {"lastMessage": message.to_wire(), "lastMessageTime": message.timestamp},
            )
        except Exception:
            logger.exception("Could not update last message for room %s", message.room_id)
