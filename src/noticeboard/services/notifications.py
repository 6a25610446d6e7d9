"""
Notification payloads for notices and chat messages.

Delivery (device tokens, push providers) belongs to the client apps; this module only
decides what a notification for a given entity says.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from noticeboard.domain.models import ChatMessage, Notice

_NOTICE_TITLES = {
    "alert": "⚠️ Community Alert",
    "event": "📅 Community Event",
    "news": "📢 Community News",
}
EMERGENCY_TITLE = "🚨 EMERGENCY ALERT"


@dataclass(frozen=True)
class NotificationPayload:
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)


def notice_notification(notice: Notice) -> NotificationPayload:
    if notice.priority == "emergency":
        title = EMERGENCY_TITLE
    else:
        title = _NOTICE_TITLES.get(notice.type, _NOTICE_TITLES["news"])
    return NotificationPayload(
        title=title,
        body=notice.title,
        data={"type": "notice", "noticeId": notice.id, "priority": notice.priority},
    )


def chat_notification(message: ChatMessage, room_name: str) -> NotificationPayload:
    return NotificationPayload(
        title=room_name,
        body=f"{message.sender_name}: {message.text or 'Sent an image'}",
        data={"type": "chat", "roomId": message.room_id, "messageId": message.id},
    )
