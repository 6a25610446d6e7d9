from noticeboard.domain.models import ChatMessage, Notice
from noticeboard.services.notifications import chat_notification, notice_notification


def test_notice_notification_titles_by_type_and_priority():
    event = Notice(id="n1", type="event", title="Potluck", priority="medium")
    emergency = Notice(id="n2", type="news", title="Gas leak", priority="emergency")

    assert notice_notification(event).title == "📅 Community Event"
    assert notice_notification(event).body == "Potluck"
    assert notice_notification(event).data == {"type": "notice", "noticeId": "n1", "priority": "medium"}
    assert notice_notification(emergency).title == "🚨 EMERGENCY ALERT"


def test_chat_notification_body():
    text = ChatMessage(id="m1", room_id="r1", sender_name="Ann", text="hi all")
    image = ChatMessage(id="m2", room_id="r1", sender_name="Bob", image_url="http://x/y.jpg", type="image")

    assert chat_notification(text, "Garden").body == "Ann: hi all"
    assert chat_notification(image, "Garden").body == "Bob: Sent an image"
    assert chat_notification(image, "Garden").data == {"type": "chat", "roomId": "r1", "messageId": "m2"}
