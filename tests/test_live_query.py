from noticeboard.core.geo import GeoPoint
from noticeboard.domain.models import Location


def test_subscription_delivers_initial_state_and_every_change(service):
    updates = []
    sub = service.subscribe_to_notices(updates.append)
    service.create_notice({"authorId": "u1", "authorName": "Ann", "type": "news", "title": "first"})
    service.create_notice({"authorId": "u1", "authorName": "Ann", "type": "news", "title": "second"})
    assert [[n.title for n in u] for u in updates] == [[], ["first"], ["second", "first"]]
    assert sub.deliveries == 3
    sub.unsubscribe()


def test_no_callbacks_after_unsubscribe(service, backend):
    updates = []
    sub = service.subscribe_to_chat_rooms(updates.append)
    service.create_chat_room({"name": "Garden", "createdBy": "u1"})
    sub.unsubscribe()
    service.create_chat_room({"name": "Book club", "createdBy": "u2"})
    assert len(updates) == 2
    assert not sub.active
    assert backend.listener_count == 0


def test_unsubscribe_is_idempotent(service, backend):
    sub = service.subscribe_to_notices(lambda items: None)
    sub.unsubscribe()
    sub.unsubscribe()
    service.unsubscribe(sub)
    service.unsubscribe(None)
    assert backend.listener_count == 0


def test_unsubscribe_from_inside_the_callback(service):
    calls = []
    holder = {}

    def on_update(items):
        calls.append(len(items))
        if items:
            holder["sub"].unsubscribe()

    holder["sub"] = service.subscribe_to_notices(on_update)
    service.create_notice({"authorId": "u1", "authorName": "Ann", "type": "news", "title": "a"})
    service.create_notice({"authorId": "u1", "authorName": "Ann", "type": "news", "title": "b"})
    assert calls == [0, 1]


def test_failing_callback_keeps_subscription_alive(service):
    calls = []

    def on_update(items):
        calls.append(len(items))
        raise RuntimeError("render failed")

    sub = service.subscribe_to_notices(on_update)
    service.create_notice({"authorId": "u1", "authorName": "Ann", "type": "news", "title": "a"})
    assert calls == [0, 1]
    assert sub.active
    sub.unsubscribe()


def test_live_feed_is_proximity_filtered(service):
    updates = []
    here = Location(latitude=40.0, longitude=-74.0, address="Main St")
    far = Location(latitude=41.0, longitude=-74.0, address="Upstate")
    with service.subscribe_to_notices(updates.append, GeoPoint(lat=40.0, lon=-74.0), 5):
        service.create_notice({"authorId": "u", "authorName": "U", "type": "event", "title": "near", "location": here})
        service.create_notice({"authorId": "u", "authorName": "U", "type": "event", "title": "far", "location": far})
        service.create_notice({"authorId": "u", "authorName": "U", "type": "event", "title": "unplaced"})
    assert [n.title for n in updates[-1]] == ["near"]


def test_message_feed_follows_one_room(service):
    room = service.create_chat_room({"name": "Garden", "createdBy": "u1"})
    updates = []
    with service.subscribe_to_messages(room.id, updates.append):
        service.send_message({"roomId": room.id, "senderId": "u1", "senderName": "Ann", "text": "hi"})
        service.send_message({"roomId": "other", "senderId": "u2", "senderName": "Bob", "text": "elsewhere"})
        service.send_message({"roomId": room.id, "senderId": "u2", "senderName": "Bob", "text": "hello"})
    assert [[m.text for m in u] for u in updates] == [[], ["hi"], ["hi", "hello"]]


def test_room_feed_puts_most_recently_active_room_first(service, backend):
    backend.set("chatRooms", {
        "older": {"id": "older", "name": "Older", "type": "group", "createdAt": "2024-01-01T00:00:00.000Z"},
        "newer": {"id": "newer", "name": "Newer", "type": "group", "createdAt": "2024-01-02T00:00:00.000Z"},
    })
    updates = []
    with service.subscribe_to_chat_rooms(updates.append):
        pass
    assert [r.id for r in updates[0]] == ["newer", "older"]
