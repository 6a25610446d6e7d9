import pytest

from noticeboard.config.settings import get_settings
from noticeboard.context import build_context
from noticeboard.core.errors import NotFound, StoreUnavailable
from noticeboard.core.geo import GeoPoint
from noticeboard.services.community import CommunityService
from noticeboard.services.mutations import MutationOps
from noticeboard.storage.blob import LocalBlobStore
from noticeboard.store.entity_store import EntityStore
from noticeboard.store.memory import InMemoryBackend


def _notice(service, **overrides):
    payload = {"authorId": "u1", "authorName": "Ann", "type": "event", "title": "Block party"}
    payload.update(overrides)
    return service.create_notice(payload)


def _service_on(backend, tmp_path) -> CommunityService:
    return CommunityService(build_context(get_settings(), backend=backend, blobs=LocalBlobStore(tmp_path)))


def test_create_notice_fills_defaults(service):
    notice = _notice(service)
    assert notice.id
    assert notice.created_at
    assert notice.priority == "low"
    assert notice.likes == [] and notice.rsvp_list == [] and notice.comments == []
    assert [n.id for n in service.get_notices()] == [notice.id]


def test_toggle_like_twice_restores_the_list(service, backend):
    notice = _notice(service)
    assert service.toggle_like(notice.id, "u2") == ["u2"]
    assert service.toggle_like(notice.id, "u3") == ["u2", "u3"]
    assert service.toggle_like(notice.id, "u2") == ["u3"]
    assert service.toggle_like(notice.id, "u3") == []
    assert backend.get(f"notices/{notice.id}/likes") is None


def test_toggle_rsvp_uses_its_own_list(service):
    notice = _notice(service)
    service.toggle_rsvp(notice.id, "u2")
    (stored,) = service.get_notices()
    assert stored.rsvp_list == ["u2"]
    assert stored.likes == []


def test_join_chat_room_is_idempotent(service):
    room = service.create_chat_room({"name": "Garden", "createdBy": "u1"})
    assert room.members == ["u1"]
    assert service.join_chat_room(room.id, "u2") == ["u1", "u2"]
    assert service.join_chat_room(room.id, "u2") == ["u1", "u2"]
    assert [r.id for r in service.get_chat_rooms_for_member("u2")] == [room.id]


def test_concurrent_toggles_can_lose_an_update(backend, monkeypatch):
    # Both toggles read the list before either writes: last writer wins.
    store = EntityStore(backend)
    ops = MutationOps(store)
    path = "notices/n1/likes"
    snapshot = store.read_list(path)
    monkeypatch.setattr(store, "read_list", lambda p: list(snapshot))
    ops.toggle_membership(path, "u1")
    ops.toggle_membership(path, "u2")
    assert backend.get(path) == ["u2"]


def test_comment_on_missing_notice_raises_not_found(service, backend):
    with pytest.raises(NotFound) as exc_info:
        service.add_comment("nope", {"authorId": "u1", "authorName": "Ann", "text": "hello?"})
    assert exc_info.value.path == "notices/nope"
    assert backend.get("notices") is None


def test_comments_appear_on_the_notice_in_order(service):
    notice = _notice(service)
    first = service.add_comment(notice.id, {"authorId": "u2", "authorName": "Bob", "text": "count me in"})
    service.add_comment(notice.id, {"authorId": "u3", "authorName": "Cy", "text": "me too"})
    (stored,) = service.get_notices()
    assert [c.text for c in stored.comments] == ["count me in", "me too"]
    assert stored.comments[0].id == first.id


def test_send_message_updates_room_last_message(service):
    room = service.create_chat_room({"name": "Garden", "createdBy": "u1"})
    message = service.send_message({"roomId": room.id, "senderId": "u1", "senderName": "Ann", "text": "hi"})
    (stored,) = service.get_chat_rooms()
    assert stored.last_message is not None
    assert stored.last_message.id == message.id
    assert stored.last_message_time == message.timestamp
    assert [m.id for m in service.get_messages(room.id)] == [message.id]


def test_message_to_unknown_room_does_not_create_the_room(service, backend):
    service.send_message({"roomId": "ghost", "senderId": "u1", "senderName": "Ann", "text": "anyone?"})
    assert backend.get("chatRooms") is None
    assert len(service.get_messages("ghost")) == 1


class _FailingUpdates(InMemoryBackend):
    def update(self, path, fields):
        raise StoreUnavailable("update rejected")


def test_last_message_refresh_is_best_effort(tmp_path):
    service = _service_on(_FailingUpdates(), tmp_path)
    room = service.create_chat_room({"name": "Garden", "createdBy": "u1"})
    message = service.send_message({"roomId": room.id, "senderId": "u1", "senderName": "Ann", "text": "hi"})
    assert [m.id for m in service.get_messages(room.id)] == [message.id]
    (stored,) = service.get_chat_rooms()
    assert stored.last_message is None


class _Offline(InMemoryBackend):
    def get(self, path):
        raise StoreUnavailable("offline")

    def set(self, path, value):
        raise StoreUnavailable("offline")


def test_reads_degrade_and_writes_propagate_when_offline(tmp_path):
    service = _service_on(_Offline(), tmp_path)
    assert service.get_notices(GeoPoint(lat=40.0, lon=-74.0)) == []
    assert service.get_chat_rooms() == []
    assert service.get_messages("r1") == []
    assert service.get_user("u1") is None
    with pytest.raises(StoreUnavailable):
        _notice(service)
    with pytest.raises(StoreUnavailable):
        service.toggle_like("n1", "u1")


def test_update_user_writes_only_provided_fields(service, backend):
    service.create_user({"id": "u1", "email": "a@example.com", "displayName": "Ann", "photoURL": "http://x/p.jpg"})
    service.update_user("u1", {"displayName": "Annie"})
    user = service.get_user("u1")
    assert user.display_name == "Annie"
    assert user.photo_url == "http://x/p.jpg"

    service.update_user("u1", {"photoURL": None})
    assert backend.get("users/u1/photoURL") is None
    assert service.get_user("u1").email == "a@example.com"


def test_upload_image_returns_a_url(service, tmp_path):
    url = service.upload_image(b"\x89PNG", folder="notices", content_type="image/png")
    assert url.startswith("file://")
    assert url.endswith(".png")
    assert "/notices/" in url
