import pytest

from noticeboard.core.errors import ValidationFailure
from noticeboard.store.entity_store import EntityStore
from noticeboard.store.memory import InMemoryBackend


def _store() -> tuple[InMemoryBackend, EntityStore]:
    backend = InMemoryBackend()
    return backend, EntityStore(backend, clock=lambda: "2024-01-02T00:00:00.000Z")


def test_create_assigns_id_and_timestamp():
    backend, store = _store()
    record = store.create("notices", {"title": "Yard sale"}, defaults={"likes": []})
    assert record["title"] == "Yard sale"
    assert record["createdAt"] == "2024-01-02T00:00:00.000Z"
    assert record["likes"] == []
    assert len(record["id"]) == 20
    # Empty lists are not persisted.
    assert backend.get(f"notices/{record['id']}") == {
        "id": record["id"],
        "title": "Yard sale",
        "createdAt": "2024-01-02T00:00:00.000Z",
    }


def test_create_does_not_share_default_lists():
    _, store = _store()
    defaults = {"likes": []}
    a = store.create("notices", {}, defaults=defaults)
    a["likes"].append("u1")
    assert defaults["likes"] == []


def test_create_uses_custom_stamp_field():
    _, store = _store()
    record = store.create("chatMessages/r1", {"text": "hi"}, stamp_field="timestamp")
    assert record["timestamp"] == "2024-01-02T00:00:00.000Z"
    assert "createdAt" not in record


def test_get_all_returns_children_in_creation_order():
    _, store = _store()
    ids = [store.create("chatRooms", {"name": str(i)})["id"] for i in range(5)]
    assert [k for k, _ in store.get_all("chatRooms")] == ids
    assert store.get_all("missing") == []


def test_get_list_reads_nested_children():
    _, store = _store()
    c = store.create("notices/n1/comments", {"text": "first"})
    assert store.get_list("notices/n1", "comments") == [(c["id"], c)]


def test_read_list_normalizes_stored_shapes():
    backend, store = _store()
    assert store.read_list("notices/n1/likes") == []
    backend.set("notices/n1/likes", {"1": "u2", "0": "u1"})
    assert store.read_list("notices/n1/likes") == ["u1", "u2"]


def test_read_list_rejects_scalars():
    backend, store = _store()
    backend.set("notices/n1/likes", "u1")
    with pytest.raises(ValidationFailure) as exc_info:
        store.read_list("notices/n1/likes")
    assert exc_info.value.key == "notices/n1/likes"


def test_update_merges_into_record():
    backend, store = _store()
    backend.set("users/u1", {"id": "u1", "email": "a@example.com"})
    store.update("users", "u1", {"displayName": "Ann"})
    assert backend.get("users/u1") == {"id": "u1", "email": "a@example.com", "displayName": "Ann"}
