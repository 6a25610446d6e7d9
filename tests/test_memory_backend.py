from noticeboard.store.backend import as_sequence, ordered_children
from noticeboard.store.memory import InMemoryBackend


def test_set_get_and_delete_prunes_empty_parents():
    b = InMemoryBackend()
    b.set("notices/n1/title", "Hello")
    assert b.get("notices/n1") == {"title": "Hello"}

    b.set("notices/n1/title", None)
    assert b.get("notices/n1") is None
    assert b.get("notices") is None
    assert b.get("") is None


def test_empty_lists_and_objects_are_not_stored():
    b = InMemoryBackend()
    b.set("notices/n1", {"id": "n1", "likes": [], "comments": {}, "title": "x"})
    assert b.get("notices/n1") == {"id": "n1", "title": "x"}
    assert b.get("notices/n1/likes") is None


def test_get_returns_a_copy():
    b = InMemoryBackend()
    b.set("rooms/r1", {"members": ["u1"]})
    value = b.get("rooms/r1")
    value["members"].append("u2")
    assert b.get("rooms/r1/members") == ["u1"]


def test_update_merges_listed_keys_only():
    b = InMemoryBackend()
    b.set("users/u1", {"id": "u1", "email": "a@example.com", "displayName": "A"})
    b.update("users/u1", {"displayName": "B", "location/address": "Main St"})
    assert b.get("users/u1") == {
        "id": "u1",
        "email": "a@example.com",
        "displayName": "B",
        "location": {"address": "Main St"},
    }


def test_writing_below_an_array_turns_it_into_an_integer_keyed_object():
    b = InMemoryBackend()
    b.set("notices/n1/likes", ["u1", "u2"])
    b.set("notices/n1/likes/2", "u3")
    raw = b.get("notices/n1/likes")
    assert raw == {"0": "u1", "1": "u2", "2": "u3"}
    assert as_sequence(raw) == ["u1", "u2", "u3"]


def test_ordered_children_puts_integer_keys_first_numerically():
    value = {"b": 1, "10": 2, "2": 3, "a": 4}
    assert [k for k, _ in ordered_children(value)] == ["2", "10", "a", "b"]


def test_listener_gets_initial_snapshot_and_related_changes():
    b = InMemoryBackend()
    seen = []
    handle = b.listen("notices", seen.append)
    b.set("notices/n1", {"id": "n1"})
    b.set("chatRooms/r1", {"id": "r1"})  # unrelated path
    b.set("notices/n1/title", "t")
    b.set("", {"notices": {"n2": {"id": "n2"}}})  # ancestor write
    assert seen == [
        None,
        {"n1": {"id": "n1"}},
        {"n1": {"id": "n1", "title": "t"}},
        {"n2": {"id": "n2"}},
    ]
    handle.close()
    b.set("notices/n3", {"id": "n3"})
    assert len(seen) == 4
    assert b.listener_count == 0


def test_listener_writing_from_its_callback_is_not_reentered():
    b = InMemoryBackend()
    seen = []
    depth = {"now": 0, "max": 0}

    def on_snapshot(value):
        depth["now"] += 1
        depth["max"] = max(depth["max"], depth["now"])
        seen.append(value)
        if value == {"count": 1}:
            b.set("counter/count", 2)
        depth["now"] -= 1

    b.listen("counter", on_snapshot)
    b.set("counter/count", 1)
    assert seen == [None, {"count": 1}, {"count": 2}]
    assert depth["max"] == 1


def test_failing_listener_does_not_break_delivery_to_others():
    b = InMemoryBackend()
    seen = []

    def broken(value):
        raise RuntimeError("boom")

    b.listen("notices", broken)
    b.listen("notices", seen.append)
    b.set("notices/n1", {"id": "n1"})
    assert seen == [None, {"n1": {"id": "n1"}}]
