"""
Realtime backend contract.

The core needs only five primitives from its key-value realtime store, all addressed by
slash-delimited paths (`notices`, `notices/{id}/comments`, `chatRooms`,
`chatMessages/{roomId}`, `users/{id}`):

- `get(path)`: point read (None when absent)
- `set(path, value)`: point write (None deletes)
- `update(path, fields)`: partial merge of the listed keys
- `new_key(path)`: generate a unique, chronologically ordered child key
- `listen(path, on_snapshot)`: deliver the full value at `path` now and after every change

Storage semantics follow Firebase Realtime Database: empty lists/objects are not stored,
arrays may come back as integer-keyed objects, and children are ordered by key.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Protocol

SnapshotCallback = Callable[[Any], None]


class ListenerHandle(Protocol):
    def close(self) -> None: ...


class RealtimeBackend(Protocol):
    def get(self, path: str) -> Any: ...

    def set(self, path: str, value: Any) -> None: ...

    def update(self, path: str, fields: Mapping[str, Any]) -> None: ...

    def new_key(self, path: str) -> str: ...

    def listen(self, path: str, on_snapshot: SnapshotCallback) -> ListenerHandle: ...


def split_path(path: str) -> list[str]:
    return [seg for seg in str(path).split("/") if seg]


def join_path(*parts: str) -> str:
    return "/".join(seg for part in parts for seg in split_path(part))


def _key_sort(key: str) -> tuple[int, int, str]:
    # Integer-like keys sort first, numerically; everything else lexicographically.
    if key.isdigit() or (key.startswith("-") and key[1:].isdigit()):
        try:
            n = int(key)
        except ValueError:
            n = 0
        if -(2**31) <= n < 2**31:
            return (0, n, "")
    return (1, 0, key)


def ordered_children(value: Any) -> list[tuple[str, Any]]:
    """Return `(key, child)` pairs of a snapshot value in key order."""
    if isinstance(value, Mapping):
        return sorted(((str(k), v) for k, v in value.items() if v is not None), key=lambda kv: _key_sort(kv[0]))
    if isinstance(value, list):
        return [(str(i), v) for i, v in enumerate(value) if v is not None]
    return []


def as_sequence(value: Any) -> list[Any] | None:
    """Normalize a stored list-typed field.

    Missing values read as `[]`, lists pass through (holes dropped), and objects (arrays
    stored with integer keys, or pushed children) become lists in key order. Anything
    else is not a sequence and yields None.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [v for v in value if v is not None]
    if isinstance(value, Mapping):
        return [v for _, v in ordered_children(value)]
    return None


def strings(values: Iterable[Any]) -> list[str]:
    return [str(v) for v in values]
