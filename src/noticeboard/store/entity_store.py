"""
Entity store.

Thin, typed-by-convention access to the collections the app persists:
- `notices` (with `notices/{id}/comments` pushed underneath each notice)
- `chatRooms`
- `chatMessages/{roomId}`
- `users/{id}`

The store owns id generation and timestamp stamping for new records; it knows nothing
about filtering, sorting or validation (see `noticeboard.sync`).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from noticeboard.core.errors import ValidationFailure
from noticeboard.core.time import utc_now_iso
from noticeboard.store.backend import (
    ListenerHandle,
    RealtimeBackend,
    SnapshotCallback,
    as_sequence,
    join_path,
    ordered_children,
    strings,
)

logger = logging.getLogger(__name__)

NOTICES = "notices"
COMMENTS = "comments"
CHAT_ROOMS = "chatRooms"
CHAT_MESSAGES = "chatMessages"
USERS = "users"


class EntityStore:
    def __init__(self, backend: RealtimeBackend, *, clock: Callable[[], str] = utc_now_iso):
        self._backend = backend
        self._clock = clock

    def create(
        self,
        collection: str,
        data: Mapping[str, Any],
        *,
        defaults: Mapping[str, Any] | None = None,
        stamp_field: str = "createdAt",
    ) -> dict[str, Any]:
        """Append a record under a generated key and return it fully materialized.

        `defaults` seed fields the caller did not provide (list fields start empty);
        `id` and `stamp_field` are always set by the store.
        """
        key = self._backend.new_key(collection)
        record: dict[str, Any] = {k: (list(v) if isinstance(v, list) else v) for k, v in (defaults or {}).items()}
        record.update(data)
        record["id"] = key
        record[stamp_field] = self._clock()
        self._backend.set(join_path(collection, key), record)
        logger.debug("Created %s/%s", collection, key)
        return record

    def get(self, path: str) -> Any:
        return self._backend.get(path)

    def exists(self, path: str) -> bool:
        return self._backend.get(path) is not None

    def get_all(self, collection: str) -> list[tuple[str, Any]]:
        """Return `(key, raw)` children of a collection in key order; missing means empty."""
        return ordered_children(self._backend.get(collection))

    def get_list(self, collection: str, parent_id: str) -> list[tuple[str, Any]]:
        """Return children nested under `{collection}/{parent_id}` in key order."""
        return self.get_all(join_path(collection, parent_id))

    def set(self, path: str, value: Any) -> None:
        self._backend.set(path, value)

    def update(self, collection: str, entity_id: str, fields: Mapping[str, Any]) -> None:
        """Merge `fields` into an existing record (other fields are left untouched)."""
        self._backend.update(join_path(collection, entity_id), fields)

    def read_list(self, path: str) -> list[str]:
        """Read a list-typed field (`likes`, `rsvpList`, `members`) as a list of ids."""
        raw = self._backend.get(path)
        values = as_sequence(raw)
        if values is None:
            raise ValidationFailure(path, f"expected a list, got {type(raw).__name__}")
        return strings(values)

    def replace_list(self, path: str, values: Iterable[str]) -> None:
        """Overwrite a list-typed field wholesale."""
        self._backend.set(path, list(values))

    def listen(self, path: str, on_snapshot: SnapshotCallback) -> ListenerHandle:
        return self._backend.listen(path, on_snapshot)
