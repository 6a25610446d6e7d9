"""
Snapshot materialization.

Turns a raw collection value from the backend into the list callers see. The same
pipeline runs for one-shot reads and for every live-feed update:

1. children in key order
2. shape validation (invalid entries are logged and dropped)
3. id/key consistency check (mismatch is logged, the entity is kept)
4. proximity filter
5. per-feed ordering
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Iterable, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from noticeboard.core.errors import ValidationFailure
from noticeboard.core.geo import GeoPoint
from noticeboard.core.time import parse_timestamp
from noticeboard.domain.models import ChatMessage, ChatRoom, Notice
from noticeboard.store.backend import ordered_children
from noticeboard.sync.proximity import filter_by_proximity

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def newest_first(items: list[M]) -> list[M]:
    return list(reversed(items))


def in_key_order(items: list[M]) -> list[M]:
    return list(items)


def by_activity_desc(rooms: list[ChatRoom]) -> list[ChatRoom]:
    """Most recently active rooms first (`lastMessageTime`, falling back to `createdAt`)."""
    return sorted(rooms, key=lambda r: parse_timestamp(r.activity_time) or _OLDEST, reverse=True)


@dataclass(frozen=True)
class Feed(Generic[M]):
    kind: str
    model: type[M]
    order: Callable[[list[M]], list[M]]


NOTICE_FEED: Feed[Notice] = Feed("notice", Notice, newest_first)
ROOM_FEED: Feed[ChatRoom] = Feed("room", ChatRoom, by_activity_desc)
MESSAGE_FEED: Feed[ChatMessage] = Feed("message", ChatMessage, in_key_order)


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors()[:3]:
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def parse_entity(key: str | None, raw: Any, model: type[M]) -> M:
    """Validate one stored record; raises `ValidationFailure` on a malformed shape."""
    if not isinstance(raw, Mapping):
        raise ValidationFailure(key, f"expected an object, got {type(raw).__name__}")
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise ValidationFailure(key, _describe(exc)) from exc


def parse_children(children: Iterable[tuple[str, Any]], feed: Feed[M]) -> list[M]:
    out: list[M] = []
    for key, raw in children:
        try:
            entity = parse_entity(key, raw, feed.model)
        except ValidationFailure as exc:
            logger.warning("Dropping %s: %s", feed.kind, exc)
            continue
        entity_id = getattr(entity, "id", None)
        if entity_id != key:
            logger.warning("ID mismatch for %s %s: expected %s, got %s", feed.kind, key, key, entity_id)
        out.append(entity)
    return out


def materialize_children(
    children: Iterable[tuple[str, Any]],
    feed: Feed[M],
    *,
    origin: GeoPoint | None = None,
    radius_km: float | None = None,
) -> list[M]:
    """Run the read pipeline over `(key, raw)` children already in key order."""
    items = parse_children(children, feed)
    items = filter_by_proximity(items, origin, radius_km)
    return feed.order(items)


def materialize(
    value: Any,
    feed: Feed[M],
    *,
    origin: GeoPoint | None = None,
    radius_km: float | None = None,
) -> list[M]:
    """Run the full read pipeline over a raw collection value."""
    return materialize_children(ordered_children(value), feed, origin=origin, radius_km=radius_km)
