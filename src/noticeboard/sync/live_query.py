"""
Live queries.

A `Subscription` wires one backend listener to one caller callback. Every snapshot the
backend delivers (the initial one and one per change) is re-materialized through
`noticeboard.sync.snapshots` and handed to `on_update` as a fresh list.

Guarantees:
- callbacks for one subscription run one at a time, in delivery order;
- once `unsubscribe()` returns no new callback starts (one already running may finish);
- `unsubscribe()` is idempotent and safe to call from inside `on_update`.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, TypeVar

from pydantic import BaseModel

from noticeboard.core.geo import GeoPoint
from noticeboard.store.backend import ListenerHandle
from noticeboard.store.entity_store import EntityStore
from noticeboard.sync.snapshots import Feed, materialize

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class Subscription(Generic[M]):
    """Handle for one live feed. States: subscribed -> idle (terminal)."""

    def __init__(
        self,
        path: str,
        on_update: Callable[[list[M]], Any],
        feed: Feed[M],
        *,
        origin: GeoPoint | None = None,
        radius_km: float | None = None,
    ):
        self.path = path
        self._on_update = on_update
        self._feed = feed
        self._origin = origin
        self._radius_km = radius_km
        # Re-entrant so `on_update` may unsubscribe on the delivering thread.
        self._lock = threading.RLock()
        self._active = True
        self._listener: ListenerHandle | None = None
        self.deliveries = 0

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    def _attach(self, listener: ListenerHandle) -> None:
        with self._lock:
            if self._active:
                self._listener = listener
                return
        listener.close()

    def _on_snapshot(self, value: Any) -> None:
        with self._lock:
            if not self._active:
                return
            items = materialize(value, self._feed, origin=self._origin, radius_km=self._radius_km)
            self.deliveries += 1
            try:
                self._on_update(items)
            except Exception:
                logger.exception("on_update failed for live %s feed at /%s", self._feed.kind, self.path)

    def unsubscribe(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            listener, self._listener = self._listener, None
        if listener is not None:
            listener.close()
        logger.debug("Unsubscribed from /%s", self.path)

    def __enter__(self) -> "Subscription[M]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unsubscribe()


class LiveQuery:
    """Opens live feeds over an `EntityStore`."""

    def __init__(self, store: EntityStore):
        self._store = store

    def subscribe(
        self,
        path: str,
        on_update: Callable[[list[M]], Any],
        feed: Feed[M],
        *,
        origin: GeoPoint | None = None,
        radius_km: float | None = None,
    ) -> Subscription[M]:
        subscription = Subscription(path, on_update, feed, origin=origin, radius_km=radius_km)
        # Backends may deliver the initial snapshot before `listen` returns.
        subscription._attach(self._store.listen(path, subscription._on_snapshot))
        logger.debug("Subscribed to /%s (%s feed)", path, feed.kind)
        return subscription

    @staticmethod
    def unsubscribe(handle: Subscription[Any] | None) -> None:
        if handle is not None:
            handle.unsubscribe()
