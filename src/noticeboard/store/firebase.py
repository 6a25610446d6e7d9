"""
Firebase Realtime Database backend (REST + streaming).

This module is responsible only for:
- mapping the backend primitives onto the REST API (`GET/PUT/PATCH {path}.json`),
- generating push keys client-side (same algorithm as the Firebase SDKs),
- keeping a live listener per subscription by consuming the server-sent event stream
  (`Accept: text/event-stream`) and applying `put`/`patch` events to a local copy.

It does not retry: transport and HTTP errors surface as `StoreUnavailable`, and a broken
stream is logged and ends that listener.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from typing import Any, Iterable, Iterator, Mapping

import httpx

from noticeboard.config.settings import Settings
from noticeboard.core.errors import StoreUnavailable
from noticeboard.core.http import get_json, open_stream, patch_json, put_json
from noticeboard.core.push_ids import generate_push_id
from noticeboard.store.backend import SnapshotCallback, split_path

logger = logging.getLogger(__name__)


def iter_sse_events(lines: Iterable[str]) -> Iterator[tuple[str, str]]:
    """Group server-sent event lines into `(event, data)` pairs."""
    event = ""
    data: list[str] = []
    for raw in lines:
        line = raw.rstrip("\r")
        if not line:
            if event or data:
                yield event, "\n".join(data)
            event, data = "", []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if field == "event":
            event = value
        elif field == "data":
            data.append(value)
    if event or data:
        yield event, "\n".join(data)


def _set_at(root: Any, segments: list[str], value: Any) -> Any:
    """Return `root` with `value` written at `segments` (None deletes)."""
    if not segments:
        return copy.deepcopy(value)
    node = root if isinstance(root, dict) else {}
    head, rest = segments[0], segments[1:]
    child = node.get(head)
    if isinstance(child, list):
        child = {str(i): v for i, v in enumerate(child) if v is not None}
    new_child = _set_at(child, rest, value)
    if new_child is None or new_child == {}:
        node.pop(head, None)
    else:
        node[head] = new_child
    return node or None


def apply_stream_event(cache: Any, event: str, payload: Mapping[str, Any]) -> Any:
    """Apply one `put`/`patch` stream event to the cached value and return the new value."""
    segments = split_path(str(payload.get("path", "/")))
    data = payload.get("data")
    if event == "put":
        return _set_at(cache, segments, data)
    if event == "patch":
        if not isinstance(data, Mapping):
            return cache
        for key, value in data.items():
            cache = _set_at(cache, segments + split_path(str(key)), value)
        return cache
    return cache


class FirebaseListener:
    """A background reader for one streaming subscription."""

    def __init__(self, backend: "FirebaseRestBackend", path: str, callback: SnapshotCallback):
        self._backend = backend
        self._path = path
        self._callback = callback
        self._stop = threading.Event()
        self._response: httpx.Response | None = None
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._run, name=f"firebase-listen:{path}", daemon=True)

    def start(self) -> "FirebaseListener":
        self._thread.start()
        return self

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    def close(self) -> None:
        self._stop.set()
        with self._lock:
            response = self._response
        if response is not None:
            try:
                response.close()
            except httpx.HTTPError:
                logger.debug("Closing stream for /%s raised", self._path, exc_info=True)

    def _run(self) -> None:
        cache: Any = None
        try:
            with open_stream(
                self._backend.url_for(self._path),
                params=self._backend.auth_params(),
                headers={"Accept": "text/event-stream"},
                connect_timeout_seconds=self._backend.timeout_seconds,
            ) as resp:
                with self._lock:
                    self._response = resp
                if self._stop.is_set():
                    return
                for event, data in iter_sse_events(resp.iter_lines()):
                    if self._stop.is_set():
                        return
                    if event in {"put", "patch"}:
                        cache = apply_stream_event(cache, event, json.loads(data) if data else {})
                        self._deliver(cache)
                    elif event == "keep-alive":
                        continue
                    elif event in {"cancel", "auth_revoked"}:
                        logger.warning("Stream for /%s ended by server: %s %s", self._path, event, data)
                        return
        except (httpx.HTTPError, httpx.StreamError, ValueError):
            if self._stop.is_set():
                return
            logger.exception("Stream for /%s failed", self._path)
        finally:
            self._stop.set()

    def _deliver(self, cache: Any) -> None:
        try:
            self._callback(copy.deepcopy(cache))
        except Exception:
            logger.exception("Listener callback failed for /%s", self._path)


class FirebaseRestBackend:
    """Realtime backend talking to a Firebase Realtime Database over HTTPS."""

    def __init__(self, database_url: str, *, auth_token: str | None = None, timeout_seconds: float = 15):
        if not database_url:
            raise ValueError("database_url is required for the firebase backend")
        self._base_url = database_url.rstrip("/")
        self._auth_token = auth_token
        self.timeout_seconds = float(timeout_seconds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirebaseRestBackend":
        if not settings.backend.database_url:
            raise RuntimeError("Firebase backend is not configured. Set FIREBASE_DATABASE_URL.")
        return cls(
            settings.backend.database_url,
            auth_token=settings.backend.auth_token,
            timeout_seconds=settings.app.http_timeout_seconds,
        )

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{'/'.join(split_path(path))}.json"

    def auth_params(self) -> dict[str, str] | None:
        return {"auth": self._auth_token} if self._auth_token else None

    def get(self, path: str) -> Any:
        try:
            return get_json(self.url_for(path), params=self.auth_params(), timeout_seconds=self.timeout_seconds)
        except (httpx.HTTPError, ValueError) as exc:
            raise StoreUnavailable(f"read of /{path} failed: {exc}") from exc

    def set(self, path: str, value: Any) -> None:
        try:
            put_json(
                self.url_for(path),
                payload=value,
                params=self.auth_params(),
                timeout_seconds=self.timeout_seconds,
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise StoreUnavailable(f"write of /{path} failed: {exc}") from exc

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        try:
            patch_json(
                self.url_for(path),
                payload=dict(fields),
                params=self.auth_params(),
                timeout_seconds=self.timeout_seconds,
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise StoreUnavailable(f"update of /{path} failed: {exc}") from exc

    def new_key(self, path: str) -> str:
        return generate_push_id()

    def listen(self, path: str, on_snapshot: SnapshotCallback) -> FirebaseListener:
        return FirebaseListener(self, path, on_snapshot).start()
