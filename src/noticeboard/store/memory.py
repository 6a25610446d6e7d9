"""
In-process realtime backend.

A thread-safe JSON tree with the same observable semantics as the Firebase backend:
- writes of None, `{}` or `[]` delete the node (and prune empty parents),
- listeners receive the full value at their path immediately and after every write that
  touches it (ancestor, descendant or the path itself),
- deliveries are queued and drained by one thread at a time, so each listener sees
  snapshots strictly in order and a listener that writes from its own callback is not
  re-entered.

Used by tests, the CLI demo mode and any deployment that does not need durability.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections import deque
from typing import Any, Mapping

from noticeboard.core.push_ids import PushIdGenerator, generate_push_id
from noticeboard.store.backend import SnapshotCallback, split_path

logger = logging.getLogger(__name__)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (dict, list)) and not value)


def _normalize(value: Any) -> Any:
    """Deep-copy a JSON-like value, dropping empty containers the way the backend stores it."""
    if isinstance(value, Mapping):
        out = {}
        for k, v in value.items():
            nv = _normalize(v)
            if not _is_empty(nv):
                out[str(k)] = nv
        return out
    if isinstance(value, (list, tuple)):
        items = [_normalize(v) for v in value]
        return items if any(not _is_empty(v) for v in items) else []
    return value


def _related(a: list[str], b: list[str]) -> bool:
    n = min(len(a), len(b))
    return a[:n] == b[:n]


class _MemoryListener:
    def __init__(self, backend: "InMemoryBackend", segments: list[str], callback: SnapshotCallback):
        self._backend = backend
        self.segments = segments
        self.callback = callback
        self.closed = False

    def close(self) -> None:
        self._backend._remove_listener(self)


class InMemoryBackend:
    """Realtime backend that keeps the whole database in a nested dict."""

    def __init__(self, *, key_generator: PushIdGenerator | None = None):
        self._root: dict[str, Any] = {}
        self._lock = threading.RLock()
        self._listeners: list[_MemoryListener] = []
        self._pending: deque[_MemoryListener] = deque()
        self._delivering = False
        self._new_key = key_generator or generate_push_id

    # --- reads ---

    def _read(self, segments: list[str]) -> Any:
        node: Any = self._root
        for seg in segments:
            if isinstance(node, dict):
                node = node.get(seg)
            elif isinstance(node, list) and seg.isdigit() and int(seg) < len(node):
                node = node[int(seg)]
            else:
                return None
            if node is None:
                return None
        return node

    def get(self, path: str) -> Any:
        with self._lock:
            value = self._read(split_path(path))
            return copy.deepcopy(value) if not _is_empty(value) else None

    # --- writes ---

    def _write(self, segments: list[str], value: Any) -> None:
        value = _normalize(value)
        if not segments:
            self._root = value if isinstance(value, dict) else {}
            return

        node = self._root
        trail: list[tuple[dict, str]] = []
        for seg in segments[:-1]:
            child = node.get(seg)
            if isinstance(child, list):
                child = {str(i): v for i, v in enumerate(child) if v is not None}
                node[seg] = child
            elif not isinstance(child, dict):
                if _is_empty(value):
                    return
                child = {}
                node[seg] = child
            trail.append((node, seg))
            node = child

        last = segments[-1]
        if _is_empty(value):
            node.pop(last, None)
        else:
            node[last] = value

        # Prune parents left empty by a delete.
        while trail and not node:
            parent, seg = trail.pop()
            parent.pop(seg, None)
            node = parent

    def set(self, path: str, value: Any) -> None:
        segments = split_path(path)
        with self._lock:
            self._write(segments, value)
            self._enqueue(segments)
        self._drain()

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        base = split_path(path)
        with self._lock:
            for key, value in fields.items():
                self._write(base + split_path(key), value)
            self._enqueue(base)
        self._drain()

    def new_key(self, path: str) -> str:
        return self._new_key()

    # --- listeners ---

    def listen(self, path: str, on_snapshot: SnapshotCallback) -> _MemoryListener:
        listener = _MemoryListener(self, split_path(path), on_snapshot)
        with self._lock:
            self._listeners.append(listener)
            self._pending.append(listener)
        self._drain()
        return listener

    def _remove_listener(self, listener: _MemoryListener) -> None:
        with self._lock:
            listener.closed = True
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _enqueue(self, segments: list[str]) -> None:
        for listener in self._listeners:
            if _related(listener.segments, segments) and listener not in self._pending:
                self._pending.append(listener)

    def _drain(self) -> None:
        with self._lock:
            if self._delivering:
                return
            self._delivering = True
        try:
            while True:
                with self._lock:
                    if not self._pending:
                        # Cleared under the lock so a concurrent writer never enqueues
                        # behind a drain loop that has already decided to stop.
                        self._delivering = False
                        return
                    listener = self._pending.popleft()
                    if listener.closed:
                        continue
                    value = self._read(listener.segments)
                    snapshot = copy.deepcopy(value) if not _is_empty(value) else None
                try:
                    listener.callback(snapshot)
                except Exception:
                    logger.exception("Listener callback failed for /%s", "/".join(listener.segments))
        except BaseException:
            with self._lock:
                self._delivering = False
            raise
