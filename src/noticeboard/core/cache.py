from __future__ import annotations

import json
import time
from hashlib import sha256
from pathlib import Path
from typing import Any, Callable

"""
Simple on-disk JSON cache.

Used by the weather client so that repeated alert checks for the same area do not hit the
upstream API every time, and so that a recent response can be served when the API is down.

- Values are stored as JSON under `<base_dir>/<namespace>/<sha256>.json`.
- TTL is enforced on read; `get_stale()` ignores it.
"""


class FileCache:
    """A filesystem-backed cache keyed by (namespace, key)."""

    def __init__(self, base_dir: Path, enabled: bool = True, default_ttl_seconds: int = 3600):
        self._base_dir = base_dir
        self._enabled = enabled
        self._default_ttl_seconds = default_ttl_seconds

    def _key_path(self, namespace: str, key: str) -> Path:
        digest = sha256(f"{namespace}:{key}".encode("utf-8")).hexdigest()
        return self._base_dir / namespace / f"{digest}.json"

    def _load(self, namespace: str, key: str) -> dict[str, Any] | None:
        if not self._enabled:
            return None
        path = self._key_path(namespace, key)
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return raw if isinstance(raw, dict) and "value" in raw else None

    def get(self, namespace: str, key: str, ttl_seconds: int | None = None) -> Any | None:
        """Return a cached value if present and not expired."""
        raw = self._load(namespace, key)
        if raw is None:
            return None
        ttl = ttl_seconds if ttl_seconds is not None else int(raw.get("ttl_seconds", self._default_ttl_seconds))
        if int(time.time()) - int(raw.get("created_at_unix", 0)) > ttl:
            return None
        return raw["value"]

    def get_stale(self, namespace: str, key: str) -> Any | None:
        """Return a cached value even if expired."""
        raw = self._load(namespace, key)
        return None if raw is None else raw["value"]

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Write a JSON-serializable value (temp file + atomic replace)."""
        if not self._enabled:
            return
        path = self._key_path(namespace, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "created_at_unix": int(time.time()),
            "ttl_seconds": int(ttl_seconds if ttl_seconds is not None else self._default_ttl_seconds),
            "value": value,
        }
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)

    def get_or_set(
        self,
        namespace: str,
        key: str,
        builder: Callable[[], Any],
        ttl_seconds: int | None = None,
        *,
        stale_if_error: bool = False,
    ) -> Any:
        """Return the cached value, or build and store it.

        With `stale_if_error`, a failing `builder()` falls back to an expired value when one
        exists; otherwise the builder's exception propagates.
        """
        cached = self.get(namespace, key, ttl_seconds=ttl_seconds)
        if cached is not None:
            return cached
        try:
            value = builder()
        except Exception:
            if stale_if_error:
                stale = self.get_stale(namespace, key)
                if stale is not None:
                    return stale
            raise
        self.set(namespace, key, value, ttl_seconds=ttl_seconds)
        return value
